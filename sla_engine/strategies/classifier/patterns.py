"""Static evidence tables for package type classification.

One profile per package type. Keyword weights default to 1; item patterns
are matched against line-item descriptions only and carry a fixed weight.
"""

from dataclasses import dataclass, field

from sla_engine.interfaces.classifier import PackageType

ITEM_PATTERN_WEIGHT = 1.5
DEFAULT_KEYWORD_WEIGHT = 1


@dataclass(frozen=True)
class CategoryProfile:
    """Evidence table for one package type."""

    keywords: tuple[str, ...]
    item_patterns: tuple[str, ...]
    value_range: tuple[float, float]
    item_count_range: tuple[int, int]
    weight_factors: dict[str, int] = field(default_factory=dict)

    def weight_for(self, keyword: str) -> int:
        return self.weight_factors.get(keyword, DEFAULT_KEYWORD_WEIGHT)


CATEGORY_PROFILES: dict[PackageType, CategoryProfile] = {
    PackageType.ECOM_SITE: CategoryProfile(
        keywords=(
            "ecommerce", "e-commerce", "online store", "shopping cart", "product catalog",
            "payment gateway", "checkout", "products", "inventory", "woocommerce", "shopify",
            "magento", "opencart", "prestashop", "bigcommerce", "product management",
            "order management", "cart system", "online shop", "webstore", "digital storefront",
        ),
        item_patterns=(
            "product page", "category page", "shopping cart", "checkout process",
            "payment integration", "order management", "inventory system", "product search",
            "user account", "wishlist", "product reviews", "shipping calculation",
        ),
        value_range=(50_000, 500_000),
        item_count_range=(10, 50),
        weight_factors={
            "payment gateway": 3,
            "shopping cart": 3,
            "product catalog": 2,
            "inventory management": 2,
            "ecommerce": 3,
            "online store": 2,
        },
    ),
    PackageType.GENERAL_WEBSITE: CategoryProfile(
        keywords=(
            "website", "web site", "portfolio", "brochure", "informational", "blog",
            "corporate", "business website", "landing page", "company website", "presentation",
            "brand website", "marketing website", "showcase", "web presence", "online brochure",
        ),
        item_patterns=(
            "home page", "about page", "contact page", "services page", "portfolio",
            "gallery", "blog section", "news section", "testimonials", "team page",
            "faq page", "privacy policy", "terms of service", "sitemap",
        ),
        value_range=(15_000, 150_000),
        item_count_range=(5, 20),
        weight_factors={
            "company website": 2,
            "corporate website": 2,
            "portfolio website": 2,
            "informational website": 2,
            "landing page": 1,
        },
    ),
    PackageType.BUSINESS_PROCESS_SYSTEMS: CategoryProfile(
        keywords=(
            "crm", "erp", "business process", "workflow", "automation", "system",
            "management system", "dashboard", "reporting", "analytics", "database",
            "business intelligence", "process automation", "workflow management",
            "enterprise system", "business software", "management platform",
        ),
        item_patterns=(
            "user management", "role-based access", "data entry forms", "reporting dashboard",
            "analytics dashboard", "workflow automation", "process management", "data export",
            "system integration", "api development", "database design", "user authentication",
            "permission system", "audit trail", "notification system",
        ),
        value_range=(100_000, 1_000_000),
        item_count_range=(8, 30),
        weight_factors={
            "crm system": 3,
            "erp system": 3,
            "business process": 2,
            "workflow management": 2,
            "management system": 2,
            "automation": 2,
        },
    ),
    PackageType.MARKETING: CategoryProfile(
        keywords=(
            "marketing", "campaign", "lead generation", "seo", "sem", "social media",
            "email marketing", "content marketing", "digital marketing", "advertising",
            "marketing automation", "brand promotion", "online marketing", "web marketing",
        ),
        item_patterns=(
            "social media integration", "email campaign", "seo optimization", "content management",
            "landing page", "lead capture", "analytics tracking", "marketing automation",
            "brand guidelines", "advertising banner", "social media management",
            "email template", "marketing dashboard", "campaign management",
        ),
        value_range=(25_000, 200_000),
        item_count_range=(5, 25),
        weight_factors={
            "digital marketing": 3,
            "marketing automation": 3,
            "lead generation": 2,
            "social media marketing": 2,
            "email marketing": 2,
            "seo optimization": 2,
        },
    ),
}
