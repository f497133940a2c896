"""Quote to template-variable mapping.

Builds the value bag handed to the substitutor from a quote record, its
client, the issuing company's settings and any extra context. Field
lookups use dotted paths into one combined source record; SLA terms the
quote does not carry are derived from its value and wording.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sla_engine.interfaces.template import Template

logger = logging.getLogger(__name__)

# Template variable -> candidate dotted paths, first non-empty wins
FIELD_MAPPINGS: dict[str, list[str]] = {
    # Client
    "client_name": ["client.name", "client.company"],
    "client_company": ["client.company"],
    "client_email": ["client.email"],
    "client_phone": ["client.phone"],
    "client_billing_address": ["client.billing_address"],
    "client_delivery_address": ["client.delivery_address"],
    "client_vat_number": ["client.vat_number"],
    # Quote
    "quote_number": ["quote_number"],
    "quote_date": ["date_issued"],
    "valid_until": ["valid_until"],
    "subtotal_excl_vat": ["subtotal_excl_vat"],
    "vat_amount": ["vat_amount"],
    "total_incl_vat": ["total_incl_vat"],
    "deposit_percentage": ["deposit_percentage"],
    "deposit_amount": ["deposit_amount"],
    "balance_remaining": ["balance_remaining"],
    # Project
    "project_title": ["project_title", "client.company", "client.name"],
    "project_description": ["notes"],
    "project_value": ["total_incl_vat"],
    "project_duration": ["estimated_duration", "derived.estimated_duration"],
    "monthly_value": ["derived.monthly_value"],
    # Company
    "company_name": ["company.company_name"],
    "company_address": ["company.address"],
    "company_email": ["company.email"],
    "company_phone": ["company.phone"],
    "company_vat_percentage": ["company.vat_percentage"],
    # Technical
    "domain_name": ["domain", "website_url"],
    "hosting_platform": ["hosting_provider"],
    "website_type": ["website_type"],
    "features": ["features"],
    "pages_count": ["pages", "derived.pages"],
    "products_count": ["products", "derived.products"],
    "users_expected": ["expected_users"],
    # Service levels
    "uptime_requirement": ["uptime_target", "derived.uptime_target"],
    "response_time_requirement": ["response_time_hours", "derived.response_time_hours"],
    "resolution_time_requirement": ["resolution_time_hours", "derived.resolution_time_hours"],
    "support_hours": ["support_hours", "derived.support_hours"],
    "maintenance_window": ["maintenance_window", "derived.maintenance_window"],
    # Compliance and security
    "compliance_requirements": ["compliance_frameworks", "derived.compliance_frameworks"],
    "security_requirements": ["security_level", "derived.security_level"],
    "data_protection_level": ["data_protection", "derived.data_protection"],
    "backup_frequency": ["backup_frequency", "derived.backup_frequency"],
    "retention_period": ["data_retention_days", "derived.data_retention_days"],
}

PAGE_KEYWORDS = ("page", "pages", "landing", "home", "about", "contact")
PRODUCT_KEYWORDS = ("product", "products", "item", "catalog", "inventory")


def get_nested_value(record: Mapping[str, Any], path: str) -> Any:
    """Follow a dotted path through nested mappings, None when absent."""
    current: Any = record
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


class VariableMapper:
    """Maps quote data onto template variable names."""

    def __init__(self, field_mappings: Mapping[str, Sequence[str]] | None = None) -> None:
        self._field_mappings = dict(field_mappings or FIELD_MAPPINGS)

    def build_source_record(
        self,
        quote: Mapping[str, Any],
        client: Mapping[str, Any],
        company: Mapping[str, Any],
        extra: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        client_record = dict(client)
        if not client_record.get("name"):
            client_record["name"] = client_record.get("company")

        return {
            **quote,
            "client": client_record,
            "company": dict(company),
            **(extra or {}),
            "derived": self.derive_fields(quote),
        }

    def extract_values(
        self,
        quote: Mapping[str, Any],
        client: Mapping[str, Any],
        company: Mapping[str, Any],
        extra: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build a value bag from quote data.

        Args:
            quote: Quote record (snake_case keys, ``items`` list of dicts).
            client: Client record.
            company: Issuing company settings.
            extra: Additional context; its keys take precedence over quote keys.

        Returns:
            Variable name -> value for every mapped variable that resolved.
        """
        record = self.build_source_record(quote, client, company, extra)
        values: dict[str, Any] = {}

        for name, paths in self._field_mappings.items():
            for path in paths:
                value = get_nested_value(record, path)
                if not _is_empty(value):
                    values[name] = value
                    break

        logger.info(
            f"Extracted {len(values)} variable values from quote "
            f"{quote.get('quote_number') or quote.get('id')}"
        )
        return values

    def values_for(self, template: Template, values: Mapping[str, Any]) -> dict[str, Any]:
        """Restrict a value bag to the variables the template declares."""
        declared = {spec.name for spec in template.variables}
        return {name: value for name, value in values.items() if name in declared}

    def derive_fields(self, quote: Mapping[str, Any]) -> dict[str, Any]:
        """SLA defaults derived from the quote's value and wording."""
        total = float(quote.get("total_incl_vat") or 0)
        items = quote.get("items") or []
        wording = f"{quote.get('terms_text') or ''} {quote.get('notes') or ''}".lower()

        return {
            "estimated_duration": self._estimate_duration(total),
            "monthly_value": round(total / 12, 2),
            "pages": self._estimate_pages(items),
            "products": self._estimate_products(items),
            "uptime_target": 99.9 if total > 500_000 else 99.5 if total > 100_000 else 99.0,
            "response_time_hours": 1 if total > 500_000 else 4 if total > 100_000 else 8,
            "resolution_time_hours": 4 if total > 500_000 else 24 if total > 100_000 else 72,
            "compliance_frameworks": self._detect_compliance(wording),
            "security_level": self._detect_security(wording),
            "data_protection": self._detect_data_protection(wording),
            "support_hours": "9:00 - 17:00, Monday - Friday",
            "maintenance_window": "Sunday 2:00 AM - 4:00 AM",
            "backup_frequency": "Daily",
            "data_retention_days": 365,
        }

    @staticmethod
    def _estimate_duration(total: float) -> str:
        if total < 50_000:
            return "2-4 weeks"
        if total < 100_000:
            return "1-2 months"
        if total < 250_000:
            return "2-3 months"
        if total < 500_000:
            return "3-6 months"
        return "6+ months"

    @staticmethod
    def _estimate_pages(items: Sequence[Mapping[str, Any]]) -> int:
        pages = 5
        for item in items:
            description = str(item.get("description", "")).lower()
            pages += 2 * sum(1 for keyword in PAGE_KEYWORDS if keyword in description)
        return min(pages, 50)

    @staticmethod
    def _estimate_products(items: Sequence[Mapping[str, Any]]) -> int:
        products = 0
        for item in items:
            description = str(item.get("description", "")).lower()
            hits = sum(1 for keyword in PRODUCT_KEYWORDS if keyword in description)
            products += hits * int(item.get("qty") or 1)
        return min(products, 1000)

    @staticmethod
    def _detect_compliance(wording: str) -> list[str]:
        frameworks = []
        if "popia" in wording or "protection of personal information" in wording:
            frameworks.append("POPIA")
        if "gdpr" in wording or "general data protection" in wording:
            frameworks.append("GDPR")
        if "paia" in wording or "promotion of access to information" in wording:
            frameworks.append("PAIA")
        if "pci" in wording or "payment card industry" in wording:
            frameworks.append("PCI DSS")
        return frameworks or ["POPIA"]

    @staticmethod
    def _detect_security(wording: str) -> str:
        if "encryption" in wording or "advanced security" in wording:
            return "Advanced (Encryption, Firewall, SSL/HTTPS)"
        if "firewall" in wording or "security" in wording:
            return "Enhanced (Firewall, SSL/HTTPS)"
        if "ssl" in wording or "https" in wording:
            return "Standard (SSL/HTTPS)"
        return "Basic (Standard security measures)"

    @staticmethod
    def _detect_data_protection(wording: str) -> str:
        if "redundancy" in wording or "high availability" in wording:
            return "Real-time replication with daily backups"
        if "backup" in wording:
            return "Daily backups with 30-day retention"
        return "Daily backups with standard retention"
