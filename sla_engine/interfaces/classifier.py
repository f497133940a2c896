"""Package type classification interfaces.

Defines the result records and abstract base class for deciding which
business-package category a quote belongs to.
"""

import enum
from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field


class PackageType(str, enum.Enum):
    """The four fixed business-package categories."""

    ECOM_SITE = "ecom_site"
    GENERAL_WEBSITE = "general_website"
    BUSINESS_PROCESS_SYSTEMS = "business_process_systems"
    MARKETING = "marketing"

    @property
    def label(self) -> str:
        """Human-readable name, e.g. 'general website'."""
        return self.value.replace("_", " ")


class ClassificationResult(BaseModel):
    """Outcome of classifying one quote. Deterministic for identical input."""

    model_config = ConfigDict(frozen=True)

    package_type: PackageType = Field(description="Best matching category")
    confidence_percent: int = Field(ge=0, le=100)
    scores_by_type: dict[PackageType, float]
    reasoning: dict[PackageType, list[str]] = Field(
        description="Matched evidence per category, in evaluation order"
    )


class PackageValidation(BaseModel):
    """Review of a (possibly user-chosen) package type against the quote."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    confidence_percent: int = Field(ge=0, le=100)
    warnings: list[str]
    suggestions: list[PackageType] = Field(description="Up to two alternate categories")


class BasePackageClassifier(ABC):
    """Abstract base class for package type classification strategies.

    Classification is advisory: implementations must degrade to a safe
    default rather than raise on malformed input.
    """

    @abstractmethod
    def classify(
        self,
        free_text: Sequence[str],
        item_descriptions: Sequence[str],
        total_value: float,
        item_count: int,
    ) -> ClassificationResult:
        """Score the quote against every category and pick the best match.

        Args:
            free_text: Free-text fields of the quote (terms, notes, ...).
            item_descriptions: Line-item descriptions.
            total_value: Quote total including VAT.
            item_count: Number of line items.

        Returns:
            ClassificationResult with per-category scores and reasoning.
        """

    @abstractmethod
    def validate(
        self,
        detected_type: PackageType,
        free_text: Sequence[str],
        item_descriptions: Sequence[str],
        total_value: float,
        item_count: int,
    ) -> PackageValidation:
        """Flag low-confidence or out-of-range classifications."""
