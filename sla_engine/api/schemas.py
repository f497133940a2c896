"""API request and response schemas.

Pydantic v2 models for API serialization/deserialization. Every request
carries its full input; the engine keeps nothing between calls.
"""

import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from sla_engine.interfaces.analytics import TemplateSummary, UsageEvent
from sla_engine.interfaces.classifier import PackageType
from sla_engine.interfaces.template import Template


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(description="Error message")
    error_code: str | None = Field(default=None, description="Application-specific error code")
    extra: dict[str, Any] | None = Field(default=None, description="Additional error context")


# =============================================================================
# Template Schemas
# =============================================================================


class RenderRequest(BaseModel):
    """Request schema for substituting a template."""

    template: Template
    values: dict[str, Any] = Field(default_factory=dict, description="Variable name -> value")
    override_content: str | None = Field(
        default=None, description="Manually edited content that replaces the generated body"
    )


class PreviewRequest(BaseModel):
    template: Template
    values: dict[str, Any] = Field(default_factory=dict)


class PreviewResponse(BaseModel):
    content: str


class LintRequest(BaseModel):
    template: Template


class LintResponse(BaseModel):
    is_valid: bool
    undeclared_variables: list[str]


# =============================================================================
# Package Type Schemas
# =============================================================================


class DetectPackageTypeRequest(BaseModel):
    """Classifier input, given directly or as a quote to read it from.

    When ``quote`` is present the other classifier fields are ignored.
    """

    free_text: list[str] = Field(default_factory=list)
    item_descriptions: list[str] = Field(default_factory=list)
    total_value: float = 0
    item_count: int = Field(default=0, ge=0)

    quote: dict[str, Any] | None = None
    client: dict[str, Any] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)


class ValidatePackageTypeRequest(DetectPackageTypeRequest):
    detected_type: PackageType


# =============================================================================
# Numbering Schemas
# =============================================================================


class ProposeNumberRequest(BaseModel):
    """Request schema for proposing a document number.

    ``format_template`` overrides the configured format for ``document_kind``.
    """

    current_counter: int
    document_kind: Literal["quote", "invoice", "agreement"] = "quote"
    format_template: str | None = None
    context_vars: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Usage Schemas
# =============================================================================


class TemplateStatsRequest(BaseModel):
    events: list[UsageEvent]
    window_days: int | None = Field(default=None, gt=0)
    template_id: str | None = None
    now: datetime.datetime | None = None


class UsageAnalyticsRequest(BaseModel):
    events: list[UsageEvent]
    window_days: int | None = Field(default=None, gt=0)
    templates: list[TemplateSummary] = Field(default_factory=list)
    now: datetime.datetime | None = None


class UserStatsRequest(BaseModel):
    events: list[UsageEvent]
    user_id: str
    window_days: int | None = Field(default=None, gt=0)
    now: datetime.datetime | None = None
