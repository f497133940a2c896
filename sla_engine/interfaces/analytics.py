"""Usage analytics interfaces.

Usage events are append-only facts; every statistic here is derived from
a time-bounded window of them and recomputed on demand.
"""

import datetime
import enum
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sla_engine.interfaces.classifier import PackageType


class UsageEventType(str, enum.Enum):
    PREVIEW = "preview"
    AGREEMENT_CREATED = "agreement_created"
    AGREEMENT_SIGNED = "agreement_signed"
    TEMPLATE_VIEWED = "template_viewed"
    TEMPLATE_MODIFIED = "template_modified"


# =============================================================================
# Event metadata (one closed shape per event type)
# =============================================================================


class _EventMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: Literal[1] = 1


class PreviewMetadata(_EventMetadata):
    kind: Literal["preview"] = "preview"
    quote_number: str | None = None
    variable_count: int | None = Field(default=None, ge=0)


class AgreementCreatedMetadata(_EventMetadata):
    kind: Literal["agreement_created"] = "agreement_created"
    agreement_title: str | None = None
    agreement_number: str | None = None
    package_type: PackageType | None = None


class AgreementSignedMetadata(_EventMetadata):
    kind: Literal["agreement_signed"] = "agreement_signed"
    signer_name: str | None = None
    signature_method: str | None = None


class TemplateViewedMetadata(_EventMetadata):
    kind: Literal["template_viewed"] = "template_viewed"
    view_source: str | None = None


class TemplateModifiedMetadata(_EventMetadata):
    kind: Literal["template_modified"] = "template_modified"
    changed_fields: list[str] = Field(default_factory=list)
    previous_version: int | None = None
    new_version: int | None = None


EventMetadata = Annotated[
    Union[
        PreviewMetadata,
        AgreementCreatedMetadata,
        AgreementSignedMetadata,
        TemplateViewedMetadata,
        TemplateModifiedMetadata,
    ],
    Field(discriminator="kind"),
]


class UsageEvent(BaseModel):
    """An immutable record of a user action against a template."""

    model_config = ConfigDict(frozen=True)

    id: str
    template_id: str
    event_type: UsageEventType
    user_id: str
    client_id: str | None = None
    quote_id: str | None = None
    agreement_id: str | None = None
    metadata: EventMetadata
    occurred_at: datetime.datetime

    @model_validator(mode="before")
    @classmethod
    def tag_metadata(cls, data: Any) -> Any:
        """Derive the metadata tag from event_type when the caller omits it."""
        if not isinstance(data, dict):
            return data
        event_type = data.get("event_type")
        metadata = data.get("metadata") or {}
        if isinstance(metadata, dict) and "kind" not in metadata and event_type is not None:
            kind = event_type.value if isinstance(event_type, UsageEventType) else str(event_type)
            data = {**data, "metadata": {**metadata, "kind": kind}}
        return data

    @model_validator(mode="after")
    def metadata_matches_event_type(self) -> "UsageEvent":
        if self.metadata.kind != self.event_type.value:
            raise ValueError(
                f"Metadata of kind '{self.metadata.kind}' does not match "
                f"event type '{self.event_type.value}'"
            )
        return self

    @field_validator("occurred_at")
    @classmethod
    def assume_utc(cls, v: datetime.datetime) -> datetime.datetime:
        """Naive timestamps are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=datetime.timezone.utc)
        return v


class TemplateSummary(BaseModel):
    """The template fields cross-template analytics needs."""

    id: str
    name: str
    package_type: PackageType
    is_active: bool = True


# =============================================================================
# Derived statistics
# =============================================================================


class UsageTrend(BaseModel):
    """Event counts per bucket, oldest bucket first."""

    daily: list[int]
    weekly: list[int]
    monthly: list[int]


class DailyCount(BaseModel):
    date: datetime.date
    count: int


class TemplateUsageStats(BaseModel):
    template_id: str
    window_days: int
    total_usage: int
    counts_by_type: dict[UsageEventType, int]
    previews: int
    agreements_created: int
    agreements_signed: int
    unique_users: int
    conversion_rate: float = Field(ge=0, le=100)
    average_time_to_signature_hours: float
    last_used: datetime.datetime | None
    usage_trend: UsageTrend


class TemplateUsageCount(BaseModel):
    template_id: str
    name: str | None = None
    usage_count: int


class PackageTypeUsage(BaseModel):
    template_count: int = 0
    usage_count: int = 0


class UserUsage(BaseModel):
    user_id: str
    usage_count: int
    templates_used: list[str]


class UserEngagement(BaseModel):
    active_users: int
    average_events_per_user: float
    top_users: list[UserUsage]


class ConversionMetrics(BaseModel):
    preview_to_agreement_rate: float = Field(ge=0, le=100)
    agreement_to_signature_rate: float = Field(ge=0, le=100)
    average_time_to_signature_hours: float
    abandonment_rate: float = Field(ge=0, le=100)


class UsageTrends(BaseModel):
    daily_usage: list[DailyCount]
    popular_templates: list[TemplateUsageCount]


class UsageAnalytics(BaseModel):
    window_days: int
    total_templates: int
    total_usage_events: int
    most_used_templates: list[TemplateUsageCount]
    usage_by_package_type: dict[PackageType, PackageTypeUsage]
    user_engagement: UserEngagement
    conversion_metrics: ConversionMetrics
    trends: UsageTrends


class UserTemplateUsage(BaseModel):
    template_id: str
    usage_count: int
    last_used: datetime.datetime


class UserUsageStats(BaseModel):
    user_id: str
    window_days: int
    total_events: int
    templates_used: list[UserTemplateUsage]
    activity_breakdown: dict[UsageEventType, int]
    usage_trend: list[DailyCount]


class BaseUsageAggregator(ABC):
    """Abstract base class for usage analytics.

    Implementations are pure folds over the event sequence: no event is
    mutated and results are reproducible from the same events and ``now``.
    """

    @abstractmethod
    def template_stats(
        self,
        events: Sequence[UsageEvent],
        window_days: int,
        template_id: str | None = None,
        now: datetime.datetime | None = None,
    ) -> TemplateUsageStats:
        """Per-template statistics over the window."""

    @abstractmethod
    def usage_analytics(
        self,
        events: Sequence[UsageEvent],
        window_days: int,
        templates: Sequence[TemplateSummary] = (),
        now: datetime.datetime | None = None,
    ) -> UsageAnalytics:
        """Cross-template analytics over the window."""

    @abstractmethod
    def user_stats(
        self,
        events: Sequence[UsageEvent],
        user_id: str,
        window_days: int,
        now: datetime.datetime | None = None,
    ) -> UserUsageStats:
        """Activity of one user over the window."""
