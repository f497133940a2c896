"""Usage analytics aggregation.

Every statistic is a fold over the usage events inside the window. An
event is in the window when the whole number of days elapsed since it
happened is at least 0 and less than ``window_days``; everything else is
discarded before counting.
"""

import datetime
import logging
import math
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence

from sla_engine.core.errors import DataValidationError
from sla_engine.interfaces.analytics import (
    BaseUsageAggregator,
    ConversionMetrics,
    DailyCount,
    PackageTypeUsage,
    TemplateSummary,
    TemplateUsageCount,
    TemplateUsageStats,
    UsageAnalytics,
    UsageEvent,
    UsageEventType,
    UsageTrend,
    UsageTrends,
    UserEngagement,
    UserTemplateUsage,
    UserUsage,
    UserUsageStats,
)
from sla_engine.interfaces.classifier import PackageType

logger = logging.getLogger(__name__)

ONE_DAY = datetime.timedelta(days=1)
TOP_TEMPLATES = 10
TOP_USERS = 10
POPULAR_TEMPLATES = 5


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _as_utc(moment: datetime.datetime) -> datetime.datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=datetime.timezone.utc)
    return moment


def days_ago(event: UsageEvent, now: datetime.datetime) -> int:
    """Whole days between the event and now; negative for future events."""
    return math.floor((now - event.occurred_at) / ONE_DAY)


def rate(numerator: int, denominator: int) -> float:
    """Percentage clamped to [0, 100], rounded to two decimals; 0 for an empty base."""
    if denominator <= 0:
        return 0.0
    return round(min(max(numerator / denominator * 100, 0.0), 100.0), 2)


def funnel_rates(converted: int, total: int) -> tuple[float, float]:
    """Conversion and abandonment percentages that add up to exactly 100.

    The smaller rate is rounded and the larger is its complement, so the
    sum survives float addition. Both are 0 for an empty base.
    """
    if total <= 0:
        return 0.0, 0.0
    conversion = rate(converted, total)
    if conversion <= 50:
        return conversion, 100.0 - conversion
    abandonment = rate(total - converted, total)
    return 100.0 - abandonment, abandonment


def bucket_counts(ages: Iterable[int], window_days: int, bucket_days: int) -> list[int]:
    """Count ages into buckets of ``bucket_days``, oldest bucket first."""
    size = math.ceil(window_days / bucket_days)
    buckets = [0] * size
    for age in ages:
        buckets[size - 1 - age // bucket_days] += 1
    return buckets


def average_time_to_signature(events: Iterable[UsageEvent]) -> float:
    """Mean created-to-signed time in hours over agreements with both events.

    The earliest creation per agreement is used; signatures recorded before
    that creation are ignored.
    """
    created: dict[str, datetime.datetime] = {}
    signed: dict[str, list[datetime.datetime]] = defaultdict(list)

    for event in events:
        if event.agreement_id is None:
            continue
        if event.event_type is UsageEventType.AGREEMENT_CREATED:
            earliest = created.get(event.agreement_id)
            if earliest is None or event.occurred_at < earliest:
                created[event.agreement_id] = event.occurred_at
        elif event.event_type is UsageEventType.AGREEMENT_SIGNED:
            signed[event.agreement_id].append(event.occurred_at)

    durations = []
    for agreement_id, created_at in created.items():
        valid = [s for s in signed.get(agreement_id, []) if s >= created_at]
        if valid:
            durations.append((min(valid) - created_at) / datetime.timedelta(hours=1))

    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 2)


class UsageAggregator(BaseUsageAggregator):
    """Pure, in-memory usage analytics."""

    def template_stats(
        self,
        events: Sequence[UsageEvent],
        window_days: int,
        template_id: str | None = None,
        now: datetime.datetime | None = None,
    ) -> TemplateUsageStats:
        now = self._check_window(window_days, now)

        if template_id is None:
            template_ids = {event.template_id for event in events}
            if len(template_ids) > 1:
                raise DataValidationError(
                    f"Events span {len(template_ids)} templates; pass template_id to select one"
                )
            template_id = next(iter(template_ids), "")

        scoped = [
            event
            for event in self._in_window(events, window_days, now)
            if event.template_id == template_id
        ]
        counts = self._counts_by_type(scoped)
        previews = counts[UsageEventType.PREVIEW]
        created = counts[UsageEventType.AGREEMENT_CREATED]
        conversion_rate, _ = funnel_rates(created, previews)

        ages = [days_ago(event, now) for event in scoped]

        stats = TemplateUsageStats(
            template_id=template_id,
            window_days=window_days,
            total_usage=len(scoped),
            counts_by_type=counts,
            previews=previews,
            agreements_created=created,
            agreements_signed=counts[UsageEventType.AGREEMENT_SIGNED],
            unique_users=len({event.user_id for event in scoped}),
            conversion_rate=conversion_rate,
            average_time_to_signature_hours=average_time_to_signature(scoped),
            last_used=max((event.occurred_at for event in scoped), default=None),
            usage_trend=UsageTrend(
                daily=bucket_counts(ages, window_days, 1),
                weekly=bucket_counts(ages, window_days, 7),
                monthly=bucket_counts(ages, window_days, 30),
            ),
        )

        logger.info(
            f"Template stats for {template_id}: {stats.total_usage} events "
            f"in the last {window_days} days"
        )
        return stats

    def usage_analytics(
        self,
        events: Sequence[UsageEvent],
        window_days: int,
        templates: Sequence[TemplateSummary] = (),
        now: datetime.datetime | None = None,
    ) -> UsageAnalytics:
        now = self._check_window(window_days, now)
        scoped = self._in_window(events, window_days, now)

        active_templates = [t for t in templates if t.is_active]
        by_id = {t.id: t for t in templates}

        template_counts = Counter(event.template_id for event in scoped)
        most_used = [
            TemplateUsageCount(
                template_id=template_id,
                name=by_id[template_id].name if template_id in by_id else None,
                usage_count=count,
            )
            for template_id, count in template_counts.most_common(TOP_TEMPLATES)
        ]

        usage_by_type = {package_type: PackageTypeUsage() for package_type in PackageType}
        for template in active_templates:
            usage_by_type[template.package_type].template_count += 1
        for template_id, count in template_counts.items():
            if template_id in by_id:
                usage_by_type[by_id[template_id].package_type].usage_count += count

        counts = self._counts_by_type(scoped)
        previews = counts[UsageEventType.PREVIEW]
        created = counts[UsageEventType.AGREEMENT_CREATED]
        conversion_rate, abandonment_rate = funnel_rates(created, previews)

        analytics = UsageAnalytics(
            window_days=window_days,
            total_templates=len(active_templates),
            total_usage_events=len(scoped),
            most_used_templates=most_used,
            usage_by_package_type=usage_by_type,
            user_engagement=self._user_engagement(scoped),
            conversion_metrics=ConversionMetrics(
                preview_to_agreement_rate=conversion_rate,
                agreement_to_signature_rate=rate(counts[UsageEventType.AGREEMENT_SIGNED], created),
                average_time_to_signature_hours=average_time_to_signature(scoped),
                abandonment_rate=abandonment_rate,
            ),
            trends=UsageTrends(
                daily_usage=self._daily_series(scoped, window_days, now),
                popular_templates=most_used[:POPULAR_TEMPLATES],
            ),
        )

        logger.info(
            f"Usage analytics over {window_days} days: {analytics.total_usage_events} events, "
            f"{analytics.user_engagement.active_users} active users"
        )
        return analytics

    def user_stats(
        self,
        events: Sequence[UsageEvent],
        user_id: str,
        window_days: int,
        now: datetime.datetime | None = None,
    ) -> UserUsageStats:
        now = self._check_window(window_days, now)
        scoped = [
            event
            for event in self._in_window(events, window_days, now)
            if event.user_id == user_id
        ]

        per_template: dict[str, list[UsageEvent]] = defaultdict(list)
        for event in scoped:
            per_template[event.template_id].append(event)

        templates_used = sorted(
            (
                UserTemplateUsage(
                    template_id=template_id,
                    usage_count=len(template_events),
                    last_used=max(e.occurred_at for e in template_events),
                )
                for template_id, template_events in per_template.items()
            ),
            key=lambda usage: usage.usage_count,
            reverse=True,
        )

        return UserUsageStats(
            user_id=user_id,
            window_days=window_days,
            total_events=len(scoped),
            templates_used=templates_used,
            activity_breakdown=self._counts_by_type(scoped),
            usage_trend=self._daily_series(scoped, window_days, now),
        )

    @staticmethod
    def _check_window(window_days: int, now: datetime.datetime | None) -> datetime.datetime:
        if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days < 1:
            raise DataValidationError(f"window_days must be a positive integer, got {window_days!r}")
        return _as_utc(now) if now is not None else _utc_now()

    @staticmethod
    def _in_window(
        events: Iterable[UsageEvent], window_days: int, now: datetime.datetime
    ) -> list[UsageEvent]:
        return [event for event in events if 0 <= days_ago(event, now) < window_days]

    @staticmethod
    def _counts_by_type(events: Iterable[UsageEvent]) -> dict[UsageEventType, int]:
        counts = dict.fromkeys(UsageEventType, 0)
        for event in events:
            counts[event.event_type] += 1
        return counts

    @staticmethod
    def _user_engagement(events: Sequence[UsageEvent]) -> UserEngagement:
        user_counts = Counter(event.user_id for event in events)
        user_templates: dict[str, list[str]] = defaultdict(list)
        for event in events:
            if event.template_id not in user_templates[event.user_id]:
                user_templates[event.user_id].append(event.template_id)

        active_users = len(user_counts)
        return UserEngagement(
            active_users=active_users,
            average_events_per_user=round(len(events) / active_users, 2) if active_users else 0.0,
            top_users=[
                UserUsage(user_id=user_id, usage_count=count, templates_used=user_templates[user_id])
                for user_id, count in user_counts.most_common(TOP_USERS)
            ],
        )

    @staticmethod
    def _daily_series(
        events: Iterable[UsageEvent], window_days: int, now: datetime.datetime
    ) -> list[DailyCount]:
        """One entry per UTC calendar date from ``now - window_days`` to ``now``."""
        per_date = Counter(event.occurred_at.astimezone(datetime.timezone.utc).date() for event in events)
        today = now.astimezone(datetime.timezone.utc).date()
        return [
            DailyCount(date=day, count=per_date[day])
            for day in (
                today - datetime.timedelta(days=offset) for offset in range(window_days, -1, -1)
            )
        ]
