"""Unit tests for the Usage Analytics Aggregator."""

import datetime
import itertools

import pytest
from pydantic import ValidationError

from sla_engine.core.errors import DataValidationError
from sla_engine.interfaces.analytics import (
    PreviewMetadata,
    TemplateSummary,
    UsageEvent,
    UsageEventType,
)
from sla_engine.interfaces.classifier import PackageType
from sla_engine.strategies.analytics import UsageAggregator
from sla_engine.strategies.analytics.aggregator import (
    average_time_to_signature,
    funnel_rates,
    rate,
)

NOW = datetime.datetime(2025, 6, 30, 12, 0, tzinfo=datetime.timezone.utc)
_ids = itertools.count(1)


def make_event(
    event_type: UsageEventType = UsageEventType.PREVIEW,
    days_ago: float = 0.0,
    template_id: str = "tpl-1",
    user_id: str = "user-1",
    agreement_id: str | None = None,
) -> UsageEvent:
    return UsageEvent(
        id=f"evt-{next(_ids)}",
        template_id=template_id,
        event_type=event_type,
        user_id=user_id,
        agreement_id=agreement_id,
        occurred_at=NOW - datetime.timedelta(days=days_ago),
    )


# =============================================================================
# Template Stats Tests
# =============================================================================


class TestTemplateStats:
    """Test suite for UsageAggregator.template_stats."""

    @pytest.fixture
    def aggregator(self):
        """Create an aggregator instance."""
        return UsageAggregator()

    def test_window_discards_outside_events(self, aggregator):
        """Test only events aged 0 to window_days - 1 whole days are counted."""
        events = [
            make_event(days_ago=0),
            make_event(days_ago=1.5),
            make_event(days_ago=29.9),
            make_event(days_ago=30),
            make_event(days_ago=-0.5),
        ]

        stats = aggregator.template_stats(events, 30, now=NOW)

        assert stats.total_usage == 3
        assert sum(stats.usage_trend.daily) == 3
        assert len(stats.usage_trend.daily) == 30
        assert stats.usage_trend.daily[-1] == 1
        assert stats.usage_trend.daily[-2] == 1
        assert stats.usage_trend.daily[0] == 1

    def test_trend_bucket_sizes(self, aggregator):
        """Test weekly and monthly buckets, oldest first."""
        events = [make_event(days_ago=d) for d in (0, 6, 7, 20, 29)]

        stats = aggregator.template_stats(events, 30, now=NOW)

        assert stats.usage_trend.weekly == [1, 0, 1, 1, 2]
        assert stats.usage_trend.monthly == [5]
        assert sum(stats.usage_trend.weekly) == sum(stats.usage_trend.daily) == 5

    def test_daily_trend_never_exceeds_event_count(self, aggregator):
        """Test the trend is bounded by the events supplied."""
        events = [make_event(days_ago=d) for d in (0, 3, 45, 90)]

        stats = aggregator.template_stats(events, 7, now=NOW)

        assert sum(stats.usage_trend.daily) <= len(events)
        assert sum(stats.usage_trend.daily) == 2

    def test_counts_and_conversion(self, aggregator):
        """Test counts by type, unique users and conversion rate."""
        events = [
            make_event(UsageEventType.PREVIEW, user_id="u1"),
            make_event(UsageEventType.PREVIEW, user_id="u2"),
            make_event(UsageEventType.PREVIEW, user_id="u1"),
            make_event(UsageEventType.PREVIEW, user_id="u3"),
            make_event(UsageEventType.AGREEMENT_CREATED, user_id="u1", agreement_id="a1"),
            make_event(UsageEventType.AGREEMENT_CREATED, user_id="u2", agreement_id="a2"),
            make_event(UsageEventType.AGREEMENT_SIGNED, user_id="u2", agreement_id="a2"),
        ]

        stats = aggregator.template_stats(events, 30, now=NOW)

        assert stats.previews == 4
        assert stats.agreements_created == 2
        assert stats.agreements_signed == 1
        assert stats.counts_by_type[UsageEventType.TEMPLATE_VIEWED] == 0
        assert stats.unique_users == 3
        assert stats.conversion_rate == 50.0

    def test_conversion_without_previews(self, aggregator):
        """Test conversion is zero when nothing was previewed."""
        events = [make_event(UsageEventType.AGREEMENT_CREATED, agreement_id="a1")]

        stats = aggregator.template_stats(events, 30, now=NOW)

        assert stats.conversion_rate == 0.0

    def test_average_time_to_signature(self, aggregator):
        """Test only matched created/signed pairs contribute."""
        events = [
            make_event(UsageEventType.AGREEMENT_CREATED, days_ago=2, agreement_id="a1"),
            make_event(UsageEventType.AGREEMENT_SIGNED, days_ago=2 - 0.25, agreement_id="a1"),
            make_event(UsageEventType.AGREEMENT_CREATED, days_ago=1, agreement_id="a2"),
            make_event(UsageEventType.AGREEMENT_SIGNED, days_ago=0.5, agreement_id="a2"),
            make_event(UsageEventType.AGREEMENT_SIGNED, days_ago=0.1, agreement_id="orphan"),
        ]

        stats = aggregator.template_stats(events, 30, now=NOW)

        assert stats.average_time_to_signature_hours == 9.0

    def test_last_used(self, aggregator):
        """Test last_used is the most recent in-window event."""
        events = [make_event(days_ago=3), make_event(days_ago=1), make_event(days_ago=40)]

        stats = aggregator.template_stats(events, 30, now=NOW)

        assert stats.last_used == NOW - datetime.timedelta(days=1)

    def test_empty_events(self, aggregator):
        """Test an empty event list."""
        stats = aggregator.template_stats([], 14, template_id="tpl-9", now=NOW)

        assert stats.template_id == "tpl-9"
        assert stats.total_usage == 0
        assert stats.last_used is None
        assert stats.usage_trend.daily == [0] * 14
        assert len(stats.usage_trend.weekly) == 2

    def test_multiple_templates_need_template_id(self, aggregator):
        """Test mixed events must name the template to report on."""
        events = [make_event(template_id="tpl-1"), make_event(template_id="tpl-2")]

        with pytest.raises(DataValidationError):
            aggregator.template_stats(events, 30, now=NOW)

        stats = aggregator.template_stats(events, 30, template_id="tpl-2", now=NOW)
        assert stats.total_usage == 1

    @pytest.mark.parametrize("window_days", [0, -3])
    def test_invalid_window(self, aggregator, window_days):
        """Test the window must be positive."""
        with pytest.raises(DataValidationError):
            aggregator.template_stats([], window_days, now=NOW)

    def test_events_are_not_mutated(self, aggregator):
        """Test aggregation leaves its input untouched."""
        events = [make_event(days_ago=1), make_event(days_ago=2)]
        before = [event.model_copy() for event in events]

        aggregator.template_stats(events, 30, now=NOW)

        assert events == before


# =============================================================================
# Cross-Template Analytics Tests
# =============================================================================


class TestUsageAnalytics:
    """Test suite for UsageAggregator.usage_analytics."""

    @pytest.fixture
    def aggregator(self):
        """Create an aggregator instance."""
        return UsageAggregator()

    @pytest.fixture
    def templates(self):
        """Active and inactive template summaries."""
        return [
            TemplateSummary(id="tpl-1", name="Online Store SLA", package_type=PackageType.ECOM_SITE),
            TemplateSummary(id="tpl-2", name="Campaign SLA", package_type=PackageType.MARKETING),
            TemplateSummary(
                id="tpl-3",
                name="Retired SLA",
                package_type=PackageType.MARKETING,
                is_active=False,
            ),
        ]

    @pytest.fixture
    def events(self):
        """A small funnel across two templates and three users."""
        return [
            make_event(UsageEventType.PREVIEW, template_id="tpl-1", user_id="u1"),
            make_event(UsageEventType.PREVIEW, template_id="tpl-1", user_id="u2", days_ago=1),
            make_event(UsageEventType.PREVIEW, template_id="tpl-2", user_id="u1", days_ago=2),
            make_event(UsageEventType.PREVIEW, template_id="tpl-1", user_id="u3", days_ago=3),
            make_event(
                UsageEventType.AGREEMENT_CREATED, template_id="tpl-1", user_id="u1", agreement_id="a1"
            ),
            make_event(
                UsageEventType.AGREEMENT_CREATED,
                template_id="tpl-1",
                user_id="u2",
                days_ago=1,
                agreement_id="a2",
            ),
            make_event(
                UsageEventType.AGREEMENT_CREATED,
                template_id="tpl-2",
                user_id="u1",
                days_ago=2,
                agreement_id="a3",
            ),
            make_event(
                UsageEventType.AGREEMENT_SIGNED,
                template_id="tpl-2",
                user_id="u1",
                days_ago=1.5,
                agreement_id="a3",
            ),
            make_event(UsageEventType.PREVIEW, template_id="tpl-1", user_id="u1", days_ago=60),
        ]

    def test_funnel_rates(self, aggregator, events, templates):
        """Test conversion and abandonment add up to 100."""
        analytics = aggregator.usage_analytics(events, 30, templates, now=NOW)

        metrics = analytics.conversion_metrics
        assert metrics.preview_to_agreement_rate == 75.0
        assert metrics.abandonment_rate == 25.0
        assert metrics.preview_to_agreement_rate + metrics.abandonment_rate == 100
        assert metrics.agreement_to_signature_rate == 33.33
        assert metrics.average_time_to_signature_hours == 12.0

    @pytest.mark.parametrize(
        "previews,created",
        [(160, 23), (160, 137), (3, 1), (3, 2), (7, 5), (9, 2), (11, 10), (2, 1)],
    )
    def test_funnel_rates_sum_to_100(self, aggregator, previews, created):
        """Test two-decimal rounding never pulls the funnel off 100."""
        events = [make_event(UsageEventType.PREVIEW) for _ in range(previews)] + [
            make_event(UsageEventType.AGREEMENT_CREATED, agreement_id=f"a{i}")
            for i in range(created)
        ]

        metrics = aggregator.usage_analytics(events, 30, now=NOW).conversion_metrics

        assert metrics.preview_to_agreement_rate + metrics.abandonment_rate == 100
        assert metrics.preview_to_agreement_rate == pytest.approx(
            created / previews * 100, abs=0.005
        )

    def test_rates_without_previews(self, aggregator):
        """Test every rate is zero when there are no previews or agreements."""
        analytics = aggregator.usage_analytics([make_event(UsageEventType.TEMPLATE_VIEWED)], 30, now=NOW)

        metrics = analytics.conversion_metrics
        assert metrics.preview_to_agreement_rate == 0.0
        assert metrics.abandonment_rate == 0.0
        assert metrics.agreement_to_signature_rate == 0.0

    def test_rates_are_clamped(self, aggregator):
        """Test more agreements than previews still gives rates within bounds."""
        events = [
            make_event(UsageEventType.PREVIEW),
            make_event(UsageEventType.AGREEMENT_CREATED, agreement_id="a1"),
            make_event(UsageEventType.AGREEMENT_CREATED, agreement_id="a2"),
        ]

        metrics = aggregator.usage_analytics(events, 30, now=NOW).conversion_metrics

        assert metrics.preview_to_agreement_rate == 100.0
        assert metrics.abandonment_rate == 0.0

    def test_template_and_package_type_usage(self, aggregator, events, templates):
        """Test top templates and usage summed per package type."""
        analytics = aggregator.usage_analytics(events, 30, templates, now=NOW)

        assert analytics.total_templates == 2
        assert analytics.total_usage_events == 8
        assert [t.template_id for t in analytics.most_used_templates] == ["tpl-1", "tpl-2"]
        assert analytics.most_used_templates[0].name == "Online Store SLA"
        assert analytics.most_used_templates[0].usage_count == 5

        by_type = analytics.usage_by_package_type
        assert by_type[PackageType.ECOM_SITE].template_count == 1
        assert by_type[PackageType.ECOM_SITE].usage_count == 5
        assert by_type[PackageType.MARKETING].template_count == 1
        assert by_type[PackageType.MARKETING].usage_count == 3
        assert by_type[PackageType.GENERAL_WEBSITE].usage_count == 0

    def test_user_engagement(self, aggregator, events, templates):
        """Test active users and their distinct templates."""
        engagement = aggregator.usage_analytics(events, 30, templates, now=NOW).user_engagement

        assert engagement.active_users == 3
        assert engagement.average_events_per_user == 2.67
        assert engagement.top_users[0].user_id == "u1"
        assert engagement.top_users[0].usage_count == 5
        assert engagement.top_users[0].templates_used == ["tpl-1", "tpl-2"]

    def test_daily_series(self, aggregator, events, templates):
        """Test the daily series covers every date in the window."""
        trends = aggregator.usage_analytics(events, 7, templates, now=NOW).trends

        assert len(trends.daily_usage) == 8
        assert trends.daily_usage[0].date == datetime.date(2025, 6, 23)
        assert trends.daily_usage[-1].date == datetime.date(2025, 6, 30)
        assert trends.daily_usage[-1].count == 2
        assert sum(day.count for day in trends.daily_usage) == 8
        assert [t.template_id for t in trends.popular_templates] == ["tpl-1", "tpl-2"]

    def test_unknown_templates_have_no_name(self, aggregator):
        """Test events for templates missing from the summary list."""
        analytics = aggregator.usage_analytics([make_event(template_id="gone")], 30, now=NOW)

        assert analytics.most_used_templates[0].name is None
        assert analytics.total_templates == 0


# =============================================================================
# User Stats Tests
# =============================================================================


class TestUserStats:
    """Test suite for UsageAggregator.user_stats."""

    def test_user_activity(self):
        """Test per-user counts, templates and activity breakdown."""
        events = [
            make_event(UsageEventType.PREVIEW, template_id="tpl-1", user_id="u1", days_ago=2),
            make_event(UsageEventType.PREVIEW, template_id="tpl-2", user_id="u1", days_ago=1),
            make_event(UsageEventType.PREVIEW, template_id="tpl-2", user_id="u1"),
            make_event(UsageEventType.PREVIEW, template_id="tpl-2", user_id="u2"),
        ]

        stats = UsageAggregator().user_stats(events, "u1", 30, now=NOW)

        assert stats.total_events == 3
        assert [t.template_id for t in stats.templates_used] == ["tpl-2", "tpl-1"]
        assert stats.templates_used[0].usage_count == 2
        assert stats.templates_used[0].last_used == NOW
        assert stats.activity_breakdown[UsageEventType.PREVIEW] == 3
        assert sum(day.count for day in stats.usage_trend) == 3


# =============================================================================
# Helper and Event Model Tests
# =============================================================================


class TestAnalyticsHelpers:
    """Test suite for aggregation helpers and the event model."""

    def test_rate_bounds(self):
        """Test rates are clamped and rounded."""
        assert rate(1, 3) == 33.33
        assert rate(5, 2) == 100.0
        assert rate(-1, 2) == 0.0
        assert rate(1, 0) == 0.0

    def test_funnel_rates(self):
        """Test the larger rate is the complement of the rounded smaller one."""
        assert funnel_rates(23, 160) == (14.37, 100.0 - 14.37)
        assert funnel_rates(137, 160) == (100.0 - 14.37, 14.37)
        assert funnel_rates(3, 2) == (100.0, 0.0)
        assert funnel_rates(0, 0) == (0.0, 0.0)

    def test_signature_before_creation_is_ignored(self):
        """Test a signature recorded before its creation does not count."""
        events = [
            make_event(UsageEventType.AGREEMENT_SIGNED, days_ago=3, agreement_id="a1"),
            make_event(UsageEventType.AGREEMENT_CREATED, days_ago=2, agreement_id="a1"),
        ]

        assert average_time_to_signature(events) == 0.0

    def test_metadata_kind_is_derived(self):
        """Test metadata is tagged from the event type."""
        event = UsageEvent(
            id="e1",
            template_id="tpl-1",
            event_type=UsageEventType.PREVIEW,
            user_id="u1",
            metadata={"quote_number": "Q-2025-0001"},
            occurred_at=NOW,
        )

        assert isinstance(event.metadata, PreviewMetadata)
        assert event.metadata.quote_number == "Q-2025-0001"

    def test_metadata_must_match_event_type(self):
        """Test metadata of another event type is rejected."""
        with pytest.raises(ValidationError):
            UsageEvent(
                id="e1",
                template_id="tpl-1",
                event_type=UsageEventType.PREVIEW,
                user_id="u1",
                metadata={"kind": "agreement_signed", "signer_name": "Jo"},
                occurred_at=NOW,
            )

    def test_unknown_metadata_fields_rejected(self):
        """Test metadata shapes are closed."""
        with pytest.raises(ValidationError):
            UsageEvent(
                id="e1",
                template_id="tpl-1",
                event_type=UsageEventType.PREVIEW,
                user_id="u1",
                metadata={"free_form": True},
                occurred_at=NOW,
            )

    def test_naive_timestamps_are_utc(self):
        """Test naive timestamps are taken as UTC."""
        event = UsageEvent(
            id="e1",
            template_id="tpl-1",
            event_type=UsageEventType.TEMPLATE_VIEWED,
            user_id="u1",
            occurred_at=datetime.datetime(2025, 1, 1, 9, 0),
        )

        assert event.occurred_at.tzinfo == datetime.timezone.utc
