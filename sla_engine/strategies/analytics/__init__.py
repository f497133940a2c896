"""Usage analytics strategies."""

from sla_engine.strategies.analytics.aggregator import UsageAggregator

__all__ = ["UsageAggregator"]
