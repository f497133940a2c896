"""Concrete strategy implementations."""

from sla_engine.strategies.analytics import UsageAggregator
from sla_engine.strategies.classifier import HeuristicPackageClassifier
from sla_engine.strategies.defaults import default_terms
from sla_engine.strategies.numbering import SequenceAllocator, commit_with_retry
from sla_engine.strategies.substitution import VariableMapper, VariableSubstitutor

__all__ = [
    "HeuristicPackageClassifier",
    "SequenceAllocator",
    "UsageAggregator",
    "VariableMapper",
    "VariableSubstitutor",
    "commit_with_retry",
    "default_terms",
]
