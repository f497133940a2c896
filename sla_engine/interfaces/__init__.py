"""Abstract base classes and records for the SLA engine components."""

from sla_engine.interfaces.analytics import BaseUsageAggregator, TemplateSummary, UsageEvent
from sla_engine.interfaces.classifier import BasePackageClassifier, PackageType
from sla_engine.interfaces.numbering import BaseSequenceAllocator, NumberingStore, SequenceAllocation
from sla_engine.interfaces.template import BaseVariableSubstitutor, Template, VariableSpec

__all__ = [
    "BaseVariableSubstitutor",
    "BasePackageClassifier",
    "BaseSequenceAllocator",
    "BaseUsageAggregator",
    "NumberingStore",
    "PackageType",
    "SequenceAllocation",
    "Template",
    "TemplateSummary",
    "UsageEvent",
    "VariableSpec",
]
