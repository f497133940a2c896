"""Package type classification strategies."""

from sla_engine.strategies.classifier.heuristic import (
    ClassificationInput,
    HeuristicPackageClassifier,
    classification_input_from_quote,
)
from sla_engine.strategies.classifier.patterns import CATEGORY_PROFILES, CategoryProfile

__all__ = [
    "CATEGORY_PROFILES",
    "CategoryProfile",
    "ClassificationInput",
    "HeuristicPackageClassifier",
    "classification_input_from_quote",
]
