"""Variable substitution strategies.

Placeholder resolution, value validation and quote-to-variable mapping.
"""

from sla_engine.strategies.substitution.engine import VariableSubstitutor, referenced_names
from sla_engine.strategies.substitution.mapper import VariableMapper

__all__ = [
    "VariableMapper",
    "VariableSubstitutor",
    "referenced_names",
]
