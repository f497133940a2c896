"""Value helpers for variable substitution.

Stringification of resolved values and the advisory validation rules
declared on a VariableSpec.
"""

import datetime
import math
import re
from decimal import Decimal
from functools import lru_cache
from typing import Any

from sla_engine.core.errors import TemplateError
from sla_engine.interfaces.template import VariableSpec


def stringify_value(value: Any) -> str:
    """Render a resolved value as it appears in document text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify_value(v) for v in value)
    return str(value)


def to_number(value: Any) -> float | None:
    """Coerce to a finite float, or None when the value is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def compile_pattern(pattern: str, variable_name: str) -> re.Pattern[str]:
    try:
        return _compile(pattern)
    except re.error as e:
        raise TemplateError(
            f"Template validation failed for '{variable_name}'",
            detail=f"Invalid pattern {pattern!r}: {e}",
        ) from e


def _format_bound(bound: float) -> str:
    return stringify_value(bound)


def validate_value(spec: VariableSpec, value: Any) -> list[str]:
    """Check a resolved value against the variable's validation rule.

    Each failed check yields one message. Validation is advisory: callers
    still substitute the value.

    Args:
        spec: The variable declaration.
        value: The resolved value.

    Returns:
        Human-readable messages, empty when every check passed.

    Raises:
        TemplateError: If the declared pattern is not a valid regular expression.
    """
    rule = spec.validation
    if rule is None:
        return []

    errors: list[str] = []

    if rule.min is not None or rule.max is not None:
        number = to_number(value)
        if number is None:
            errors.append(f"{spec.name}: Value must be a number")
        else:
            if rule.min is not None and number < rule.min:
                errors.append(f"{spec.name}: Value must be at least {_format_bound(rule.min)}")
            if rule.max is not None and number > rule.max:
                errors.append(f"{spec.name}: Value must be at most {_format_bound(rule.max)}")

    if rule.pattern:
        regex = compile_pattern(rule.pattern, spec.name)
        if not regex.search(stringify_value(value)):
            errors.append(f"{spec.name}: Value does not match required pattern")

    if rule.allowed_values:
        if stringify_value(value) not in rule.allowed_values:
            errors.append(
                f"{spec.name}: Value must be one of: {', '.join(rule.allowed_values)}"
            )

    return errors
