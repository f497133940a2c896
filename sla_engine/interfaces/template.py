"""Template substitution interfaces.

Defines the template records consumed by the engine and the abstract base
class for variable substitution strategies.
"""

import enum
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sla_engine.interfaces.classifier import PackageType

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class VariableType(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class ValidationRule(BaseModel):
    """Advisory checks applied to a resolved variable value."""

    min: float | None = None
    max: float | None = None
    pattern: str | None = Field(default=None, description="Regular expression")
    allowed_values: list[str] | None = None


class VariableSpec(BaseModel):
    """A declared template variable."""

    name: str = Field(description="Identifier, unique within the template")
    display_name: str
    type: VariableType = VariableType.TEXT
    default_value: Any = None
    description: str = ""
    is_required: bool = False
    validation: ValidationRule | None = None

    @field_validator("name")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not IDENTIFIER.match(v):
            raise ValueError(f"Variable name '{v}' is not a valid identifier")
        return v


class PerformanceMetrics(BaseModel):
    uptime_target: float
    response_time_hours: float
    resolution_time_hours: float
    availability_hours: str
    exclusion_clauses: list[str] = Field(default_factory=list)


class PenaltyStructure(BaseModel):
    breach_penalty_rate: float
    maximum_penalty: float
    grace_period_hours: float
    credit_terms: str


class Template(BaseModel):
    """An SLA template. Immutable input for one generation call."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    package_type: PackageType = PackageType.GENERAL_WEBSITE
    content_body: str = ""
    variables: list[VariableSpec] = Field(default_factory=list)
    default_metrics: PerformanceMetrics | None = None
    default_penalties: PenaltyStructure | None = None
    is_active: bool = True
    version: int = Field(default=1, ge=1)
    usage_count: int = Field(default=0, ge=0)

    @field_validator("variables")
    @classmethod
    def unique_variable_names(cls, v: list[VariableSpec]) -> list[VariableSpec]:
        seen: set[str] = set()
        for spec in v:
            if spec.name in seen:
                raise ValueError(f"Duplicate variable name: {spec.name}")
            seen.add(spec.name)
        return v

    def get_variable(self, name: str) -> VariableSpec | None:
        for spec in self.variables:
            if spec.name == name:
                return spec
        return None


class SubstitutionSource(str, enum.Enum):
    EXPLICIT = "explicit"
    DEFAULT = "default"
    MISSING = "missing"


class Substitution(BaseModel):
    """How one referenced placeholder was resolved."""

    model_config = ConfigDict(frozen=True)

    variable_name: str
    value: Any = None
    source: SubstitutionSource


class SubstitutionResult(BaseModel):
    """Outcome of one substitution pass. Never persisted by the engine."""

    model_config = ConfigDict(frozen=True)

    final_content: str
    substitutions: list[Substitution] = Field(
        description="One entry per distinct placeholder, in first-occurrence order"
    )
    missing_variables: list[str] = Field(
        description="Undeclared or unresolved placeholder names, no duplicates"
    )
    validation_errors: list[str]


class BaseVariableSubstitutor(ABC):
    """Abstract base class for variable substitution strategies.

    Resolves ``{{name}}`` placeholders in a template body against the
    template's declared variables and a caller-supplied value bag.
    """

    @abstractmethod
    def substitute(
        self,
        template: Template,
        provided_values: Mapping[str, Any],
        user_override_content: str | None = None,
    ) -> SubstitutionResult:
        """Render the template body.

        Args:
            template: The template to render.
            provided_values: Explicit variable values.
            user_override_content: Manually edited content that replaces the
                computed content in the result.

        Returns:
            SubstitutionResult describing content and every resolution.

        Raises:
            TemplateError: If the template exceeds configured limits or
                declares an invalid validation pattern.
        """

    @abstractmethod
    def preview(self, template: Template, provided_values: Mapping[str, Any]) -> str:
        """Render for display, showing unresolved variables as ``[Display Name]``."""

    @abstractmethod
    def lint(self, template: Template) -> list[str]:
        """Return placeholder names the template references but does not declare."""
