"""Variable substitution strategy.

Resolves ``{{identifier}}`` placeholders in a template body against the
template's declared variables and a caller-supplied value bag. Missing
values and failed validation rules are reported in the result rather than
raised, so the caller decides whether to proceed.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from sla_engine.core.errors import GenerationError, SLAError, TemplateError
from sla_engine.interfaces.template import (
    BaseVariableSubstitutor,
    Substitution,
    SubstitutionResult,
    SubstitutionSource,
    Template,
    VariableSpec,
)
from sla_engine.strategies.substitution.values import stringify_value, validate_value

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")


def referenced_names(content: str) -> list[str]:
    """Distinct placeholder names in first-occurrence order."""
    return list(dict.fromkeys(PLACEHOLDER.findall(content)))


class VariableSubstitutor(BaseVariableSubstitutor):
    """Single-pass placeholder substitution.

    Replacement happens in one regex pass over the original body, so a
    value that itself contains ``{{...}}`` is inserted literally and never
    expanded again.
    """

    def __init__(
        self,
        max_template_size: int = 100_000,
        max_variable_substitutions: int = 100,
    ) -> None:
        """Initialize the substitutor.

        Args:
            max_template_size: Largest accepted body, in characters.
            max_variable_substitutions: Most distinct placeholders per template.
        """
        self._max_template_size = max_template_size
        self._max_variable_substitutions = max_variable_substitutions

    def substitute(
        self,
        template: Template,
        provided_values: Mapping[str, Any],
        user_override_content: str | None = None,
    ) -> SubstitutionResult:
        try:
            names = self._scan(template)

            substitutions: list[Substitution] = []
            missing: list[str] = []
            validation_errors: list[str] = []
            rendered: dict[str, str] = {}

            for name in names:
                spec = template.get_variable(name)
                if spec is None:
                    # Authoring defect: leave the token in place
                    missing.append(name)
                    continue

                value, source = self._resolve(spec, provided_values)
                substitutions.append(
                    Substitution(variable_name=name, value=value, source=source)
                )
                if source is SubstitutionSource.MISSING:
                    missing.append(name)
                    continue

                validation_errors.extend(validate_value(spec, value))
                rendered[name] = stringify_value(value)

            content = self._replace(template.content_body, rendered)
            if user_override_content is not None:
                content = user_override_content

            logger.info(
                f"Substitution complete for template {template.id}: "
                f"{len(rendered)} resolved, {len(missing)} missing, "
                f"{len(validation_errors)} validation errors"
            )

            return SubstitutionResult(
                final_content=content,
                substitutions=substitutions,
                missing_variables=missing,
                validation_errors=validation_errors,
            )

        except SLAError:
            raise
        except Exception as e:
            logger.error(f"Substitution failed for template {template.id}: {e}", exc_info=True)
            raise GenerationError(
                "Document substitution failed", detail=f"Template: {template.id}, Stage: substitute"
            ) from e

    def preview(self, template: Template, provided_values: Mapping[str, Any]) -> str:
        names = self._scan(template)
        rendered: dict[str, str] = {}

        for name in names:
            spec = template.get_variable(name)
            if spec is None:
                continue
            value, source = self._resolve(spec, provided_values)
            if source is SubstitutionSource.MISSING:
                rendered[name] = f"[{spec.display_name}]"
            else:
                rendered[name] = stringify_value(value)

        logger.debug(f"Preview rendered for template {template.id}")
        return self._replace(template.content_body, rendered)

    def lint(self, template: Template) -> list[str]:
        return [
            name
            for name in referenced_names(template.content_body)
            if template.get_variable(name) is None
        ]

    def ensure_valid(self, template: Template) -> None:
        """Raise if the template references undeclared variables.

        Raises:
            TemplateError: Listing every undeclared placeholder.
        """
        undeclared = self.lint(template)
        if undeclared:
            raise TemplateError(
                f"Template validation failed for '{template.id}'",
                detail=f"Undeclared placeholders: {', '.join(undeclared)}",
            )

    def _scan(self, template: Template) -> list[str]:
        if len(template.content_body) > self._max_template_size:
            raise TemplateError(
                f"Template {template.id} is too large",
                detail=(
                    f"{len(template.content_body)} characters exceeds the limit "
                    f"of {self._max_template_size}"
                ),
            )

        names = referenced_names(template.content_body)
        if len(names) > self._max_variable_substitutions:
            raise TemplateError(
                f"Template {template.id} references too many variables",
                detail=(
                    f"{len(names)} distinct placeholders exceeds the limit "
                    f"of {self._max_variable_substitutions}"
                ),
            )
        return names

    @staticmethod
    def _resolve(
        spec: VariableSpec, provided_values: Mapping[str, Any]
    ) -> tuple[Any, SubstitutionSource]:
        """Explicit value, then default for optional variables, else missing."""
        value = provided_values.get(spec.name)
        if value is not None:
            return value, SubstitutionSource.EXPLICIT
        if not spec.is_required and spec.default_value is not None:
            return spec.default_value, SubstitutionSource.DEFAULT
        return None, SubstitutionSource.MISSING

    @staticmethod
    def _replace(content: str, rendered: Mapping[str, str]) -> str:
        return PLACEHOLDER.sub(lambda m: rendered.get(m.group(1), m.group(0)), content)
