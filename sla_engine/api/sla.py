"""SLA engine API routes.

Stateless wrappers around the engine components: templates are rendered,
quotes classified, numbers proposed and usage aggregated from the request
body alone.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from sla_engine.api.deps import get_factory
from sla_engine.api.schemas import (
    DetectPackageTypeRequest,
    LintRequest,
    LintResponse,
    PreviewRequest,
    PreviewResponse,
    ProposeNumberRequest,
    RenderRequest,
    TemplateStatsRequest,
    UsageAnalyticsRequest,
    UserStatsRequest,
    ValidatePackageTypeRequest,
)
from sla_engine.core.errors import SLAError
from sla_engine.core.factory import ComponentFactory
from sla_engine.interfaces.analytics import TemplateUsageStats, UsageAnalytics, UserUsageStats
from sla_engine.interfaces.classifier import ClassificationResult, PackageType, PackageValidation
from sla_engine.interfaces.numbering import SequenceAllocation
from sla_engine.interfaces.template import SubstitutionResult
from sla_engine.strategies.classifier import ClassificationInput, classification_input_from_quote
from sla_engine.strategies.defaults import DefaultTerms, default_terms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sla", tags=["sla"])


# =============================================================================
# Helper Functions
# =============================================================================


def _classification_input(request: DetectPackageTypeRequest) -> ClassificationInput:
    if request.quote is not None:
        return classification_input_from_quote(request.quote, request.client, request.extra)
    return ClassificationInput(
        free_text=tuple(request.free_text),
        item_descriptions=tuple(request.item_descriptions),
        total_value=request.total_value,
        item_count=request.item_count,
    )


def _internal_error(operation: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected error during {operation}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {operation}",
    )


# =============================================================================
# Template Endpoints
# =============================================================================


@router.post("/templates/render", response_model=SubstitutionResult)
async def render_template(
    request: RenderRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> SubstitutionResult:
    """Substitute a template's placeholders with the supplied values.

    Missing variables and failed validation rules are reported in the
    response body, not as errors.
    """
    try:
        logger.info(f"Rendering template {request.template.id} with {len(request.values)} values")
        return factory.get_substitutor().substitute(
            request.template, request.values, request.override_content
        )
    except SLAError:
        raise
    except Exception as e:
        raise _internal_error("render template", e) from e


@router.post("/templates/preview", response_model=PreviewResponse)
async def preview_template(
    request: PreviewRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> PreviewResponse:
    """Render a template for display, showing unresolved variables as ``[Display Name]``."""
    try:
        content = factory.get_substitutor().preview(request.template, request.values)
        return PreviewResponse(content=content)
    except SLAError:
        raise
    except Exception as e:
        raise _internal_error("preview template", e) from e


@router.post("/templates/lint", response_model=LintResponse)
async def lint_template(
    request: LintRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> LintResponse:
    """List placeholders the template references without declaring them."""
    undeclared = factory.get_substitutor().lint(request.template)
    if undeclared:
        logger.warning(f"Template {request.template.id} has undeclared placeholders: {undeclared}")
    return LintResponse(is_valid=not undeclared, undeclared_variables=undeclared)


# =============================================================================
# Package Type Endpoints
# =============================================================================


@router.post("/package-type/detect", response_model=ClassificationResult)
async def detect_package_type(
    request: DetectPackageTypeRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> ClassificationResult:
    """Classify a quote into one of the package types."""
    try:
        evidence = _classification_input(request)
        return factory.get_classifier().classify(
            evidence.free_text,
            evidence.item_descriptions,
            evidence.total_value,
            evidence.item_count,
        )
    except SLAError:
        raise
    except Exception as e:
        raise _internal_error("detect package type", e) from e


@router.post("/package-type/validate", response_model=PackageValidation)
async def validate_package_type(
    request: ValidatePackageTypeRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> PackageValidation:
    """Check a chosen package type against the quote's evidence."""
    try:
        evidence = _classification_input(request)
        return factory.get_classifier().validate(
            request.detected_type,
            evidence.free_text,
            evidence.item_descriptions,
            evidence.total_value,
            evidence.item_count,
        )
    except SLAError:
        raise
    except Exception as e:
        raise _internal_error("validate package type", e) from e


@router.get("/package-types/{package_type}/defaults", response_model=DefaultTerms)
async def get_package_defaults(package_type: PackageType) -> DefaultTerms:
    """Default performance metrics and penalties for a package type."""
    return default_terms(package_type)


# =============================================================================
# Numbering Endpoints
# =============================================================================


@router.post("/numbering/propose", response_model=SequenceAllocation)
async def propose_number(
    request: ProposeNumberRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> SequenceAllocation:
    """Propose the document number for a counter value.

    Nothing is reserved: the caller commits the number and retries once
    on a uniqueness conflict.
    """
    format_template = request.format_template or factory.number_format(request.document_kind)
    allocation = factory.get_allocator().propose(
        format_template, request.current_counter, request.context_vars
    )
    logger.info(f"Proposed {request.document_kind} number {allocation.proposed_number}")
    return allocation


# =============================================================================
# Usage Endpoints
# =============================================================================


@router.post("/usage/template-stats", response_model=TemplateUsageStats)
async def template_usage_stats(
    request: TemplateStatsRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> TemplateUsageStats:
    """Usage statistics for one template over the window."""
    window_days = request.window_days or factory.settings.default_window_days
    return factory.get_aggregator().template_stats(
        request.events, window_days, template_id=request.template_id, now=request.now
    )


@router.post("/usage/analytics", response_model=UsageAnalytics)
async def usage_analytics(
    request: UsageAnalyticsRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> UsageAnalytics:
    """Cross-template usage analytics over the window."""
    window_days = request.window_days or factory.settings.default_window_days
    return factory.get_aggregator().usage_analytics(
        request.events, window_days, templates=request.templates, now=request.now
    )


@router.post("/usage/user-stats", response_model=UserUsageStats)
async def user_usage_stats(
    request: UserStatsRequest,
    factory: ComponentFactory = Depends(get_factory),
) -> UserUsageStats:
    """One user's activity over the window."""
    window_days = request.window_days or factory.settings.default_window_days
    return factory.get_aggregator().user_stats(
        request.events, request.user_id, window_days, now=request.now
    )
