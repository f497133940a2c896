"""Default SLA terms per package type."""

from pydantic import BaseModel, ConfigDict

from sla_engine.interfaces.classifier import PackageType
from sla_engine.interfaces.template import PenaltyStructure, PerformanceMetrics


class DefaultTerms(BaseModel):
    model_config = ConfigDict(frozen=True)

    package_type: PackageType
    performance_metrics: PerformanceMetrics
    penalty_structure: PenaltyStructure


DEFAULT_PERFORMANCE_METRICS: dict[PackageType, PerformanceMetrics] = {
    PackageType.ECOM_SITE: PerformanceMetrics(
        uptime_target=99.9,
        response_time_hours=1,
        resolution_time_hours=4,
        availability_hours="24/7",
        exclusion_clauses=["Scheduled maintenance", "Force majeure events"],
    ),
    PackageType.GENERAL_WEBSITE: PerformanceMetrics(
        uptime_target=99.5,
        response_time_hours=2,
        resolution_time_hours=8,
        availability_hours="Business hours (9-5, Mon-Fri)",
        exclusion_clauses=["Scheduled maintenance", "Third-party service failures"],
    ),
    PackageType.BUSINESS_PROCESS_SYSTEMS: PerformanceMetrics(
        uptime_target=99.0,
        response_time_hours=4,
        resolution_time_hours=24,
        availability_hours="Business hours (8-6, Mon-Fri)",
        exclusion_clauses=["Scheduled maintenance", "Data backup windows", "User training periods"],
    ),
    PackageType.MARKETING: PerformanceMetrics(
        uptime_target=98.0,
        response_time_hours=8,
        resolution_time_hours=48,
        availability_hours="Business hours (9-5, Mon-Fri)",
        exclusion_clauses=["Campaign launches", "A/B testing periods", "Content updates"],
    ),
}

DEFAULT_PENALTY_STRUCTURES: dict[PackageType, PenaltyStructure] = {
    PackageType.ECOM_SITE: PenaltyStructure(
        breach_penalty_rate=10,
        maximum_penalty=1000,
        grace_period_hours=1,
        credit_terms="Service credit for next billing cycle",
    ),
    PackageType.GENERAL_WEBSITE: PenaltyStructure(
        breach_penalty_rate=5,
        maximum_penalty=500,
        grace_period_hours=2,
        credit_terms="Service credit for next billing cycle",
    ),
    PackageType.BUSINESS_PROCESS_SYSTEMS: PenaltyStructure(
        breach_penalty_rate=15,
        maximum_penalty=2000,
        grace_period_hours=4,
        credit_terms="Service credit or partial refund",
    ),
    PackageType.MARKETING: PenaltyStructure(
        breach_penalty_rate=5,
        maximum_penalty=300,
        grace_period_hours=8,
        credit_terms="Service credit for next campaign",
    ),
}


def default_terms(package_type: PackageType | str) -> DefaultTerms:
    """Default performance metrics and penalties for a package type.

    Raises:
        ValueError: If ``package_type`` is not a known package type.
    """
    package_type = PackageType(package_type)
    return DefaultTerms(
        package_type=package_type,
        performance_metrics=DEFAULT_PERFORMANCE_METRICS[package_type],
        penalty_structure=DEFAULT_PENALTY_STRUCTURES[package_type],
    )
