"""Engine configuration using Pydantic v2 Settings.

Settings load from environment variables prefixed with ``SLA_`` (or a
.env file) and are handed explicitly to each component through the
ComponentFactory. Components never read configuration on their own.
"""

import logging
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sla_engine.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SLA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Template generation
    max_template_size: int = Field(
        default=100_000,
        gt=0,
        description="Maximum template body length in characters.",
    )
    max_variable_substitutions: int = Field(
        default=100,
        gt=0,
        description="Maximum number of distinct placeholders in one template.",
    )

    # Classification
    currency_symbol: str = Field(
        default="R",
        description="Currency symbol used in classifier reasoning and warnings.",
    )
    min_valid_confidence: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Confidence at or above which a classification is considered valid.",
    )

    # Analytics
    default_window_days: int = Field(
        default=30,
        gt=0,
        description="Analytics window used when a request does not give one.",
    )

    # Document numbering
    quote_number_format: str = Field(default="Q-{YYYY}-{seq:04d}")
    invoice_number_format: str = Field(default="INV-{YYYY}-{seq:04d}")
    agreement_number_format: str = Field(default="SLA-{YYYY}-{seq:04d}")

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory for info.log/error.log. Console only when unset.",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v

    @field_validator("quote_number_format", "invoice_number_format", "agreement_number_format")
    @classmethod
    def require_sequence_token(cls, v: str) -> str:
        """A number format without a counter token would repeat forever."""
        from sla_engine.strategies.numbering.allocator import has_sequence_token

        if not has_sequence_token(v):
            raise ValueError(f"Number format '{v}' has no {{seq:0Nd}} or {{seq:d}} token")
        return v

    def configure_logging(self) -> None:
        """Configure structlog on top of the stdlib logging level."""
        import structlog

        level = getattr(logging, self.log_level, logging.INFO)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        logger.setLevel(level)


def load_settings(**overrides) -> Settings:
    """Build a Settings value, turning invalid configuration into ConfigurationError.

    Args:
        **overrides: Explicit values taking precedence over the environment.

    Returns:
        A validated Settings instance.

    Raises:
        ConfigurationError: If any setting is invalid.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        logger.error(f"Invalid SLA engine configuration: {e}")
        raise ConfigurationError("Configuration error for environment", detail=str(e)) from e


# Cached instance for the HTTP layer only
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the Settings instance used by the API.

    Returns:
        The cached Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
        _settings.configure_logging()
    return _settings
