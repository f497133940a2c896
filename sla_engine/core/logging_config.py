"""Centralized logging configuration.

Console logging always; when ``Settings.log_dir`` is set, also:
- info.log: General logs (INFO level and above)
- error.log: Error logs only (ERROR level and above)
"""

import logging
import sys

from sla_engine.core.config import Settings


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure logging with console and optional file handlers.

    Args:
        settings: Engine settings providing level and log directory.

    Returns:
        The configured root logger.
    """
    level = getattr(logging, settings.log_level, logging.INFO)

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    simple_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if settings.log_dir is not None:
        log_dir = settings.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)

        info_handler = logging.FileHandler(log_dir / "info.log", encoding="utf-8")
        info_handler.setLevel(logging.INFO)
        info_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(info_handler)

        error_handler = logging.FileHandler(log_dir / "error.log", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(error_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: The name for the logger (typically __name__ of the module).

    Returns:
        A logger instance.
    """
    return logging.getLogger(name)
