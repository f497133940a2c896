"""Core configuration and errors.

ComponentFactory lives in ``sla_engine.core.factory`` and is imported from
there: it depends on the strategies, which depend on ``core.errors``.
"""

from sla_engine.core.config import Settings, get_settings, load_settings

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
]
