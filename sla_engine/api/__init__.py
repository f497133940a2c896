"""FastAPI routers and dependencies."""

from sla_engine.api.deps import get_factory
from sla_engine.api.sla import router as sla_router

__all__ = [
    "get_factory",
    "sla_router",
]
