"""FastAPI dependencies for dependency injection."""

from fastapi import Request

from sla_engine.core.factory import ComponentFactory


def get_factory(request: Request) -> ComponentFactory:
    """Dependency for the ComponentFactory built by ``create_app``.

    Args:
        request: The incoming request.

    Returns:
        The application's ComponentFactory.
    """
    return request.app.state.factory
