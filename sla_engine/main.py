"""FastAPI application entry point.

Application setup with routing and error translation. Engine errors are
answered with their fixed user-facing message; the raw message is only
logged.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sla_engine import __version__
from sla_engine.api.schemas import ErrorResponse
from sla_engine.api.sla import router as sla_router
from sla_engine.core.config import Settings, get_settings
from sla_engine.core.errors import DuplicateRecordError, ErrorKind, SLAError
from sla_engine.core.factory import ComponentFactory
from sla_engine.core.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.TEMPLATE_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.GENERATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.DATABASE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.NETWORK_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.RATE_LIMIT_ERROR: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.CONFIGURATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: SLAError) -> int:
    """HTTP status code for an engine error."""
    if isinstance(exc, DuplicateRecordError):
        return status.HTTP_409_CONFLICT
    return STATUS_BY_KIND[exc.kind]


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings. If None, loads from environment.

    Returns:
        Configured FastAPI application instance.
    """
    try:
        settings = settings or get_settings()
        setup_logging(settings)

        app = FastAPI(
            title="SLA Engine",
            description="SLA document generation and classification engine",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        app.state.settings = settings
        app.state.factory = ComponentFactory(settings)

        app.include_router(sla_router)
        logger.info("Registered SLA router")

        @app.get("/health", tags=["health"])
        async def health_check():
            """Health check endpoint for load balancers and monitoring."""
            return {
                "status": "healthy",
                "service": "sla-engine",
                "version": __version__,
            }

        @app.exception_handler(SLAError)
        async def sla_error_handler(request: Request, exc: SLAError):
            """Answer engine errors with their user-facing message."""
            status_code = status_for(exc)
            if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
                logger.error(f"{request.url.path} failed: {exc.to_dict()}")
            else:
                logger.warning(f"{request.url.path} rejected: {exc.to_dict()}")

            headers = None
            extra = None
            if exc.retryable:
                extra = {"retry_after": exc.retry_delay}
                headers = {"Retry-After": str(int(exc.retry_delay))}

            return JSONResponse(
                status_code=status_code,
                content=ErrorResponse(
                    detail=exc.user_message,
                    error_code=exc.code,
                    extra=extra,
                ).model_dump(),
                headers=headers,
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """Handle Pydantic validation errors."""
            logger.warning(f"Validation error: {exc.errors()}")
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content=ErrorResponse(
                    detail="Validation error",
                    error_code=ErrorKind.VALIDATION_ERROR.value,
                    extra={"errors": jsonable_errors(exc)},
                ).model_dump(),
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle uncaught exceptions."""
            logger.error(f"Unhandled exception: {exc}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=ErrorResponse(
                    detail="Internal server error",
                    error_code="INTERNAL_ERROR",
                ).model_dump(),
            )

        logger.info("FastAPI application created successfully")
        return app

    except Exception as e:
        logger.error(f"Failed to create FastAPI app: {e}", exc_info=True)
        raise


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation error entries without the non-serializable ``ctx``/``input`` values."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


if __name__ == "__main__":
    import uvicorn

    try:
        settings = get_settings()
        logger.info("Starting uvicorn server on port 8000...")
        uvicorn.run(
            create_app(settings),
            host="0.0.0.0",
            port=8000,
            log_level=settings.log_level.lower(),
        )
    except Exception as e:
        logger.error(f"Failed to start uvicorn: {e}", exc_info=True)
        raise
