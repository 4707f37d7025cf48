"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from tripstay.domain.errors import (
    NotFoundError,
    OwnershipError,
    StayConflictError,
    ValidationError,
)
from tripstay.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

from .routers import public
from .routes import assignments, occupancy, persons, rooms, trips

logger = get_logger(__name__)

# Engine errors and the status each maps to
_ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (OwnershipError, 403),
    (StayConflictError, 409),
)


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.info(
            "request rejected",
            extra={
                "extra_fields": safe_log_context(
                    path=request.url.path,
                    status_code=status_code,
                    error=type(exc).__name__,
                    correlation_id=get_correlation_id(),
                )
            },
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app() -> FastAPI:
    """Create the FastAPI app with every trip route mounted."""
    app = FastAPI(
        title="TripStay",
        docs_url=None,
        redoc_url=None,
    )

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    for exc_class, status_code in _ERROR_STATUS:
        app.add_exception_handler(exc_class, _error_handler(status_code))

    app.include_router(public.router)
    app.include_router(trips.router)
    app.include_router(rooms.router)
    app.include_router(persons.router)
    app.include_router(assignments.router)
    app.include_router(occupancy.router)

    return app
