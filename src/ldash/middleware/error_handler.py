"""Global error handlers. Every failure leaves as JSON ``{"detail": ...}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ldash.exceptions import IntegrityViolation, NotAuthenticated, StoreUnavailable

logger = structlog.get_logger()

STORE_UNAVAILABLE_NOTICE = "The learning store is temporarily unavailable. Please try again."


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": exc.errors()},
        )

    @app.exception_handler(NotAuthenticated)
    async def not_authenticated_handler(_request: Request, exc: NotAuthenticated) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.message},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.error(
            "store_unavailable",
            path=request.url.path,
            operation=exc.operation,
            error=str(exc.__cause__),
        )
        return JSONResponse(status_code=503, content={"detail": STORE_UNAVAILABLE_NOTICE})

    @app.exception_handler(IntegrityViolation)
    async def integrity_violation_handler(request: Request, exc: IntegrityViolation) -> JSONResponse:
        logger.warning(
            "store_rejected_write",
            path=request.url.path,
            operation=exc.operation,
            error=str(exc.__cause__),
        )
        return JSONResponse(status_code=409, content={"detail": exc.message})

    @app.exception_handler(ValueError)
    async def value_error_handler(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions — always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
