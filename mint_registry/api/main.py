"""FastAPI application for Mint_Registry service."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..exceptions import (
    DuplicateKeyError,
    InvalidFormatError,
    MintRegistryError,
    MissingFieldsError,
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from ..models.store import MintStore
from ..utils.config import GlobalSettings, ensure_runtime_configuration, get_settings
from ..utils.health import HealthChecker, database_check
from ..utils.logging import setup_logger
from .body_limit import BodySizeLimitMiddleware
from .rate_limit import RateLimitMiddleware, client_ip
from .routes import health, metrics, nfts

logger = setup_logger(__name__, context={"component": "FastAPI"})

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-DNS-Prefetch-Control": "off",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
}


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore
    """Build the store handle on startup and release its pool on shutdown."""

    settings: GlobalSettings = app.state.settings
    ensure_runtime_configuration(settings)

    store = MintStore.from_settings(settings)
    store.initialize()
    checker = HealthChecker()
    checker.register_check("database", database_check(store))

    app.state.store = store
    app.state.health_checker = checker
    logger.info("Mint_Registry API starting up (environment=%s)", settings.environment)
    try:
        yield
    finally:
        logger.info("Mint_Registry API shutting down...")
        checker.shutdown()
        store.close()


def _error_response(status_code: int, message: str, **extra: object) -> JSONResponse:
    content: dict[str, object] = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def _register_exception_handlers(app: FastAPI, settings: GlobalSettings) -> None:
    def _server_detail(exc: Exception) -> str:
        return "Internal server error" if settings.is_production else str(exc)

    @app.exception_handler(MissingFieldsError)
    async def missing_fields_handler(request: Request, exc: MissingFieldsError) -> JSONResponse:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Missing required fields",
            missing=exc.missing,
            required=exc.required,
        )

    @app.exception_handler(InvalidFormatError)
    async def invalid_format_handler(request: Request, exc: InvalidFormatError) -> JSONResponse:
        logger.warning(
            "InvalidFormatError: %s", exc, extra={"path": request.url.path, "status": "rejected"}
        )
        return _error_response(status.HTTP_400_BAD_REQUEST, exc.message, errors=exc.as_errors())

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", errors=exc.errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())),
                "message": error.get("msg", "Invalid value"),
            }
            for error in exc.errors()
        ]
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", errors=errors)

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
        return _error_response(
            status.HTTP_409_CONFLICT,
            "Duplicate transaction hash",
            field=exc.field,
            error="This NFT has already been recorded",
        )

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return _error_response(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(
            "StorageError: %s",
            exc,
            extra={"path": request.url.path, "status": "error"},
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Storage unavailable",
            error=_server_detail(exc),
        )

    @app.exception_handler(MintRegistryError)
    async def registry_handler(request: Request, exc: MintRegistryError) -> JSONResponse:
        logger.error(
            "MintRegistryError: %s",
            exc,
            extra={"path": request.url.path, "status": "error"},
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            error=_server_detail(exc),
            error_type=exc.__class__.__name__,
        )

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled %s: %s",
            exc.__class__.__name__,
            exc,
            exc_info=exc,
            extra={"path": request.url.path, "status": "error"},
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            error=_server_detail(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _error_response(
                exc.status_code,
                "Route not found",
                availableRoutes=list(health.AVAILABLE_ROUTES),
            )
        return _error_response(exc.status_code, str(exc.detail))


def create_app(settings: GlobalSettings | None = None) -> FastAPI:
    """Assemble the application, its middleware and routers."""

    settings = settings or get_settings()

    app = FastAPI(
        title="Mint_Registry API",
        description="Records NFT mint claims and serves per-wallet and per-event lookups",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    rate_limit = settings.rate_limit
    app.add_middleware(
        RateLimitMiddleware,
        enabled=rate_limit.enabled,
        requests_per_window=rate_limit.requests_per_window,
        window_seconds=rate_limit.window_seconds,
        limit_by=rate_limit.limit_by,
        path_prefix=rate_limit.path_prefix,
        exempt_paths=rate_limit.exempt_paths,
        trust_forwarded_for=settings.trust_forwarded_for,
    )

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not request.url.path.startswith("/api/"):
            return await call_next(request)
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s from %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            client_ip(request, trust_forwarded_for=settings.trust_forwarded_for),
            response.status_code,
            (time.perf_counter() - started) * 1000,
            extra={"path": request.url.path, "status": response.status_code},
        )
        return response

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    @app.middleware("http")
    async def security_headers(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app, settings)

    app.include_router(health.router, tags=["health"])
    app.include_router(nfts.router, prefix="/api/nfts", tags=["nfts"])
    app.include_router(metrics.router, tags=["monitoring"])
    return app


app = create_app()
