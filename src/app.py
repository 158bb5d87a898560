"""FastAPI application factory for the salon platform API."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.config import Settings, get_settings
from src.database.engine import build_engine, build_session_factory
from src.database.rls_check import run_rls_check
from src.exceptions import AppException, ScopeAssignmentFailed
from src.logging_config import configure_logging
from src.modules.tenancy.auth import SessionTokenVerifier
from src.modules.tenancy.bootstrap import TenantBootstrapService
from src.modules.tenancy.cache import DirectoryCache
from src.modules.tenancy.connection import TenantConnectionFactory
from src.modules.tenancy.directory import TenantDirectory
from src.modules.tenancy.service import TenantAuthorizer
from src.modules.tenancy.webhooks import ClerkWebhookVerifier

logger = logging.getLogger(__name__)

# Rate limiter: keyed by client IP address
limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine and tenancy collaborators; dispose them on shutdown."""
    settings: Settings = app.state.settings

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    cache = (
        DirectoryCache.from_url(settings.redis_url, ttl=settings.tenant_cache_ttl_seconds)
        if settings.tenant_cache_enabled
        else None
    )
    http_client = httpx.AsyncClient(timeout=10.0)
    verifier = SessionTokenVerifier(settings, http_client=http_client)

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.tenant_directory = TenantDirectory(session_factory, cache=cache)
    app.state.tenant_authorizer = TenantAuthorizer(
        verifier=verifier,
        directory=app.state.tenant_directory,
        connections=TenantConnectionFactory(session_factory),
    )
    app.state.bootstrap_service = TenantBootstrapService(
        session_factory,
        tenant_name=settings.bootstrap_tenant_name,
        seed_default_services=settings.seed_default_services,
    )
    app.state.webhook_verifier = (
        ClerkWebhookVerifier(settings.clerk_webhook_secret)
        if settings.clerk_webhook_secret
        else None
    )
    if app.state.webhook_verifier is None:
        logger.warning("CLERK_WEBHOOK_SECRET is not set; webhook endpoint will return 503")

    logger.info("Application started (environment=%s)", settings.environment)
    try:
        yield
    finally:
        await verifier.aclose()
        if cache is not None:
            await cache.close()
        await engine.dispose()


def _get_request_id(request: Request) -> str:
    """Retrieve the request ID stored by RequestIdMiddleware."""
    return getattr(request.state, "request_id", "unknown")


def _error_response(status_code: int, code: str, message: str, request_id: str, details: list | None = None) -> JSONResponse:
    """Build a structured error JSONResponse."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or [],
                "requestId": request_id,
            }
        },
    )


def register_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(ScopeAssignmentFailed)
    async def scope_failure_handler(request: Request, exc: ScopeAssignmentFailed) -> JSONResponse:
        logger.error(
            "Scope assignment failed for tenant=%s", exc.tenant_id, exc_info=exc.__cause__ or exc
        )
        return _error_response(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            request_id=_get_request_id(request),
        )

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return _error_response(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            request_id=_get_request_id(request),
            details=exc.details,
        )

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"field": ".".join(str(loc) for loc in err.get("loc", [])), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_response(
            status_code=422,
            code="VALIDATION_ERROR",
            message="Validation failed",
            request_id=_get_request_id(request),
            details=details,
        )

    @application.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return _error_response(
            status_code=429,
            code="RATE_LIMITED",
            message=str(exc.detail),
            request_id=_get_request_id(request),
        )

    @application.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return _error_response(
            status_code=500,
            code="INTERNAL_ERROR",
            message="An unexpected error occurred.",
            request_id=_get_request_id(request),
        )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Settings are resolved here, so a missing DATABASE_URL fails at startup
    rather than on the first request.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(
        title="Salon Platform API",
        description="Multi-tenant salon and spa management backend.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    application.state.settings = settings

    # Rate limiter
    application.state.limiter = limiter

    # --- Middleware (last added = outermost in Starlette) ---

    # CORS: configured via CORS_ORIGINS env var, never wildcard with credentials
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID: registered last so it runs first (outermost)
    from src.middleware.request_id import RequestIdMiddleware

    application.add_middleware(RequestIdMiddleware)

    # --- Routers ---
    from src.api.v1 import v1_router

    application.include_router(v1_router)

    # --- Exception Handlers ---
    register_exception_handlers(application)

    # Health checks
    @application.get("/health")
    async def health_check() -> dict:
        return {"status": "ok"}

    @application.get("/health/ready")
    async def readiness_check(request: Request) -> JSONResponse:
        result = await run_rls_check(request.app.state.engine)
        if not result.ok:
            logger.error("Readiness check failed: %s", result.message)
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return JSONResponse(status_code=200, content={"status": "ready"})

    return application


app = create_app()
