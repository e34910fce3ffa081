"""Registration Service - FastAPI Application Factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from registration.api.errors import register_exception_handlers
from registration.api.health import router as health_router
from registration.api.router import api_router
from registration.core.config import Settings, get_settings
from registration.core.database import build_session_maker, create_tables
from registration.core.database import engine as default_engine
from registration.core.logging import get_logger, setup_logging
from registration.middleware import (
    BearerAuthMiddleware,
    RateLimiter,
    RateLimitMiddleware,
    rate_limit_cleanup_loop,
)
from registration.services import (
    AccountStore,
    AuthenticationEngine,
    LockoutPolicy,
    RevocationRegistry,
    SecurityAuditService,
    TokenCodec,
)
from registration.services.revocation import revocation_sweep_loop

logger = get_logger("main")


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    config: Settings = app.state.settings
    setup_logging(level=config.log_level, format_type=config.log_format)
    logger.info(f"Starting {config.app_name} v{config.app_version}")

    for warning in config.check_security_configuration():
        logger.warning(f"Security configuration: {warning}")

    if config.db_auto_create:
        await create_tables(app.state.db_engine)
        logger.info("Database tables ensured")

    tasks = [
        asyncio.create_task(
            revocation_sweep_loop(
                app.state.revocation_registry, config.revocation_sweep_interval_seconds
            ),
            name="revocation-sweep",
        ),
        asyncio.create_task(
            rate_limit_cleanup_loop(app.state.rate_limiter), name="rate-limit-cleanup"
        ),
    ]
    for task in tasks:
        task.add_done_callback(task_done_callback)

    yield

    # Shutdown
    logger.info("Shutting down...")
    for task in tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await app.state.db_engine.dispose()


def create_app(config: Settings | None = None, db_engine: AsyncEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Every core component is built here once and kept on ``app.state``;
    nothing in the service is a module-level singleton.
    """
    config = config or get_settings()
    db_engine = db_engine or default_engine

    app = FastAPI(
        title=config.app_name,
        description="User registration and authentication service",
        version=config.app_version,
        lifespan=lifespan,
        # The docs sit outside the auth gate, so only expose them in debug
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
        openapi_url="/openapi.json" if config.debug else None,
    )

    session_maker = build_session_maker(db_engine)
    store = AccountStore(session_maker)
    codec = TokenCodec.from_settings(config)
    registry = RevocationRegistry(codec)
    policy = LockoutPolicy.from_settings(store, config)
    rate_limiter = RateLimiter(requests_per_minute=config.rate_limit_auth_requests_per_minute)

    app.state.settings = config
    app.state.db_engine = db_engine
    app.state.session_maker = session_maker
    app.state.account_store = store
    app.state.token_codec = codec
    app.state.revocation_registry = registry
    app.state.lockout_policy = policy
    app.state.rate_limiter = rate_limiter
    app.state.auth_engine = AuthenticationEngine(
        store, codec, registry, policy, SecurityAuditService()
    )

    # Bearer token gate; rejects revoked/invalid tokens before any route runs
    app.add_middleware(BearerAuthMiddleware)

    # Per-IP limit on the authentication endpoints
    app.add_middleware(
        RateLimitMiddleware,
        rate_limiter=rate_limiter,
        enabled=config.rate_limit_enabled,
        trusted_proxies=config.trusted_proxy_ip_set,
    )

    # CORS middleware - MUST be outermost (added last in Starlette LIFO order)
    # so that CORS headers are present on ALL responses, including 401 from the gate.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
    )

    register_exception_handlers(app)

    app.include_router(health_router)  # Health at root level
    app.include_router(api_router)  # API at /api

    return app


# Application instance
app = create_app()
