"""
LotQueue ASGI application.

Serve with ``uvicorn lotqueue.main:app``. Startup creates the ledger
tables if they are missing and seeds the global state and system config
rows. The config cache is attached to ``app.state`` on first use.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from lotqueue.core.config import settings
from lotqueue.infrastructure.trading.database import create_schema, seed_ledger
from lotqueue.interfaces.health import router as health_router
from lotqueue.interfaces.trading.admin_router import router as admin_router
from lotqueue.interfaces.trading.dependencies import get_engine, get_session_factory
from lotqueue.interfaces.trading.router import router as trading_router
from lotqueue.shared.errors.handlers import register_error_handlers
from lotqueue.shared.logging import configure_logging
from lotqueue.shared.security.headers import SecurityHeadersMiddleware
from lotqueue.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_engine()
    create_schema(engine)
    seed_ledger(get_session_factory())
    logger.info("%s %s ready", settings.project_name, settings.version)
    try:
        yield
    finally:
        engine.dispose()


def create_app() -> FastAPI:
    """Build the app: ledger routes, admin routes, error mapping and middleware."""
    configure_logging(level=settings.log_level, sql_echo=settings.debug)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # slowapi reads the limiter from app.state
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_error_handlers(app)

    for router in (health_router, trading_router, admin_router):
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()
