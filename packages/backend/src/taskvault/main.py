"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. Lifespan handles startup/shutdown logging and disposes of the
database engine. Middleware, CORS, exception handlers and routers are all
registered here; each concern lives in its own module.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskvault import __version__
from taskvault.api import api_router, health_router
from taskvault.config import settings
from taskvault.errors import register_exception_handlers
from taskvault.logging_config import configure_logging
from taskvault.middleware.request_id import RequestIdMiddleware
from taskvault.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    The schema is NOT created here; run `alembic upgrade head` (or
    `taskvault serve --create-tables` for a throwaway SQLite database).
    """
    logger.info(
        "taskvault.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("taskvault.shutdown")

    from taskvault.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="TaskVault",
        description="Per-user task tracking with stateless JWT authentication",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: taskvault.main:app)
app = create_app()
