"""FastAPI application for OKR Keeper.

``create_app`` builds the app; the lifespan opens the database and wires the
service context every request resolves through ``api.deps``.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from okrkeeper.api.exceptions import register_exception_handlers
from okrkeeper.api.routers import auth, health, invitations, okrs, reviews, teams
from okrkeeper.core.config import Settings, get_settings
from okrkeeper.core.logging import configure_logging
from okrkeeper.models.database import close_db, create_all, init_db
from okrkeeper.services import build_sql_context

logger = logging.getLogger(__name__)

# (router module, prefix, tag)
ROUTES = [
    (health, "/api", "health"),
    (auth, "/api/auth", "auth"),
    (teams, "/api/teams", "teams"),
    (invitations, "/api/invitations", "invitations"),
    (okrs, "/api", "okrs"),
    (reviews, "/api", "reviews"),
]


def engine_options(settings: Settings) -> dict[str, Any]:
    """Engine keyword arguments; SQLite has no connection pool to size."""
    options: dict[str, Any] = {"echo": settings.database_echo}
    if not settings.is_sqlite:
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
    return options


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    configure_logging(settings.log_level)

    session_factory = init_db(settings.async_database_url, **engine_options(settings))
    if settings.is_sqlite:
        await create_all()
    app.state.context = build_sql_context(session_factory, settings)
    logger.info("Database ready (%s), services wired", settings.environment)

    yield

    await close_db()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Build the application with routers, CORS and error handlers."""
    settings = get_settings()
    expose_docs = settings.environment != "production"

    app = FastAPI(
        title="OKR Keeper API",
        description="Team OKRs, key results and reviews with role-based access",
        version=settings.app_version,
        docs_url="/api/docs" if expose_docs else None,
        redoc_url="/api/redoc" if expose_docs else None,
        openapi_url="/api/openapi.json" if expose_docs else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module, prefix, tag in ROUTES:
        app.include_router(module.router, prefix=prefix, tags=[tag])

    register_exception_handlers(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "okrkeeper.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        workers=settings.workers if settings.environment == "production" else 1,
    )
