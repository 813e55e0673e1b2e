"""Liveness and readiness checks."""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from okrkeeper.core.config import get_settings
from okrkeeper.models.database import get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    services: bool


async def _database_state() -> str:
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except RuntimeError:
        return "not initialized"
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return "unreachable"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report whether the database answers and the services are wired.

    Status is "degraded" rather than an error response, so load balancers
    can tell a starting instance from a dead one.
    """
    database = await _database_state()
    services = getattr(request.app.state, "context", None) is not None
    return HealthResponse(
        status="ok" if database == "ok" and services else "degraded",
        version=get_settings().app_version,
        database=database,
        services=services,
    )


@router.get("/live")
async def liveness_check() -> dict:
    return {"alive": True}
