"""
Health Check and System Information Endpoints

Public: no bearer token required.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _ping(engine: AsyncEngine) -> dict:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "UP"}
    except SQLAlchemyError as e:
        logger.error(f"Health check failed for {engine.url.render_as_string(hide_password=True)}: {e}")
        return {"status": "DOWN"}


@router.get("/actuator/health")
async def health_check(request: Request):
    """Liveness plus connectivity of both data sources."""
    database = request.app.state.database
    components = {
        "commandDb": await _ping(database.command_engine),
        "queryDb": await _ping(database.query_engine),
    }
    up = all(c["status"] == "UP" for c in components.values())
    return JSONResponse(
        {"status": "UP" if up else "DOWN", "components": components},
        status_code=200 if up else 503,
    )


@router.get("/actuator/info")
async def info(request: Request):
    settings = request.app.state.settings
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
        },
        "timezone": settings.default_timezone,
        "locale": settings.default_locale,
    }


@router.get("/api/public/ping")
async def ping():
    return {"status": "ok"}
