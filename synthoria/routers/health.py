"""
Health check endpoint.
"""

import time
from datetime import datetime
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..core.config import Settings, get_settings
from ..core.database import Database
from ..core.dependencies import get_database
from ..services.completion_client import CompletionClient, get_completion_client

logger = structlog.get_logger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: datetime
    version: str
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    settings: Settings = Depends(get_settings),
    database: Database = Depends(get_database),
    client: CompletionClient = Depends(get_completion_client),
) -> HealthResponse:
    """Report whether the database and the model provider are reachable."""
    db_start = time.time()
    connected = await database.ping()
    db_latency = (time.time() - db_start) * 1000

    checks = {
        "database": {
            "status": "healthy" if connected else "unhealthy",
            "connected": connected,
            "latency_ms": round(db_latency, 2) if connected else 0.0,
        }
    }
    if not connected:
        logger.warning("Database health check failed")

    reachable = await client.health_check()
    checks["provider"] = {
        "status": "healthy" if reachable else "unhealthy",
        "reachable": reachable,
    }
    if not reachable:
        logger.warning("Model provider health check failed")

    return HealthResponse(
        status="healthy" if connected and reachable else "degraded",
        timestamp=datetime.utcnow(),
        version=settings.app_version,
        checks=checks,
    )
