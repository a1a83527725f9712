"""Liveness and health endpoints."""
import logging
import os
import signal
from typing import Dict

from fastapi import APIRouter, Depends

from api.config import settings
from api.database import Database
from api.db_instance import get_db
from api.models import HelloResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["system"])


@router.get("", response_model=HelloResponse)
async def hello_world():
    """Liveness message."""
    return HelloResponse(message="Hello World")


@router.get("/health")
async def health_check(db: Database = Depends(get_db)) -> Dict[str, str]:
    """Database health and connection pool statistics."""
    stats = await db.health()
    if stats["status"] == "down" and settings.db_health_fatal:
        logger.critical(f"Shutting down, DB_HEALTH_FATAL is set: {stats['error']}")
        os.kill(os.getpid(), signal.SIGTERM)
    return stats
