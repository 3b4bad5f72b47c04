"""
System Health Service.

The only critical dependency is the database; blob storage is reported as
configured or not, without a network round trip.
"""
from typing import Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import logging

from tortilla_watch import time_windows
from tortilla_watch.config import settings

logger = logging.getLogger(__name__)


class SystemService:
    """Service for health checks."""

    @staticmethod
    async def check_database(db: AsyncSession) -> Dict[str, Any]:
        start = time_windows.utcnow()

        try:
            result = await db.execute(text("SELECT 1"))
            _ = result.scalar()

            latency = (time_windows.utcnow() - start).total_seconds() * 1000
            return {
                "status": "healthy",
                "latency_ms": round(latency, 2),
            }

        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": "unhealthy",
                "latency_ms": None,
            }

    @staticmethod
    async def get_health(db: AsyncSession) -> Dict[str, Any]:
        database = await SystemService.check_database(db)
        return {
            "status": "healthy" if database["status"] == "healthy" else "unhealthy",
            "database": database["status"],
            "storage": "configured" if settings.STORAGE_URL and settings.STORAGE_SERVICE_KEY else "not_configured",
            "timestamp": time_windows.isoformat(time_windows.utcnow()),
        }
