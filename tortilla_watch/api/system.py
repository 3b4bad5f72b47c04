"""
System health API endpoint.
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tortilla_watch.database import get_db
from tortilla_watch.services.system_service import SystemService
from tortilla_watch.schemas.schemas import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Runs ``SELECT 1`` against the database. Returns 503 when it fails."
)
async def health(
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    result = await SystemService.get_health(db)
    if result["status"] != "healthy":
        response.status_code = 503
    return result
