"""
Today status API endpoint.
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tortilla_watch.database import get_db
from tortilla_watch.dependencies import no_cache
from tortilla_watch.errors import APIError
from tortilla_watch.services.stats_service import StatsService
from tortilla_watch.schemas.schemas import TodayStatusResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/today", tags=["Status"])


@router.get(
    "/status",
    response_model=TodayStatusResponse,
    summary="Today's Status",
    description="""
    Today's batches, outage tallies over the vote window and rating
    averages. Averages are null when nobody has rated yet.
    """
)
async def today_status(
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    no_cache(response)
    try:
        return await StatsService.today_status(db)

    except Exception as e:
        logger.error(f"Today status error: {e}")
        raise APIError("database_error")
