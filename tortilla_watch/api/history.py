"""
History API endpoints.

Both views read live and archived ratings, so a day that was reset by the
"finished" flow still shows up.
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tortilla_watch.database import get_db
from tortilla_watch.dependencies import no_cache
from tortilla_watch.errors import APIError
from tortilla_watch.services.stats_service import StatsService
from tortilla_watch.schemas.schemas import TopCommentsResponse, DailyHistoryResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/history", tags=["History"])


@router.get(
    "/top-comments",
    response_model=TopCommentsResponse,
    summary="Top Comments Of The Week",
    description="Up to 10 comments from the last 7 days, most reacted first."
)
async def top_comments(
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    no_cache(response)
    try:
        return await StatsService.top_comments(db)

    except Exception as e:
        logger.error(f"Top comments error: {e}")
        raise APIError("database_error")


@router.get(
    "/daily",
    response_model=DailyHistoryResponse,
    summary="Daily Averages",
    description="Average overall score per local day, newest 10 days of the last 30."
)
async def daily_history(
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    no_cache(response)
    try:
        return await StatsService.daily_history(db)

    except Exception as e:
        logger.error(f"Daily history error: {e}")
        raise APIError("database_error")
