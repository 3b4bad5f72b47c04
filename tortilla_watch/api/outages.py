"""
Outage vote API endpoints.

Endpoints:
- POST /outages/vote: Vote "working" or "outage"
- POST /outages/reset-on-activity: Drop the caller's own active votes

Voting rules:
- One vote per fingerprint every VOTE_RATE_LIMIT_MINUTES
- The same fingerprint cannot cast two outage votes in a row
- Availability = working > outage AND working >= MIN_WORKING_VOTES,
  counted over the last VOTE_WINDOW_MINUTES and capped at MAX_VOTES_PER_TYPE
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tortilla_watch.database import get_db
from tortilla_watch.dependencies import get_client_ip
from tortilla_watch.errors import APIError
from tortilla_watch.services.outage_service import OutageService
from tortilla_watch.schemas.schemas import (
    OutageVoteRequest,
    OutageVoteResponse,
    FingerprintRequest,
    OkResponse
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/outages", tags=["Outages"])


@router.post(
    "/vote",
    response_model=OutageVoteResponse,
    summary="Cast Availability Vote",
    description="""
    Record a "working" or "outage" vote and recompute availability.

    Returns the new flag and the windowed tallies.
    """
)
async def cast_vote(
    payload: OutageVoteRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await OutageService.cast_vote(
            db,
            fingerprint=payload.fingerprint,
            vote_type=payload.voteType,
            ip_address=get_client_ip(request)
        )
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Outage vote error: {e}")
        raise APIError("internal_server_error")


@router.post(
    "/reset-on-activity",
    response_model=OkResponse,
    summary="Reset Own Votes"
)
async def reset_on_activity(
    payload: FingerprintRequest,
    db: AsyncSession = Depends(get_db)
):
    """Delete the caller's active votes."""
    try:
        result = await OutageService.reset_on_activity(db, payload.fingerprint)
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Outage reset error: {e}")
        raise APIError("internal_server_error")
