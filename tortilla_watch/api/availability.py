"""
Availability API endpoints.

Endpoints:
- GET /availability: Current availability flag and vote counts
- POST /availability: Legacy direct set from raw vote counts
- POST /availability/end: Vote that the tortilla is gone

The "end" flow needs FINISH_VOTES_NEEDED votes inside the vote window.
The vote that reaches it resets the day: all votes are deactivated, today's
ratings are archived and the flag goes back to unavailable.
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tortilla_watch.database import get_db
from tortilla_watch.dependencies import get_client_ip, no_cache
from tortilla_watch.errors import APIError
from tortilla_watch.services.availability_service import AvailabilityService
from tortilla_watch.services.outage_service import OutageService
from tortilla_watch.schemas.schemas import (
    AvailabilityUpdateRequest,
    AvailabilityResponse,
    FingerprintRequest,
    FinishResponse
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/availability", tags=["Availability"])


@router.get(
    "",
    response_model=AvailabilityResponse,
    summary="Get Availability",
    description="Current availability state. Never cached."
)
async def get_availability(
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    no_cache(response)
    try:
        result = await AvailabilityService.get_availability(db)
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        logger.error(f"Availability read error: {e}")
        raise APIError("internal_server_error")


@router.post(
    "",
    summary="Set Availability From Counts",
    description="""
    Legacy flow. Available when availableVotes >= 2 and
    unavailableVotes < 2. Negative counts are rejected.
    """
)
async def set_availability(
    payload: AvailabilityUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await AvailabilityService.set_from_vote_counts(
            db,
            available_votes=payload.availableVotes,
            unavailable_votes=payload.unavailableVotes
        )
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Availability update error: {e}")
        raise APIError("internal_server_error")


@router.post(
    "/end",
    response_model=FinishResponse,
    response_model_exclude_none=True,
    summary="Mark Tortilla Finished",
    description="""
    Records an outage vote. Once enough votes are in, the state is reset
    and today's ratings are archived.
    """
)
async def mark_finished(
    payload: FingerprintRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await OutageService.mark_finished(
            db,
            fingerprint=payload.fingerprint,
            ip_address=get_client_ip(request)
        )
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Mark finished error: {e}")
        raise APIError("internal_server_error")
