"""
Batch API endpoints.

Endpoints:
- POST /batches/new: Announce a fresh batch (creator counts as first vote)
- POST /batches/confirm: Confirm a pending batch

A batch is confirmed once BATCH_CONFIRMATIONS_NEEDED distinct fingerprints
have voted within BATCH_PENDING_MINUTES of its creation.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tortilla_watch.database import get_db
from tortilla_watch.errors import APIError
from tortilla_watch.services.batch_service import BatchService
from tortilla_watch.schemas.schemas import (
    FingerprintRequest,
    BatchConfirmRequest,
    BatchCreatedResponse,
    BatchConfirmResponse
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/batches", tags=["Batches"])


@router.post(
    "/new",
    response_model=BatchCreatedResponse,
    summary="Create Batch"
)
async def create_batch(
    payload: FingerprintRequest,
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await BatchService.create_batch(db, payload.fingerprint)
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Batch creation error: {e}")
        raise APIError("internal_server_error")


@router.post(
    "/confirm",
    response_model=BatchConfirmResponse,
    summary="Confirm Batch",
    description="""
    Add a confirmation vote. Repeated votes from the same fingerprint are
    ignored. Expired batches return 410.
    """
)
async def confirm_batch(
    payload: BatchConfirmRequest,
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await BatchService.confirm_batch(db, payload.batchId, payload.fingerprint)
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Batch confirmation error: {e}")
        raise APIError("internal_server_error")
