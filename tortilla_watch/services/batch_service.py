"""
Batch Service (confirmation quorum).

A batch is announced by one fingerprint and becomes confirmed once
``confirmations_needed`` distinct fingerprints have voted for it before
``pending_until``. Duplicate votes are absorbed by the unique constraint on
(batch_id, client_fingerprint).
"""
from typing import Optional, Dict, Any
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from tortilla_watch import time_windows
from tortilla_watch.config import settings
from tortilla_watch.models.database_models import Batch, BatchVote

logger = logging.getLogger(__name__)


class BatchService:
    """Service for creating and confirming batches."""

    @staticmethod
    async def create_batch(db: AsyncSession, fingerprint: Optional[str]) -> Dict[str, Any]:
        if not fingerprint:
            return {"error": "fingerprint_required"}

        now = time_windows.utcnow()
        try:
            batch = Batch(
                started_at=now,
                status="active",
                created_by_fingerprint=fingerprint,
                confirmations_needed=settings.BATCH_CONFIRMATIONS_NEEDED,
                confirmed_count=1,
                pending_until=now + timedelta(minutes=settings.BATCH_PENDING_MINUTES),
            )
            db.add(batch)
            await db.flush()

            db.add(BatchVote(batch_id=batch.id, client_fingerprint=fingerprint, created_at=now))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating batch: {e}")
            return {"error": "database_error"}

        return {"batchId": batch.id}

    @staticmethod
    async def count_votes(db: AsyncSession, batch_id: str) -> int:
        result = await db.execute(
            select(func.count(BatchVote.id)).where(BatchVote.batch_id == batch_id)
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def confirm_batch(
        db: AsyncSession,
        batch_id: Optional[str],
        fingerprint: Optional[str]
    ) -> Dict[str, Any]:
        if not batch_id or not fingerprint:
            return {"error": "missing_required_fields"}

        result = await db.execute(select(Batch).where(Batch.id == batch_id))
        batch = result.scalar_one_or_none()
        if batch is None:
            return {"error": "batch_not_found"}

        now = time_windows.utcnow()
        if batch.pending_until is not None and batch.pending_until < now:
            return {"error": "batch_expired"}

        needed = batch.confirmations_needed

        try:
            db.add(BatchVote(batch_id=batch_id, client_fingerprint=fingerprint, created_at=now))
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.debug(f"Duplicate confirmation for batch {batch_id} ignored")

        try:
            votes = await BatchService.count_votes(db, batch_id)
            confirmed = votes >= needed
            if confirmed:
                values = {"confirmations_needed": 0, "confirmed_count": votes, "pending_until": None}
            else:
                values = {"confirmed_count": votes}
            await db.execute(
                update(Batch)
                .where(Batch.id == batch_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error confirming batch {batch_id}: {e}")
            return {"error": "database_error"}

        return {"confirmed": confirmed, "votes": votes}
