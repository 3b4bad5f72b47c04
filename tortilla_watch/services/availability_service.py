"""
Availability Service.

Owns the shared AvailabilityState singleton. Every path that changes the
availability flag writes through ``write_state``.

Rules:
- From windowed outage votes: available when working > outage and
  working >= MIN_WORKING_VOTES, both tallies clamped to MAX_VOTES_PER_TYPE.
- Legacy direct update: available when availableVotes >= 2 and
  unavailableVotes < 2.
"""
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
import logging

from tortilla_watch import time_windows
from tortilla_watch.config import settings
from tortilla_watch.models.database_models import AvailabilityState

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service for reading and updating tortilla availability."""

    @staticmethod
    def clamp_votes(count: int) -> int:
        """Bound a vote tally to [0, MAX_VOTES_PER_TYPE]."""
        return max(0, min(count, settings.MAX_VOTES_PER_TYPE))

    @staticmethod
    def is_available_from_tallies(working_votes: int, outage_votes: int) -> bool:
        return working_votes > outage_votes and working_votes >= settings.MIN_WORKING_VOTES

    @staticmethod
    def is_available_from_counts(available_votes: int, unavailable_votes: int) -> bool:
        """Legacy rule used by the direct state-set endpoint."""
        return available_votes >= 2 and unavailable_votes < 2

    @staticmethod
    async def get_state(db: AsyncSession) -> Optional[AvailabilityState]:
        result = await db.execute(
            select(AvailabilityState).order_by(AvailabilityState.id).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def write_state(
        db: AsyncSession,
        is_available: bool,
        available_votes: int,
        unavailable_votes: int
    ) -> AvailabilityState:
        """Overwrite the singleton (last writer wins). Caller commits."""
        state = await AvailabilityService.get_state(db)
        if state is None:
            state = AvailabilityState()
            db.add(state)

        state.is_available = is_available
        state.available_votes = available_votes
        state.unavailable_votes = unavailable_votes
        state.last_updated = time_windows.utcnow()
        await db.flush()
        return state

    @staticmethod
    def serialize_state(state: Optional[AvailabilityState]) -> Dict[str, Any]:
        if state is None:
            return {
                "isAvailable": False,
                "availableVotes": 0,
                "unavailableVotes": 0,
                "lastUpdated": None,
            }
        return {
            "isAvailable": bool(state.is_available),
            "availableVotes": state.available_votes or 0,
            "unavailableVotes": state.unavailable_votes or 0,
            "lastUpdated": time_windows.isoformat(state.last_updated) if state.last_updated else None,
        }

    @staticmethod
    async def get_availability(db: AsyncSession) -> Dict[str, Any]:
        try:
            state = await AvailabilityService.get_state(db)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching availability state: {e}")
            return {"error": "database_error"}
        return AvailabilityService.serialize_state(state)

    @staticmethod
    async def set_from_vote_counts(
        db: AsyncSession,
        available_votes: Optional[int],
        unavailable_votes: Optional[int]
    ) -> Dict[str, Any]:
        """Legacy flow: set the flag straight from raw vote counts."""
        if available_votes is None or unavailable_votes is None:
            return {"error": "missing_required_fields"}
        if available_votes < 0 or unavailable_votes < 0:
            return {"error": "invalid_vote_counts"}

        is_available = AvailabilityService.is_available_from_counts(
            available_votes, unavailable_votes
        )

        try:
            await AvailabilityService.write_state(
                db, is_available, available_votes, unavailable_votes
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error updating availability state: {e}")
            return {"error": "database_error"}

        return {
            "isAvailable": is_available,
            "availableVotes": available_votes,
            "unavailableVotes": unavailable_votes,
        }
