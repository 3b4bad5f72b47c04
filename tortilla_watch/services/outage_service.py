"""
Outage Vote Service.

Crowd votes on whether the tortilla is there ("working") or gone ("outage").

=============================================================================
VOTING RULES
=============================================================================

Casting a vote:
- One vote of any type per fingerprint every VOTE_RATE_LIMIT_MINUTES
- The fingerprint behind the most recent active outage vote (within
  VOTE_WINDOW_MINUTES) cannot vote outage again
- Active votes older than VOTE_EXPIRY_MINUTES are deactivated on each vote
- Tallies count active votes within VOTE_WINDOW_MINUTES, clamped to
  MAX_VOTES_PER_TYPE

Marking the tortilla finished:
- The vote that brings active outage votes to FINISH_VOTES_NEEDED resets
  everything: votes deactivated, today's ratings archived, state zeroed

There is no transaction across the read-tally-write sequence; concurrent
votes resolve last-writer-wins on the availability row.
"""
from typing import Optional, Dict, Any, Tuple
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, delete, and_
from sqlalchemy.exc import SQLAlchemyError
import logging

from tortilla_watch import time_windows
from tortilla_watch.config import settings
from tortilla_watch.models.database_models import OutageVote
from tortilla_watch.schemas.schemas import VoteType
from tortilla_watch.services.availability_service import AvailabilityService
from tortilla_watch.services.archive_service import ArchiveService

logger = logging.getLogger(__name__)

CONSECUTIVE_OUTAGE_MESSAGE = 'No puedes marcar "no hay tortilla" dos veces seguidas.'


class OutageService:
    """Service for outage/working votes and outage resolution."""

    VOTE_TYPES = {v.value for v in VoteType}

    @staticmethod
    async def count_recent_votes_by(
        db: AsyncSession,
        fingerprint: str,
        since: datetime
    ) -> int:
        """Votes of any type (active or not) cast by a fingerprint since ``since``."""
        result = await db.execute(
            select(func.count(OutageVote.id)).where(
                and_(
                    OutageVote.fingerprint == fingerprint,
                    OutageVote.created_at > since
                )
            )
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def latest_active_outage_vote(
        db: AsyncSession,
        since: datetime
    ) -> Optional[OutageVote]:
        result = await db.execute(
            select(OutageVote)
            .where(
                and_(
                    OutageVote.is_active == True,
                    OutageVote.vote_type == VoteType.outage.value,
                    OutageVote.created_at > since
                )
            )
            .order_by(OutageVote.created_at.desc(), OutageVote.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def count_window_votes(db: AsyncSession, since: datetime) -> Tuple[int, int]:
        """Return ``(working, outage)`` active vote counts since ``since``."""
        result = await db.execute(
            select(OutageVote.vote_type, func.count(OutageVote.id))
            .where(
                and_(
                    OutageVote.is_active == True,
                    OutageVote.created_at > since
                )
            )
            .group_by(OutageVote.vote_type)
        )
        counts = {vote_type: int(count) for vote_type, count in result.all()}
        return counts.get(VoteType.working.value, 0), counts.get(VoteType.outage.value, 0)

    @staticmethod
    async def count_active_outage_votes(db: AsyncSession, since: datetime) -> int:
        result = await db.execute(
            select(func.count(OutageVote.id)).where(
                and_(
                    OutageVote.is_active == True,
                    OutageVote.vote_type == VoteType.outage.value,
                    OutageVote.created_at > since
                )
            )
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def deactivate_expired(db: AsyncSession, before: datetime) -> None:
        await db.execute(
            update(OutageVote)
            .where(
                and_(
                    OutageVote.is_active == True,
                    OutageVote.created_at < before
                )
            )
            .values(is_active=False)
        )

    @staticmethod
    async def deactivate_outage_votes(db: AsyncSession) -> None:
        """Deactivate every active outage vote (a fresh rating proves there is tortilla)."""
        await db.execute(
            update(OutageVote)
            .where(
                and_(
                    OutageVote.is_active == True,
                    OutageVote.vote_type == VoteType.outage.value
                )
            )
            .values(is_active=False)
        )

    @staticmethod
    async def deactivate_all_votes(db: AsyncSession) -> None:
        await db.execute(
            update(OutageVote)
            .where(OutageVote.is_active == True)
            .values(is_active=False)
        )

    @staticmethod
    async def cast_vote(
        db: AsyncSession,
        fingerprint: Optional[str],
        vote_type: Optional[str],
        ip_address: str
    ) -> Dict[str, Any]:
        """Record a vote and recompute the availability flag."""
        if not fingerprint or not vote_type:
            return {"error": "missing_required_fields"}
        if vote_type not in OutageService.VOTE_TYPES:
            return {"error": "invalid_vote_type"}

        now = time_windows.utcnow()

        recent = await OutageService.count_recent_votes_by(
            db, fingerprint, time_windows.minutes_before(now, settings.VOTE_RATE_LIMIT_MINUTES)
        )
        if recent > 0:
            return {"error": "rate_limited"}

        window_start = time_windows.minutes_before(now, settings.VOTE_WINDOW_MINUTES)

        if vote_type == VoteType.outage.value:
            last_outage = await OutageService.latest_active_outage_vote(db, window_start)
            if last_outage is not None and last_outage.fingerprint == fingerprint:
                return {
                    "error": "rate_limited_consecutive_outage",
                    "message": CONSECUTIVE_OUTAGE_MESSAGE,
                }

        try:
            db.add(OutageVote(
                fingerprint=fingerprint,
                ip_address=ip_address,
                vote_type=vote_type,
                is_active=True,
                created_at=now,
            ))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error inserting outage vote: {e}")
            return {"error": "database_error"}

        try:
            await OutageService.deactivate_expired(
                db, time_windows.minutes_before(now, settings.VOTE_EXPIRY_MINUTES)
            )

            working, outage = await OutageService.count_window_votes(db, window_start)
            working = AvailabilityService.clamp_votes(working)
            outage = AvailabilityService.clamp_votes(outage)
            is_available = AvailabilityService.is_available_from_tallies(working, outage)

            await AvailabilityService.write_state(db, is_available, working, outage)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error updating availability state: {e}")
            return {"error": "database_error"}

        logger.info(
            f"Vote {vote_type} recorded: working={working} outage={outage} available={is_available}"
        )
        return {
            "success": True,
            "isAvailable": is_available,
            "votes": {
                "outage": outage,
                "working": working,
                "total": outage + working,
            },
        }

    @staticmethod
    async def reset_on_activity(db: AsyncSession, fingerprint: Optional[str]) -> Dict[str, Any]:
        """Delete a client's own active votes (undo an accidental click)."""
        if not fingerprint:
            return {"error": "fingerprint_required"}

        try:
            await db.execute(
                delete(OutageVote).where(
                    and_(
                        OutageVote.fingerprint == fingerprint,
                        OutageVote.is_active == True
                    )
                )
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error resetting outage votes: {e}")
            return {"error": "database_error"}

        return {"ok": True, "message": "Outage votes reset successfully"}

    @staticmethod
    async def mark_finished(
        db: AsyncSession,
        fingerprint: Optional[str],
        ip_address: str
    ) -> Dict[str, Any]:
        """
        Vote that the tortilla is gone.

        The vote that reaches FINISH_VOTES_NEEDED deactivates all votes,
        archives today's ratings and resets the availability state. A failure
        while clearing ratings is logged and does not fail the request.
        """
        if not fingerprint:
            return {"error": "fingerprint_required"}

        now = time_windows.utcnow()
        window_start = time_windows.minutes_before(now, settings.VOTE_WINDOW_MINUTES)

        try:
            previous = await OutageService.count_active_outage_votes(db, window_start)
            db.add(OutageVote(
                fingerprint=fingerprint,
                ip_address=ip_address,
                vote_type=VoteType.outage.value,
                is_active=True,
                created_at=now,
            ))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error inserting outage vote: {e}")
            return {"error": "database_error"}

        votes = previous + 1
        if votes < settings.FINISH_VOTES_NEEDED:
            return {
                "success": True,
                "finished": False,
                "message": f"{votes} persona dice que se acabó la tortilla",
                "votes": votes,
            }

        try:
            await OutageService.deactivate_all_votes(db)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error resetting outage votes: {e}")
            return {"error": "database_error"}

        start, end = time_windows.local_day_bounds(now)
        try:
            await ArchiveService.archive_ratings_between(db, start, end, deleted_at=now)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error clearing ratings: {e}")

        try:
            await AvailabilityService.write_state(db, False, 0, 0)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error updating availability state: {e}")
            return {"error": "database_error"}

        logger.info(f"Tortilla marked as finished by {votes} votes")
        return {
            "success": True,
            "finished": True,
            "message": f"Tortilla marcada como agotada ({votes} votos) - Estado reseteado",
        }
