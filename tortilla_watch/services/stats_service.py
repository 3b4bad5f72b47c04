"""
Status and History Service.

Read-only aggregations polled by clients:
- today's batches, outage tallies and rating averages
- top comments of the week ranked by reactions (live + archived)
- daily average history (live + archived)
"""
from typing import Optional, List, Dict, Any
from collections import defaultdict
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
import logging

from tortilla_watch import time_windows
from tortilla_watch.config import settings
from tortilla_watch.models.database_models import (
    Batch, Rating, ArchivedRating, CommentReaction, ArchivedCommentReaction
)
from tortilla_watch.services.outage_service import OutageService

logger = logging.getLogger(__name__)


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


class StatsService:
    """Service for status and history aggregations."""

    @staticmethod
    def serialize_batch(batch: Batch) -> Dict[str, Any]:
        return {
            "id": batch.id,
            "startedAt": time_windows.isoformat(batch.started_at),
            "status": batch.status,
            "createdByFingerprint": batch.created_by_fingerprint,
            "confirmationsNeeded": batch.confirmations_needed,
            "confirmedCount": batch.confirmed_count,
            "pendingUntil": time_windows.isoformat(batch.pending_until) if batch.pending_until else None,
            "ratings": [
                {
                    "sabor": r.sabor,
                    "jugosidad": r.jugosidad,
                    "cuajada": r.cuajada,
                    "temperatura": r.temperatura,
                    "comment": r.comment,
                }
                for r in batch.ratings
            ],
        }

    @staticmethod
    async def today_status(db: AsyncSession) -> Dict[str, Any]:
        now = time_windows.utcnow()
        day_start, day_end = time_windows.local_day_bounds(now)

        batches_result = await db.execute(
            select(Batch)
            .where(and_(Batch.started_at >= day_start, Batch.started_at < day_end))
            .order_by(Batch.started_at.desc())
        )
        batches = batches_result.scalars().all()
        active = sum(1 for b in batches if b.status == "active")
        completed = sum(1 for b in batches if b.status == "completed")

        working, outage = await OutageService.count_window_votes(
            db, time_windows.minutes_before(now, settings.VOTE_WINDOW_MINUTES)
        )

        ratings_result = await db.execute(
            select(Rating.sabor, Rating.jugosidad, Rating.cuajada, Rating.temperatura)
            .where(and_(Rating.created_at >= day_start, Rating.created_at < day_end))
        )
        rows = ratings_result.all()

        return {
            "today": time_windows.local_date(now).isoformat(),
            "batches": {
                "active": active,
                "completed": completed,
                "total": len(batches),
            },
            "outageVotes": {
                "outage": outage,
                "working": working,
                "total": outage + working,
            },
            "ratings": {
                "count": len(rows),
                "average": _mean([(r.sabor + r.jugosidad + r.cuajada + r.temperatura) / 4 for r in rows]),
                "sabor": _mean([r.sabor for r in rows]),
                "jugosidad": _mean([r.jugosidad for r in rows]),
                "cuajada": _mean([r.cuajada for r in rows]),
                "temperatura": _mean([r.temperatura for r in rows]),
            },
            "recentBatches": [StatsService.serialize_batch(b) for b in batches],
        }

    @staticmethod
    async def _reaction_totals(db: AsyncSession, model, rating_ids: List[str]) -> Dict[str, int]:
        if not rating_ids:
            return {}
        result = await db.execute(
            select(model.rating_id, func.count(model.id))
            .where(model.rating_id.in_(rating_ids))
            .group_by(model.rating_id)
        )
        return {rating_id: int(count) for rating_id, count in result.all()}

    @staticmethod
    async def top_comments(db: AsyncSession, days: int = 7, limit: int = 10) -> Dict[str, Any]:
        """Most reacted comments of the last ``days`` days."""
        since = time_windows.utcnow() - timedelta(days=days)

        live_result = await db.execute(
            select(Rating.id, Rating.comment, Rating.created_at, Rating.score_overall)
            .where(
                and_(
                    Rating.comment.isnot(None),
                    Rating.comment != "",
                    Rating.created_at >= since
                )
            )
            .order_by(Rating.created_at.desc())
        )
        live = live_result.all()

        archived_result = await db.execute(
            select(ArchivedRating.id, ArchivedRating.comment, ArchivedRating.created_at, ArchivedRating.score_overall)
            .where(
                and_(
                    ArchivedRating.comment.isnot(None),
                    ArchivedRating.comment != "",
                    ArchivedRating.created_at >= since
                )
            )
            .order_by(ArchivedRating.created_at.desc())
        )
        archived = archived_result.all()

        reactions = await StatsService._reaction_totals(db, CommentReaction, [c.id for c in live])
        reactions.update(
            await StatsService._reaction_totals(db, ArchivedCommentReaction, [c.id for c in archived])
        )

        ranked = sorted(
            (
                {
                    "id": c.id,
                    "comment": c.comment,
                    "createdAt": time_windows.isoformat(c.created_at),
                    "average": c.score_overall,
                    "reactions": reactions.get(c.id, 0),
                }
                for c in list(live) + list(archived)
            ),
            key=lambda item: item["reactions"],
            reverse=True,
        )
        return {"top": ranked[:limit]}

    @staticmethod
    async def daily_history(db: AsyncSession, days: int = 30, limit: int = 10) -> Dict[str, Any]:
        """Average overall score per local day, newest first."""
        since = time_windows.local_days_ago_start(time_windows.utcnow(), days - 1)

        live_result = await db.execute(
            select(Rating.created_at, Rating.score_overall).where(Rating.created_at >= since)
        )
        archived_result = await db.execute(
            select(ArchivedRating.created_at, ArchivedRating.score_overall).where(ArchivedRating.created_at >= since)
        )

        by_day: Dict[str, List[int]] = defaultdict(list)
        for created_at, score in list(live_result.all()) + list(archived_result.all()):
            by_day[time_windows.local_date(created_at).isoformat()].append(score)

        history = [
            {"date": day, "average": _mean(scores), "count": len(scores)}
            for day, scores in by_day.items()
        ]
        history.sort(key=lambda item: item["date"], reverse=True)
        return {"history": history[:limit]}
