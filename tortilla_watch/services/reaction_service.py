"""
Reaction and Like Service.

A reaction or like is a membership row; presence means active. Toggling
deletes the row if it exists and inserts it otherwise. Counts are always
recomputed from the rows for the rating rather than kept as counters.
"""
from typing import Optional, List, Dict, Any, Set, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from tortilla_watch import time_windows
from tortilla_watch.models.database_models import Rating, CommentReaction, CommentLike
from tortilla_watch.schemas.schemas import REACTIONS

logger = logging.getLogger(__name__)


class ReactionService:
    """Service for comment reactions (🔥 😂 🐐) and likes."""

    @staticmethod
    def empty_counts() -> Dict[str, int]:
        return {reaction: 0 for reaction in REACTIONS}

    @staticmethod
    async def rating_exists(db: AsyncSession, rating_id: str) -> bool:
        result = await db.execute(select(Rating.id).where(Rating.id == rating_id))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def reaction_counts(db: AsyncSession, rating_id: str) -> Dict[str, int]:
        """Count every reaction row for one rating."""
        result = await db.execute(
            select(CommentReaction.reaction).where(CommentReaction.rating_id == rating_id)
        )
        counts = ReactionService.empty_counts()
        for reaction in result.scalars().all():
            counts[reaction] = counts.get(reaction, 0) + 1
        return counts

    @staticmethod
    async def like_count(db: AsyncSession, rating_id: str) -> int:
        result = await db.execute(
            select(func.count(CommentLike.id)).where(CommentLike.rating_id == rating_id)
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def reaction_counts_for(
        db: AsyncSession,
        rating_ids: List[str]
    ) -> Dict[str, Dict[str, int]]:
        counts = {rating_id: ReactionService.empty_counts() for rating_id in rating_ids}
        if not rating_ids:
            return counts

        result = await db.execute(
            select(CommentReaction.rating_id, CommentReaction.reaction, func.count(CommentReaction.id))
            .where(CommentReaction.rating_id.in_(rating_ids))
            .group_by(CommentReaction.rating_id, CommentReaction.reaction)
        )
        for rating_id, reaction, count in result.all():
            counts[rating_id][reaction] = int(count)
        return counts

    @staticmethod
    async def like_counts_for(db: AsyncSession, rating_ids: List[str]) -> Dict[str, int]:
        counts = {rating_id: 0 for rating_id in rating_ids}
        if not rating_ids:
            return counts

        result = await db.execute(
            select(CommentLike.rating_id, func.count(CommentLike.id))
            .where(CommentLike.rating_id.in_(rating_ids))
            .group_by(CommentLike.rating_id)
        )
        for rating_id, count in result.all():
            counts[rating_id] = int(count)
        return counts

    @staticmethod
    async def activity_of(
        db: AsyncSession,
        rating_ids: List[str],
        fingerprint: str
    ) -> Tuple[Set[str], Dict[str, List[str]]]:
        """Ratings liked by ``fingerprint`` and its reactions per rating."""
        if not rating_ids:
            return set(), {}

        likes_result = await db.execute(
            select(CommentLike.rating_id).where(
                and_(
                    CommentLike.rating_id.in_(rating_ids),
                    CommentLike.client_fingerprint == fingerprint
                )
            )
        )
        liked = set(likes_result.scalars().all())

        reactions_result = await db.execute(
            select(CommentReaction.rating_id, CommentReaction.reaction).where(
                and_(
                    CommentReaction.rating_id.in_(rating_ids),
                    CommentReaction.client_fingerprint == fingerprint
                )
            )
        )
        mine: Dict[str, List[str]] = {}
        for rating_id, reaction in reactions_result.all():
            mine.setdefault(rating_id, []).append(reaction)
        return liked, mine

    @staticmethod
    async def toggle_reaction(
        db: AsyncSession,
        rating_id: Optional[str],
        fingerprint: Optional[str],
        reaction: Optional[str],
        ip_hash: Optional[str] = None
    ) -> Dict[str, Any]:
        """Toggle one (rating, fingerprint, emoji) reaction."""
        if not rating_id or not fingerprint or not reaction:
            return {"error": "missing_required_fields"}
        if reaction not in REACTIONS:
            return {"error": "invalid_reaction"}
        if not await ReactionService.rating_exists(db, rating_id):
            return {"error": "rating_not_found"}

        existing_result = await db.execute(
            select(CommentReaction.id).where(
                and_(
                    CommentReaction.rating_id == rating_id,
                    CommentReaction.client_fingerprint == fingerprint,
                    CommentReaction.reaction == reaction
                )
            )
        )
        existing_id = existing_result.scalar_one_or_none()

        try:
            if existing_id is not None:
                await db.execute(delete(CommentReaction).where(CommentReaction.id == existing_id))
                await db.commit()
                active = False
            else:
                db.add(CommentReaction(
                    rating_id=rating_id,
                    client_fingerprint=fingerprint,
                    reaction=reaction,
                    ip_hash=ip_hash,
                    created_at=time_windows.utcnow(),
                ))
                await db.commit()
                active = True
        except IntegrityError:
            # A concurrent request inserted the same reaction first
            await db.rollback()
            active = True
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error toggling reaction: {e}")
            return {"error": "database_error"}

        counts = await ReactionService.reaction_counts(db, rating_id)
        return {"active": active, "counts": counts}

    @staticmethod
    async def toggle_like(
        db: AsyncSession,
        rating_id: Optional[str],
        fingerprint: Optional[str],
        ip_hash: Optional[str] = None
    ) -> Dict[str, Any]:
        """Toggle a like on a rating's comment."""
        if not rating_id or not fingerprint:
            return {"error": "missing_required_fields"}
        if not await ReactionService.rating_exists(db, rating_id):
            return {"error": "rating_not_found"}

        existing_result = await db.execute(
            select(CommentLike.id).where(
                and_(
                    CommentLike.rating_id == rating_id,
                    CommentLike.client_fingerprint == fingerprint
                )
            )
        )
        existing_id = existing_result.scalar_one_or_none()

        try:
            if existing_id is not None:
                await db.execute(delete(CommentLike).where(CommentLike.id == existing_id))
                await db.commit()
                liked = False
            else:
                db.add(CommentLike(
                    rating_id=rating_id,
                    client_fingerprint=fingerprint,
                    ip_hash=ip_hash,
                    created_at=time_windows.utcnow(),
                ))
                await db.commit()
                liked = True
        except IntegrityError:
            await db.rollback()
            liked = True
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error toggling like: {e}")
            return {"error": "database_error"}

        likes_count = await ReactionService.like_count(db, rating_id)
        return {"liked": liked, "likesCount": likes_count}
