"""
Archive Service.

Moves ratings (and their reactions) into the archive tables before they are
deleted, so history readers still see them. Likes are not archived.
"""
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_
import logging

from tortilla_watch.models.database_models import (
    Rating, ArchivedRating, CommentReaction, ArchivedCommentReaction, CommentLike
)

logger = logging.getLogger(__name__)


class ArchiveService:
    """Service for archiving and clearing ratings."""

    @staticmethod
    async def archive_ratings_between(
        db: AsyncSession,
        start: datetime,
        end: datetime,
        deleted_at: datetime
    ) -> int:
        """
        Archive then delete every rating created in ``[start, end)``.
        Returns the number of ratings moved. Caller commits.
        """
        result = await db.execute(
            select(Rating).where(
                and_(Rating.created_at >= start, Rating.created_at < end)
            )
        )
        ratings = result.scalars().all()
        if not ratings:
            return 0

        rating_ids = [r.id for r in ratings]

        for r in ratings:
            db.add(ArchivedRating(
                id=r.id,
                batch_id=r.batch_id,
                sabor=r.sabor,
                jugosidad=r.jugosidad,
                cuajada=r.cuajada,
                temperatura=r.temperatura,
                score_overall=r.score_overall,
                comment=r.comment,
                image_url=r.image_url,
                client_fingerprint=r.client_fingerprint,
                ip_hash=r.ip_hash,
                created_at=r.created_at,
                deleted_at=deleted_at,
            ))

        reactions_result = await db.execute(
            select(CommentReaction).where(CommentReaction.rating_id.in_(rating_ids))
        )
        for reaction in reactions_result.scalars().all():
            db.add(ArchivedCommentReaction(
                rating_id=reaction.rating_id,
                client_fingerprint=reaction.client_fingerprint,
                reaction=reaction.reaction,
                created_at=reaction.created_at,
                deleted_at=deleted_at,
            ))

        await db.execute(delete(CommentReaction).where(CommentReaction.rating_id.in_(rating_ids)))
        await db.execute(delete(CommentLike).where(CommentLike.rating_id.in_(rating_ids)))
        await db.execute(delete(Rating).where(Rating.id.in_(rating_ids)))
        await db.flush()

        logger.info(f"Archived {len(rating_ids)} ratings")
        return len(rating_ids)
