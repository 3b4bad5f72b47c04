"""
Rating Service for tortilla quality ratings.

=============================================================================
RATING RULES
=============================================================================

Scores (integers, inclusive ranges):
- sabor, jugosidad, temperatura: 1-10
- cuajada: 5-10

Overall score = mean of the four, rounded half up.

Limits per fingerprint (plain COUNT checks, no locking):
- One rating per local calendar day
- One rating every RATING_RATE_LIMIT_MINUTES

Ratings are only accepted while the tortilla is flagged available. A new
rating clears all active outage votes.
"""
from typing import Optional, List, Dict, Any, Tuple, Union
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError
import logging
import math

from tortilla_watch import time_windows
from tortilla_watch.config import settings
from tortilla_watch.models.database_models import Rating
from tortilla_watch.services.availability_service import AvailabilityService
from tortilla_watch.services.outage_service import OutageService
from tortilla_watch.services.reaction_service import ReactionService
from tortilla_watch.services.storage_service import StorageService, StorageError

logger = logging.getLogger(__name__)

Number = Union[int, float]


class RatingService:
    """Service for submitting and listing ratings."""

    SCORE_RANGES = {
        "sabor": (1, 10),
        "jugosidad": (1, 10),
        "cuajada": (5, 10),
        "temperatura": (1, 10),
    }

    @staticmethod
    def _is_missing(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    @staticmethod
    def _to_number(value: Any) -> Optional[Number]:
        """Parse a JSON or form value into a finite number, or None."""
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            text = value.strip()
            try:
                number = int(text)
            except ValueError:
                try:
                    number = float(text)
                except ValueError:
                    return None
        else:
            return None

        if isinstance(number, float) and not math.isfinite(number):
            return None
        return number

    @staticmethod
    def validate_scores(raw: Dict[str, Any]) -> Tuple[Optional[Dict[str, int]], Optional[str]]:
        """
        Validate the four sub-scores.

        Returns ``(scores, None)`` on success or ``(None, error_code)``.
        """
        if any(RatingService._is_missing(raw.get(field)) for field in RatingService.SCORE_RANGES):
            return None, "missing_required_fields"

        numbers = {}
        for field in RatingService.SCORE_RANGES:
            number = RatingService._to_number(raw.get(field))
            if number is None:
                return None, "invalid_rating_values"
            numbers[field] = number

        for field, (low, high) in RatingService.SCORE_RANGES.items():
            if numbers[field] < low or numbers[field] > high:
                return None, "rating_out_of_range"

        if any(not float(n).is_integer() for n in numbers.values()):
            return None, "invalid_rating_values"

        return {field: int(n) for field, n in numbers.items()}, None

    @staticmethod
    def compute_overall(scores: Dict[str, int]) -> int:
        """Mean of the four sub-scores, rounded half up (7.5 -> 8)."""
        mean = sum(scores[field] for field in RatingService.SCORE_RANGES) / len(RatingService.SCORE_RANGES)
        return int(math.floor(mean + 0.5))

    @staticmethod
    def normalize_comment(comment: Optional[str]) -> Optional[str]:
        if comment is None:
            return None
        comment = str(comment).strip()
        return comment or None

    @staticmethod
    async def count_ratings_by(
        db: AsyncSession,
        fingerprint: str,
        since: datetime,
        until: Optional[datetime] = None,
        inclusive: bool = True
    ) -> int:
        conditions = [
            Rating.client_fingerprint == fingerprint,
            Rating.created_at >= since if inclusive else Rating.created_at > since,
        ]
        if until is not None:
            conditions.append(Rating.created_at < until)

        result = await db.execute(select(func.count(Rating.id)).where(and_(*conditions)))
        return int(result.scalar() or 0)

    @staticmethod
    async def submit_rating(
        db: AsyncSession,
        fingerprint: Optional[str],
        raw_scores: Dict[str, Any],
        comment: Optional[str] = None,
        image_bytes: Optional[bytes] = None,
        image_content_type: Optional[str] = None,
        image_size: Optional[int] = None,
        ip_hash: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Validate, rate-limit and store a rating.

        ``image_size`` lets the caller report an oversized upload without
        reading it; ``image_bytes`` is then None.
        """
        if not fingerprint or not isinstance(fingerprint, str):
            return {"error": "missing_required_fields"}

        scores, error = RatingService.validate_scores(raw_scores)
        if error:
            return {"error": error}

        comment = RatingService.normalize_comment(comment)
        if comment and len(comment) > settings.COMMENT_MAX_LENGTH:
            return {"error": "comment_too_long"}

        state = await AvailabilityService.get_state(db)
        if state is None or not state.is_available:
            return {"error": "tortilla_not_available"}

        now = time_windows.utcnow()

        day_start, day_end = time_windows.local_day_bounds(now)
        if await RatingService.count_ratings_by(db, fingerprint, day_start, day_end) > 0:
            return {"error": "already_rated_today"}

        recent_since = time_windows.minutes_before(now, settings.RATING_RATE_LIMIT_MINUTES)
        if await RatingService.count_ratings_by(db, fingerprint, recent_since, inclusive=False) > 0:
            return {"error": "rate_limited"}

        image_url = None
        if image_bytes is not None or image_size is not None:
            if image_content_type not in settings.ALLOWED_IMAGE_TYPES:
                return {"error": "invalid_image_type"}
            if image_size is None:
                image_size = len(image_bytes)
            if image_size > settings.IMAGE_MAX_BYTES or image_bytes is None:
                return {"error": "image_too_large"}

            path = StorageService.object_path(fingerprint, image_content_type, now)
            try:
                image_url = await StorageService.upload_image(path, image_bytes, image_content_type)
            except StorageError as e:
                logger.error(f"Error uploading image: {e}")
                return {"error": "image_upload_failed"}

        try:
            db.add(Rating(
                batch_id=None,
                score_overall=RatingService.compute_overall(scores),
                comment=comment,
                image_url=image_url,
                client_fingerprint=fingerprint,
                ip_hash=ip_hash,
                created_at=now,
                **scores,
            ))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error inserting rating: {e}")
            return {"error": "database_error"}

        try:
            await OutageService.deactivate_outage_votes(db)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error clearing outage votes after rating: {e}")

        return {"ok": True}

    @staticmethod
    async def list_today_comments(
        db: AsyncSession,
        fingerprint: Optional[str] = None
    ) -> Dict[str, Any]:
        """Today's ratings with a comment, newest first, with like/reaction counts."""
        day_start, day_end = time_windows.local_day_bounds(time_windows.utcnow())

        result = await db.execute(
            select(Rating)
            .where(
                and_(
                    Rating.comment.isnot(None),
                    Rating.comment != "",
                    Rating.created_at >= day_start,
                    Rating.created_at < day_end
                )
            )
            .order_by(Rating.created_at.desc())
        )
        ratings = result.scalars().all()
        rating_ids = [r.id for r in ratings]

        likes = await ReactionService.like_counts_for(db, rating_ids)
        reactions = await ReactionService.reaction_counts_for(db, rating_ids)
        liked_by_me, my_reactions = set(), {}
        if fingerprint:
            liked_by_me, my_reactions = await ReactionService.activity_of(db, rating_ids, fingerprint)

        comments: List[Dict[str, Any]] = []
        for r in ratings:
            item = {
                "id": r.id,
                "comment": r.comment,
                "overallScore": r.score_overall,
                "scores": {
                    "sabor": r.sabor,
                    "jugosidad": r.jugosidad,
                    "cuajada": r.cuajada,
                    "temperatura": r.temperatura,
                },
                "createdAt": time_windows.isoformat(r.created_at),
                "imageUrl": r.image_url or None,
                "likesCount": likes.get(r.id, 0),
                "reactions": reactions.get(r.id, ReactionService.empty_counts()),
            }
            if fingerprint:
                item["likedByMe"] = r.id in liked_by_me
                item["myReactions"] = my_reactions.get(r.id, [])
            comments.append(item)

        return {"comments": comments, "total": len(comments)}
