"""
Rating API endpoints.

=============================================================================
TORTILLA RATING
=============================================================================

Each client rates the tortilla at most once per local day, on four axes:
- sabor, jugosidad, temperatura: 1-10
- cuajada: 5-10

Overall score = round-half-up of the mean of the four values.

A rating can only be posted while the tortilla is available, may carry a
short comment and an optional photo (multipart), and clears the active
outage votes once stored.

Endpoints:
- POST /ratings: Submit a rating (JSON or multipart/form-data)
- GET /ratings/comments: Today's comments with likes and reactions
- POST /ratings/comments/likes: Toggle a like
- POST /ratings/comments/reactions: Toggle an emoji reaction
"""
from typing import Any, Dict, Optional, Tuple
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile
import logging

from tortilla_watch.config import settings
from tortilla_watch.database import get_db
from tortilla_watch.dependencies import get_client_ip, hash_ip, no_cache
from tortilla_watch.errors import APIError
from tortilla_watch.services.rating_service import RatingService
from tortilla_watch.services.reaction_service import ReactionService
from tortilla_watch.schemas.schemas import (
    OkResponse,
    CommentsResponse,
    LikeRequest,
    LikeResponse,
    ReactionRequest,
    ReactionResponse
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ratings", tags=["Ratings"])


async def read_rating_payload(
    request: Request
) -> Tuple[Dict[str, Any], Optional[bytes], Optional[int], Optional[str]]:
    """
    Return (fields, image bytes, image size, image content type) from JSON or a form.

    An image larger than IMAGE_MAX_BYTES is never read: only its size is
    returned so the service can reject it.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        fields = {key: value for key, value in form.items() if not isinstance(value, UploadFile)}
        image = form.get("image")
        if isinstance(image, UploadFile) and image.filename and image.size != 0:
            if image.size is not None and image.size > settings.IMAGE_MAX_BYTES:
                return fields, None, image.size, image.content_type
            data = await image.read(settings.IMAGE_MAX_BYTES + 1)
            if data:
                return fields, data, len(data), image.content_type
        return fields, None, None, None

    try:
        payload = await request.json()
    except ValueError:
        raise APIError("invalid_request")
    if not isinstance(payload, dict):
        raise APIError("invalid_request")
    return payload, None, None, None


@router.post(
    "",
    response_model=OkResponse,
    response_model_exclude_none=True,
    summary="Submit Rating",
    description="""
    Submit today's rating.

    Rules:
    - Tortilla must be available
    - One rating per fingerprint per local day
    - At most one rating per fingerprint every 5 minutes
    - Comment up to 120 characters
    - Photo: jpeg, png or webp, up to 2 MB
    """
)
async def submit_rating(
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    fields, image_bytes, image_size, image_type = await read_rating_payload(request)

    try:
        result = await RatingService.submit_rating(
            db,
            fingerprint=fields.get("fingerprint"),
            raw_scores=fields,
            comment=fields.get("comment"),
            image_bytes=image_bytes,
            image_content_type=image_type,
            image_size=image_size,
            ip_hash=hash_ip(get_client_ip(request))
        )
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Rating submission error: {e}")
        raise APIError("internal_server_error")


@router.get(
    "/comments",
    response_model=CommentsResponse,
    response_model_exclude_none=True,
    summary="Today's Comments",
    description="""
    Today's non-empty comments, newest first.

    With ``fingerprint`` each item also carries ``likedByMe`` and
    ``myReactions``.
    """
)
async def list_comments(
    response: Response,
    fingerprint: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    no_cache(response)
    try:
        return await RatingService.list_today_comments(db, fingerprint or None)

    except Exception as e:
        logger.error(f"Comments read error: {e}")
        raise APIError("database_error")


@router.post(
    "/comments/likes",
    response_model=LikeResponse,
    summary="Toggle Like"
)
async def toggle_like(
    payload: LikeRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await ReactionService.toggle_like(
            db,
            rating_id=payload.ratingId,
            fingerprint=payload.fingerprint,
            ip_hash=hash_ip(get_client_ip(request))
        )
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Like toggle error: {e}")
        raise APIError("internal_server_error")


@router.post(
    "/comments/reactions",
    response_model=ReactionResponse,
    summary="Toggle Reaction",
    description="Toggle one of 🔥 😂 🐐 on a comment and return the new counts."
)
async def toggle_reaction(
    payload: ReactionRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await ReactionService.toggle_reaction(
            db,
            rating_id=payload.ratingId,
            fingerprint=payload.fingerprint,
            reaction=payload.reaction,
            ip_hash=hash_ip(get_client_ip(request))
        )
        if "error" in result:
            raise APIError.from_result(result)
        return result

    except APIError:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Reaction toggle error: {e}")
        raise APIError("internal_server_error")
