"""
SQLAlchemy Database Models for Tortilla Watch.
Timestamps are naive UTC.
"""
import uuid
from tortilla_watch.time_windows import utcnow
from sqlalchemy import (
    Column, String, Integer, Text, Boolean,
    ForeignKey, DateTime, CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from tortilla_watch.database import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


# ============================================
# AVAILABILITY STATE (singleton row)
# ============================================
class AvailabilityState(Base):
    __tablename__ = "availability_state"

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_available = Column(Boolean, nullable=False, default=False)
    available_votes = Column(Integer, nullable=False, default=0)
    unavailable_votes = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint("available_votes >= 0"),
        CheckConstraint("unavailable_votes >= 0"),
    )


# ============================================
# OUTAGE VOTES ("hay tortilla" / "no hay tortilla")
# ============================================
class OutageVote(Base):
    __tablename__ = "outage_votes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    fingerprint = Column(Text, nullable=False)
    ip_address = Column(Text)
    vote_type = Column(String(16), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("vote_type IN ('outage', 'working')"),
        Index("ix_outage_votes_active_created", "is_active", "created_at"),
        Index("ix_outage_votes_fingerprint_created", "fingerprint", "created_at"),
    )


# ============================================
# BATCHES (legacy confirmation quorum)
# ============================================
class Batch(Base):
    __tablename__ = "batches"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    status = Column(String(16), nullable=False, default="active")
    created_by_fingerprint = Column(Text)
    confirmations_needed = Column(Integer, nullable=False, default=2)
    confirmed_count = Column(Integer, nullable=False, default=0)
    pending_until = Column(DateTime)

    ratings = relationship("Rating", back_populates="batch", lazy="selectin")

    __table_args__ = (
        CheckConstraint("status IN ('active', 'completed')"),
        CheckConstraint("confirmed_count >= 0"),
    )


class BatchVote(Base):
    __tablename__ = "batch_votes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(String(36), ForeignKey("batches.id", ondelete="CASCADE"), nullable=False)
    client_fingerprint = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("batch_id", "client_fingerprint", name="uq_batch_vote_fingerprint"),
    )


# ============================================
# RATINGS
# ============================================
class Rating(Base):
    __tablename__ = "ratings"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    batch_id = Column(String(36), ForeignKey("batches.id", ondelete="SET NULL"), nullable=True)

    # Sub-scores
    sabor = Column(Integer, nullable=False)
    jugosidad = Column(Integer, nullable=False)
    cuajada = Column(Integer, nullable=False)
    temperatura = Column(Integer, nullable=False)
    score_overall = Column(Integer, nullable=False)

    comment = Column(Text)
    image_url = Column(Text)
    client_fingerprint = Column(Text, nullable=False)
    ip_hash = Column(String(64))
    created_at = Column(DateTime, default=utcnow, nullable=False)

    batch = relationship("Batch", back_populates="ratings")

    __table_args__ = (
        CheckConstraint("sabor >= 1 AND sabor <= 10"),
        CheckConstraint("jugosidad >= 1 AND jugosidad <= 10"),
        CheckConstraint("cuajada >= 5 AND cuajada <= 10"),
        CheckConstraint("temperatura >= 1 AND temperatura <= 10"),
        Index("ix_ratings_fingerprint_created", "client_fingerprint", "created_at"),
        Index("ix_ratings_created_at", "created_at"),
    )


class ArchivedRating(Base):
    """Ratings removed by the "tortilla finished" reset, kept for history."""
    __tablename__ = "archive_ratings"

    id = Column(String(36), primary_key=True)
    batch_id = Column(String(36))
    sabor = Column(Integer, nullable=False)
    jugosidad = Column(Integer, nullable=False)
    cuajada = Column(Integer, nullable=False)
    temperatura = Column(Integer, nullable=False)
    score_overall = Column(Integer, nullable=False)
    comment = Column(Text)
    image_url = Column(Text)
    client_fingerprint = Column(Text, nullable=False)
    ip_hash = Column(String(64))
    created_at = Column(DateTime, nullable=False)
    deleted_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_archive_ratings_created_at", "created_at"),
    )


# ============================================
# COMMENT REACTIONS & LIKES
# ============================================
class CommentReaction(Base):
    __tablename__ = "comment_reactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rating_id = Column(String(36), ForeignKey("ratings.id", ondelete="CASCADE"), nullable=False)
    client_fingerprint = Column(Text, nullable=False)
    reaction = Column(String(16), nullable=False)
    ip_hash = Column(String(64))
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("rating_id", "client_fingerprint", "reaction", name="uq_comment_reaction"),
        Index("ix_comment_reactions_rating", "rating_id"),
    )


class ArchivedCommentReaction(Base):
    __tablename__ = "archive_comment_reactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rating_id = Column(String(36), nullable=False)
    client_fingerprint = Column(Text, nullable=False)
    reaction = Column(String(16), nullable=False)
    created_at = Column(DateTime)
    deleted_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_archive_comment_reactions_rating", "rating_id"),
    )


class CommentLike(Base):
    __tablename__ = "comment_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rating_id = Column(String(36), ForeignKey("ratings.id", ondelete="CASCADE"), nullable=False)
    client_fingerprint = Column(Text, nullable=False)
    ip_hash = Column(String(64))
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("rating_id", "client_fingerprint", name="uq_comment_like"),
    )
