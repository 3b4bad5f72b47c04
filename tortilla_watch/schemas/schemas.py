"""
Pydantic Schemas for Tortilla Watch APIs.
Request and Response models for all endpoints.

Request fields are optional at the schema level: the services decide which
are required so clients receive the stable error codes
(``missing_required_fields``, ``fingerprint_required``) instead of a
generic validation failure.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum


# ============================================
# ENUMS
# ============================================
class VoteType(str, Enum):
    outage = "outage"
    working = "working"


REACTIONS = ("🔥", "😂", "🐐")


# ============================================
# AVAILABILITY / OUTAGE SCHEMAS
# ============================================
class FingerprintRequest(BaseModel):
    """Request carrying only the client fingerprint."""
    fingerprint: Optional[str] = Field(None, description="Anonymous client fingerprint")


class OutageVoteRequest(BaseModel):
    """Request to vote on tortilla availability."""
    fingerprint: Optional[str] = Field(None, description="Anonymous client fingerprint")
    voteType: Optional[str] = Field(None, description="'working' or 'outage'")


class VoteCounts(BaseModel):
    outage: int
    working: int
    total: int


class OutageVoteResponse(BaseModel):
    success: bool
    isAvailable: bool
    votes: VoteCounts


class AvailabilityUpdateRequest(BaseModel):
    """Legacy direct availability update from raw vote counts."""
    availableVotes: Optional[int] = None
    unavailableVotes: Optional[int] = None


class AvailabilityResponse(BaseModel):
    isAvailable: bool
    availableVotes: int
    unavailableVotes: int
    lastUpdated: Optional[str] = None


class FinishResponse(BaseModel):
    success: bool
    finished: bool
    message: str
    votes: Optional[int] = None


class OkResponse(BaseModel):
    ok: bool
    message: Optional[str] = None


# ============================================
# RATING SCHEMAS
# ============================================
class RatingScores(BaseModel):
    sabor: int
    jugosidad: int
    cuajada: int
    temperatura: int


class CommentItem(BaseModel):
    id: str
    comment: str
    overallScore: int
    scores: RatingScores
    createdAt: str
    imageUrl: Optional[str] = None
    likesCount: int = 0
    reactions: Dict[str, int] = {}
    likedByMe: Optional[bool] = None
    myReactions: Optional[List[str]] = None


class CommentsResponse(BaseModel):
    comments: List[CommentItem]
    total: int


# ============================================
# REACTION / LIKE SCHEMAS
# ============================================
class LikeRequest(BaseModel):
    ratingId: Optional[str] = None
    fingerprint: Optional[str] = None


class LikeResponse(BaseModel):
    liked: bool
    likesCount: int


class ReactionRequest(BaseModel):
    ratingId: Optional[str] = None
    fingerprint: Optional[str] = None
    reaction: Optional[str] = Field(None, description="One of 🔥 😂 🐐")


class ReactionResponse(BaseModel):
    active: bool
    counts: Dict[str, int]


# ============================================
# STATUS / HISTORY SCHEMAS
# ============================================
class BatchCounts(BaseModel):
    active: int
    completed: int
    total: int


class RatingAggregates(BaseModel):
    count: int
    average: Optional[float] = None
    sabor: Optional[float] = None
    jugosidad: Optional[float] = None
    cuajada: Optional[float] = None
    temperatura: Optional[float] = None


class TodayStatusResponse(BaseModel):
    today: str
    batches: BatchCounts
    outageVotes: VoteCounts
    ratings: RatingAggregates
    recentBatches: List[Dict[str, Any]] = []


class TopComment(BaseModel):
    id: str
    comment: str
    createdAt: str
    average: Optional[float] = None
    reactions: int


class TopCommentsResponse(BaseModel):
    top: List[TopComment]


class DailyHistoryItem(BaseModel):
    date: str
    average: Optional[float] = None
    count: int


class DailyHistoryResponse(BaseModel):
    history: List[DailyHistoryItem]


# ============================================
# BATCH SCHEMAS
# ============================================
class BatchConfirmRequest(BaseModel):
    batchId: Optional[str] = None
    fingerprint: Optional[str] = None


class BatchCreatedResponse(BaseModel):
    batchId: str


class BatchConfirmResponse(BaseModel):
    confirmed: bool
    votes: int


# ============================================
# SYSTEM SCHEMAS
# ============================================
class HealthResponse(BaseModel):
    status: str
    database: str
    storage: str
    timestamp: str
