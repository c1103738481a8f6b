from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from .profiles import UserProfile
from .records import MatchRecord, RankedCandidate


class TargetRequest(BaseModel):
    target_user_id: str = Field(min_length=1)


class CandidateOut(BaseModel):
    user_id: str
    display_name: str | None = None
    compatibility_score: Decimal
    preferences: dict[str, Any]

    @classmethod
    def from_ranked(cls, candidate: RankedCandidate) -> "CandidateOut":
        profile: UserProfile = candidate.profile
        return cls(
            user_id=profile.user_id,
            display_name=profile.display_name,
            compatibility_score=candidate.score,
            preferences=profile.preferences.as_document(),
        )


class MatchOut(BaseModel):
    id: int | None
    user_id: str
    liked_by_me: bool
    liked_me: bool
    compatibility_score: Decimal
    status: str
    matched_at: datetime | None = None
    created_at: datetime

    @classmethod
    def for_viewer(cls, record: MatchRecord, viewer_id: str) -> "MatchOut":
        """Render a record from one participant's side."""
        other = record.other_user(viewer_id)
        return cls(
            id=record.id,
            user_id=other,
            liked_by_me=record.has_liked(viewer_id),
            liked_me=record.has_liked(other),
            compatibility_score=record.compatibility_score,
            status=record.status.value,
            matched_at=record.matched_at,
            created_at=record.created_at,
        )


class MatchListResponse(BaseModel):
    matches: list[MatchOut]
    count: int


class CandidateListResponse(BaseModel):
    candidates: list[CandidateOut]
    count: int


class LikeResponse(BaseModel):
    match: MatchOut
    is_match: bool
    message: str


class PassResponse(BaseModel):
    match: MatchOut
    message: str


class StatsResponse(BaseModel):
    total_matches: int
    matched_pairs: int
    likes_given: int
    passes_given: int


class ScoreResponse(BaseModel):
    user_id: str
    target_user_id: str
    score_total: Decimal
    score_breakdown: dict[str, Any]
