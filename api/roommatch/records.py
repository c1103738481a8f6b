from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from .profiles import UserProfile
from .services.state_machine import MatchStatus


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    return tuple(sorted((str(user_a), str(user_b))))


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MatchRecord:
    """The single record kept for an unordered pair of users.

    ``user_a_id`` always sorts before ``user_b_id``. Each side carries its own
    like/pass flags; a reciprocal like is both like flags set on this record.
    """

    user_a_id: str
    user_b_id: str
    initiated_by: str
    compatibility_score: Decimal = Decimal("0.00")
    status: MatchStatus = MatchStatus.PENDING
    user_a_liked: bool = False
    user_b_liked: bool = False
    user_a_passed: bool = False
    user_b_passed: bool = False
    matched_at: datetime | None = None
    created_at: datetime = field(default_factory=_now_utc)
    updated_at: datetime = field(default_factory=_now_utc)
    id: int | None = None
    version: int = 0
    # outcome of the call that returned this record; not persisted
    prior_status: MatchStatus | None = field(default=None, compare=False, repr=False)
    applied: bool = field(default=False, compare=False, repr=False)

    @classmethod
    def new(cls, initiator: str, target: str, score: Decimal, now: datetime) -> MatchRecord:
        a, b = canonical_pair(initiator, target)
        return cls(
            user_a_id=a,
            user_b_id=b,
            initiated_by=str(initiator),
            compatibility_score=score,
            created_at=now,
            updated_at=now,
        )

    @property
    def became_matched(self) -> bool:
        return self.status == MatchStatus.MATCHED and self.prior_status != MatchStatus.MATCHED

    @property
    def pair(self) -> tuple[str, str]:
        return (self.user_a_id, self.user_b_id)

    def involves(self, user_id: str) -> bool:
        return str(user_id) in self.pair

    def _side(self, user_id: str) -> str:
        uid = str(user_id)
        if uid == self.user_a_id:
            return "a"
        if uid == self.user_b_id:
            return "b"
        raise ValueError(f"User {uid} is not part of match {self.pair}")

    def other_user(self, user_id: str) -> str:
        return self.user_b_id if self._side(user_id) == "a" else self.user_a_id

    def has_liked(self, user_id: str) -> bool:
        return getattr(self, f"user_{self._side(user_id)}_liked")

    def has_passed(self, user_id: str) -> bool:
        return getattr(self, f"user_{self._side(user_id)}_passed")

    def mark(self, user_id: str, action: str) -> None:
        side = self._side(user_id)
        if action == "like":
            setattr(self, f"user_{side}_liked", True)
        elif action == "pass":
            setattr(self, f"user_{side}_passed", True)
        else:
            raise ValueError(f"Unknown match action: {action}")


@dataclass
class RankedCandidate:
    profile: UserProfile
    score: Decimal


@dataclass
class MatchStats:
    total_matches: int
    matched_pairs: int
    likes_given: int
    passes_given: int
