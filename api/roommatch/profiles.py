from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import MalformedPreferenceData

logger = logging.getLogger(__name__)


class Cleanliness(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Smoking(str, Enum):
    YES = "yes"
    NO = "no"


class SleepSchedule(str, Enum):
    EARLY = "early"
    NORMAL = "normal"
    LATE = "late"


CLEANLINESS_ORDER = [Cleanliness.LOW, Cleanliness.MEDIUM, Cleanliness.HIGH]
SLEEP_ORDER = [SleepSchedule.EARLY, SleepSchedule.NORMAL, SleepSchedule.LATE]


class Preferences(BaseModel):
    """Roommate preferences. A field set to None is absent."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    budget: int | None = Field(default=None, ge=0)
    cleanliness: Cleanliness | None = None
    smoking: Smoking | None = None
    sleep: SleepSchedule | None = None
    interests: frozenset[str] | None = None

    @field_validator("cleanliness", "smoking", "sleep", mode="before")
    @classmethod
    def _normalize_choice(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    @field_validator("interests", mode="before")
    @classmethod
    def _normalize_interests(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (str, bytes, Mapping)):
            raise ValueError("interests must be a list of tags")
        tags: set[str] = set()
        for item in value:
            tag = str(item or "").strip().lower()
            if tag:
                tags.add(tag)
        return frozenset(tags)

    @property
    def is_empty(self) -> bool:
        return all(
            v is None for v in (self.budget, self.cleanliness, self.smoking, self.sleep, self.interests)
        )

    def as_document(self) -> dict[str, Any]:
        out = self.model_dump(mode="json", exclude_none=True)
        if self.interests is not None:
            out["interests"] = sorted(self.interests)
        return out


def _load_document(raw: Any) -> dict[str, Any] | None:
    """Decode a stored document into a mapping; None means nothing stored."""
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedPreferenceData(f"invalid JSON: {exc}") from exc
        if raw is None:
            return None
    if not isinstance(raw, Mapping):
        raise MalformedPreferenceData(f"expected an object, got {type(raw).__name__}")
    return dict(raw)


def _validate_fields(doc: dict[str, Any]) -> Preferences:
    try:
        return Preferences.model_validate(doc)
    except ValidationError as exc:
        bad = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        if not bad:
            raise MalformedPreferenceData(str(exc)) from exc
        logger.warning("[PROFILES] ignoring malformed preference fields %s", sorted(bad))
        kept = {k: v for k, v in doc.items() if k not in bad}
    try:
        return Preferences.model_validate(kept)
    except ValidationError as exc:
        raise MalformedPreferenceData(str(exc)) from exc


def parse_preferences(raw: Any) -> Preferences:
    """Parse a stored preference document.

    A document that is not a JSON object yields no preferences at all. A bad
    value only blanks its own field, so the remaining answers still score.
    """
    if isinstance(raw, Preferences):
        return raw
    try:
        doc = _load_document(raw)
        return Preferences() if doc is None else _validate_fields(doc)
    except MalformedPreferenceData as exc:
        logger.warning("[PROFILES] malformed preference data, using neutral defaults: %s", exc)
        return Preferences()


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UserProfile:
    user_id: str
    display_name: str | None = None
    preferences: Preferences = field(default_factory=Preferences)
    is_active: bool = True
    role: str = "student"
    created_at: datetime = field(default_factory=_now_utc)


def make_profile(user_id: str, preferences: Any = None, **fields: Any) -> UserProfile:
    return UserProfile(user_id=str(user_id), preferences=parse_preferences(preferences), **fields)
