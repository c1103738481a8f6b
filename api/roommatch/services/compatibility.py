from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..config import DEFAULT_MATCHING_CONFIG, DEFAULT_SCORE
from ..profiles import CLEANLINESS_ORDER, SLEEP_ORDER, Preferences, UserProfile

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")
_WEIGHT_KEYS = ("BUDGET_W", "LIFESTYLE_W", "SLEEP_W", "INTERESTS_W")


def _to_score(value: float) -> Decimal:
    return Decimal(repr(float(value))).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _neutral(cfg: dict[str, Any]) -> float:
    return float(cfg.get("NEUTRAL_SUBSCORE", 50.0))


def budget_score(a: Preferences, b: Preferences, neutral: float = 50.0) -> float:
    if a.budget is None or b.budget is None:
        return neutral
    avg = (a.budget + b.budget) / 2.0
    if avg == 0:
        return 100.0
    percent_diff = abs(a.budget - b.budget) / avg * 100.0
    return max(0.0, 100.0 - percent_diff)


def lifestyle_score(a: Preferences, b: Preferences) -> float:
    score = 50.0
    if a.cleanliness is not None and b.cleanliness is not None:
        gap = abs(CLEANLINESS_ORDER.index(a.cleanliness) - CLEANLINESS_ORDER.index(b.cleanliness))
        if gap == 0:
            score += 25.0
        elif gap == 1:
            score += 15.0
    # identical answers include two non-smokers
    if a.smoking is not None and b.smoking is not None and a.smoking == b.smoking:
        score += 25.0
    return min(100.0, score)


def sleep_score(a: Preferences, b: Preferences, neutral: float = 50.0) -> float:
    if a.sleep is None or b.sleep is None:
        return neutral
    gap = abs(SLEEP_ORDER.index(a.sleep) - SLEEP_ORDER.index(b.sleep))
    if gap == 0:
        return 100.0
    if gap == 1:
        return 75.0
    return 25.0


def interests_score(a: Preferences, b: Preferences, neutral: float = 50.0) -> float:
    if not a.interests or not b.interests:
        return neutral
    union = a.interests | b.interests
    return len(a.interests & b.interests) / len(union) * 100.0


def _weights(cfg: dict[str, Any]) -> dict[str, float]:
    raw = {k: max(0.0, float(cfg.get(k, DEFAULT_MATCHING_CONFIG[k]))) for k in _WEIGHT_KEYS}
    total = sum(raw.values())
    if total <= 0:
        raise ValueError("matching weights must not all be zero")
    return {k: v / total for k, v in raw.items()}


def compute_compatibility(a: Preferences, b: Preferences, cfg: dict[str, Any] | None = None) -> dict[str, Any]:
    cfg = {**DEFAULT_MATCHING_CONFIG, **(cfg or {})}
    neutral = _neutral(cfg)
    weights = _weights(cfg)

    budget = budget_score(a, b, neutral)
    lifestyle = lifestyle_score(a, b)
    sleep = sleep_score(a, b, neutral)
    interests = interests_score(a, b, neutral)

    total = (
        weights["BUDGET_W"] * budget
        + weights["LIFESTYLE_W"] * lifestyle
        + weights["SLEEP_W"] * sleep
        + weights["INTERESTS_W"] * interests
    )
    total = max(0.0, min(100.0, total))

    return {
        "score_total": _to_score(total),
        "score_breakdown": {
            "budget": round(budget, 6),
            "lifestyle": round(lifestyle, 6),
            "sleep": round(sleep, 6),
            "interests": round(interests, 6),
            "weights": {k.removesuffix("_W").lower(): round(v, 6) for k, v in weights.items()},
        },
    }


def compute_score(profile_a: UserProfile, profile_b: UserProfile, cfg: dict[str, Any] | None = None) -> Decimal:
    """Weighted 0-100 compatibility between two profiles.

    Symmetric in its arguments and never raises: if scoring fails for any
    reason the configured default score is returned.
    """
    try:
        return compute_compatibility(profile_a.preferences, profile_b.preferences, cfg)["score_total"]
    except Exception:
        logger.exception(
            "[SCORING] failed to score %s vs %s, using default",
            getattr(profile_a, "user_id", None),
            getattr(profile_b, "user_id", None),
        )
        return _to_score(DEFAULT_SCORE)
