from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from ..config import DEFAULT_MATCHING_CONFIG, MATCH_CANDIDATE_LIMIT, MATCH_MAX_RETRIES, MATCH_RETRY_BACKOFF_SECONDS
from ..errors import ConcurrentModificationError, InvalidPairError, NotFoundError
from ..profiles import UserProfile
from ..records import MatchRecord, MatchStats, RankedCandidate, canonical_pair
from ..stores import MatchStore, ProfileStore
from .compatibility import compute_score
from .state_machine import TERMINAL_FOR_LIKE, MatchStatus, transition_status

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class PairLocks:
    """One lock per unordered user pair, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], list] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, user_a: str, user_b: str) -> Iterator[None]:
        key = canonical_pair(user_a, user_b)
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                # [lock, number of callers using it]
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class MatchCoordinator:
    """Owns the like/pass lifecycle of match records and candidate ranking.

    Every read-decide-write on a pair runs under that pair's lock. Stores that
    write optimistically raise ConcurrentModificationError on a lost update;
    the whole unit is then re-read and re-applied after a short backoff. Each
    conflict means another write to the pair succeeded, and a pair takes at
    most five writes (the insert and four side flags), so the default
    ``max_retries`` is never exhausted by real contention.
    """

    def __init__(
        self,
        profiles: ProfileStore,
        matches: MatchStore,
        *,
        cfg: dict[str, Any] | None = None,
        candidate_limit: int = MATCH_CANDIDATE_LIMIT,
        max_retries: int = MATCH_MAX_RETRIES,
        retry_backoff: float = MATCH_RETRY_BACKOFF_SECONDS,
        clock: Callable[[], datetime] = _now_utc,
        locks: PairLocks | None = None,
    ) -> None:
        self.profiles = profiles
        self.matches = matches
        self.cfg = {**DEFAULT_MATCHING_CONFIG, **(cfg or {})}
        self.candidate_limit = candidate_limit
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._clock = clock
        self._locks = locks or PairLocks()

    def compute_score(self, profile_a: UserProfile, profile_b: UserProfile) -> Decimal:
        return compute_score(profile_a, profile_b, self.cfg)

    def _require_profile(self, user_id: str) -> UserProfile:
        profile = self.profiles.get_profile(str(user_id))
        if profile is None:
            raise NotFoundError(user_id)
        return profile

    def _resolve_pair(self, user_id: str, target_id: str) -> tuple[UserProfile, UserProfile]:
        if str(user_id) == str(target_id):
            raise InvalidPairError(user_id)
        return self._require_profile(user_id), self._require_profile(target_id)

    def like(self, user_id: str, target_id: str) -> MatchRecord:
        user, target = self._resolve_pair(user_id, target_id)
        return self._apply(user, target, "like")

    def pass_(self, user_id: str, target_id: str) -> MatchRecord:
        user, target = self._resolve_pair(user_id, target_id)
        return self._apply(user, target, "pass")

    def _apply(self, user: UserProfile, target: UserProfile, action: str) -> MatchRecord:
        attempt = 0
        while True:
            try:
                with self._locks.hold(user.user_id, target.user_id):
                    return self._apply_once(user, target, action)
            except ConcurrentModificationError:
                attempt += 1
                if attempt > self.max_retries:
                    logger.error(
                        "[MATCH] giving up on %s %s->%s after %d conflicting writes",
                        action,
                        user.user_id,
                        target.user_id,
                        attempt,
                    )
                    raise
                logger.warning(
                    "[MATCH] concurrent update on %s, retrying %s (%d/%d)",
                    canonical_pair(user.user_id, target.user_id),
                    action,
                    attempt,
                    self.max_retries,
                )
                time.sleep(self.retry_backoff * attempt)

    def _apply_once(self, user: UserProfile, target: UserProfile, action: str) -> MatchRecord:
        uid, tid = user.user_id, target.user_id
        now = self._clock()
        record = self.matches.find_record(uid, tid)

        if record is None:
            score = self.compute_score(user, target) if action == "like" else Decimal("0.00")
            record = MatchRecord.new(uid, tid, score, now)
            current = None
        else:
            current = record.status
            if action == "like" and (current in TERMINAL_FOR_LIKE or record.has_liked(uid)):
                record.prior_status = current
                return record
            if action == "pass" and record.has_passed(uid):
                record.prior_status = current
                return record

        record.mark(uid, action)
        status = transition_status(current, action, counterpart_liked=record.has_liked(tid))
        if status == MatchStatus.MATCHED and current != MatchStatus.MATCHED:
            record.matched_at = now
        record.status = status
        record.updated_at = now

        saved = self.matches.save(record)
        saved.prior_status = current
        saved.applied = True
        logger.info(
            "[MATCH] %s %s->%s status=%s score=%s",
            action,
            uid,
            tid,
            saved.status.value,
            saved.compatibility_score,
        )
        return saved

    def ranked_candidates(self, user_id: str) -> list[RankedCandidate]:
        user = self._require_profile(user_id)
        uid = user.user_id
        paired = {r.other_user(uid) for r in self.matches.find_by_user(uid)}

        ranked: list[RankedCandidate] = []
        candidate_ids = self.matches.find_candidate_users(uid, paired)
        loaded = self.profiles.get_profiles(candidate_ids)
        for candidate_id in candidate_ids:
            profile = loaded.get(candidate_id)
            if profile is None:
                logger.debug("[MATCH] candidate %s has no profile, skipping", candidate_id)
                continue
            ranked.append(RankedCandidate(profile=profile, score=self.compute_score(user, profile)))

        # stable, so equal scores keep the store's order
        ranked.sort(key=lambda c: c.score, reverse=True)
        logger.debug("[MATCH] ranked %d candidates for %s", len(ranked), uid)
        return ranked[: self.candidate_limit]

    def candidates(self, user_id: str) -> list[UserProfile]:
        return [c.profile for c in self.ranked_candidates(user_id)]

    def matches_for(self, user_id: str) -> list[MatchRecord]:
        return self.matches.find_by_user(str(user_id))

    def matched_pairs_for(self, user_id: str) -> list[MatchRecord]:
        return self.matches.find_by_user_and_status(str(user_id), MatchStatus.MATCHED)

    def stats_for(self, user_id: str) -> MatchStats:
        uid = str(user_id)
        records = self.matches_for(uid)
        return MatchStats(
            total_matches=len(records),
            matched_pairs=sum(1 for r in records if r.status == MatchStatus.MATCHED),
            likes_given=sum(1 for r in records if r.has_liked(uid)),
            passes_given=sum(1 for r in records if r.has_passed(uid)),
        )
