from __future__ import annotations

import dataclasses
import threading
from collections.abc import Iterable
from typing import Protocol

from .config import CANDIDATE_ROLE
from .errors import ConcurrentModificationError
from .profiles import UserProfile
from .records import MatchRecord, canonical_pair
from .services.state_machine import MatchStatus


class ProfileStore(Protocol):
    def get_profile(self, user_id: str) -> UserProfile | None: ...

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]: ...


class MatchStore(Protocol):
    def find_record(self, user_a: str, user_b: str) -> MatchRecord | None: ...

    def save(self, record: MatchRecord) -> MatchRecord: ...

    def find_candidate_users(self, excluding_user_id: str, excluding_paired_with: set[str]) -> list[str]: ...

    def find_by_user(self, user_id: str) -> list[MatchRecord]: ...

    def find_by_user_and_status(self, user_id: str, status: MatchStatus) -> list[MatchRecord]: ...


class InMemoryProfileStore:
    def __init__(self, profiles: Iterable[UserProfile] = ()) -> None:
        self._profiles: dict[str, UserProfile] = {}
        self._lock = threading.Lock()
        for profile in profiles:
            self.put(profile)

    def put(self, profile: UserProfile) -> UserProfile:
        with self._lock:
            self._profiles[profile.user_id] = profile
        return profile

    def get_profile(self, user_id: str) -> UserProfile | None:
        with self._lock:
            return self._profiles.get(str(user_id))

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        with self._lock:
            found = (self._profiles.get(str(uid)) for uid in user_ids)
            return {p.user_id: p for p in found if p is not None}

    def list_candidate_ids(self) -> list[str]:
        """Active students, newest profile first."""
        with self._lock:
            rows = [p for p in self._profiles.values() if p.is_active and p.role == CANDIDATE_ROLE]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        return [p.user_id for p in rows]


class InMemoryMatchStore:
    """Dict-backed match store.

    Records are copied on the way in and out, and ``save`` rejects stale
    versions, so callers see the same contract as the SQL store.
    """

    def __init__(self, profiles: InMemoryProfileStore) -> None:
        self._profiles = profiles
        self._records: dict[tuple[str, str], MatchRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def find_record(self, user_a: str, user_b: str) -> MatchRecord | None:
        with self._lock:
            row = self._records.get(canonical_pair(user_a, user_b))
            return dataclasses.replace(row) if row else None

    def save(self, record: MatchRecord) -> MatchRecord:
        with self._lock:
            current = self._records.get(record.pair)
            if record.id is None:
                if current is not None:
                    raise ConcurrentModificationError(f"match already exists for {record.pair}")
                record.id = self._next_id
                self._next_id += 1
            elif current is None or current.version != record.version:
                raise ConcurrentModificationError(f"stale match record {record.id}")
            record.version += 1
            self._records[record.pair] = dataclasses.replace(record, prior_status=None, applied=False)
            return dataclasses.replace(record)

    def find_candidate_users(self, excluding_user_id: str, excluding_paired_with: set[str]) -> list[str]:
        excluded = {str(excluding_user_id), *map(str, excluding_paired_with)}
        return [uid for uid in self._profiles.list_candidate_ids() if uid not in excluded]

    def find_by_user(self, user_id: str) -> list[MatchRecord]:
        uid = str(user_id)
        with self._lock:
            rows = [dataclasses.replace(r) for r in self._records.values() if r.involves(uid)]
        return sorted(rows, key=lambda r: r.id or 0)

    def find_by_user_and_status(self, user_id: str, status: MatchStatus) -> list[MatchRecord]:
        return [r for r in self.find_by_user(user_id) if r.status == status]
