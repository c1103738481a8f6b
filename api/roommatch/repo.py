import json
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from .config import CANDIDATE_ROLE
from .database import SessionLocal
from .errors import ConcurrentModificationError
from .models import RoommateMatch, UserAccount
from .profiles import UserProfile, parse_preferences
from .records import MatchRecord, canonical_pair
from .services.state_machine import MatchStatus


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _profile_from_row(row: UserAccount) -> UserProfile:
    return UserProfile(
        user_id=str(row.id),
        display_name=row.display_name,
        preferences=parse_preferences(row.preferences_json),
        is_active=bool(row.is_active),
        role=str(row.role),
        created_at=_as_utc(row.created_at),
    )


def _record_from_row(row: RoommateMatch) -> MatchRecord:
    return MatchRecord(
        id=int(row.id),
        user_a_id=str(row.user_a_id),
        user_b_id=str(row.user_b_id),
        initiated_by=str(row.initiated_by),
        compatibility_score=Decimal(row.compatibility_score or 0).quantize(Decimal("0.01")),
        status=MatchStatus(row.status),
        user_a_liked=bool(row.user_a_liked),
        user_b_liked=bool(row.user_b_liked),
        user_a_passed=bool(row.user_a_passed),
        user_b_passed=bool(row.user_b_passed),
        matched_at=_as_utc(row.matched_at),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
        version=int(row.version),
    )


class SqlProfileStore:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def get_profile(self, user_id: str) -> UserProfile | None:
        with self._session_factory() as db:
            row = db.get(UserAccount, str(user_id))
            return _profile_from_row(row) if row else None

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        ids = sorted({str(uid) for uid in user_ids})
        if not ids:
            return {}
        with self._session_factory() as db:
            rows = db.scalars(select(UserAccount).where(UserAccount.id.in_(ids))).all()
            return {str(row.id): _profile_from_row(row) for row in rows}

    def create_user(
        self,
        *,
        display_name: str | None = None,
        email: str | None = None,
        preferences: dict[str, Any] | None = None,
        role: str = CANDIDATE_ROLE,
        is_active: bool = True,
        user_id: str | None = None,
        created_at: datetime | None = None,
    ) -> UserProfile | None:
        row = UserAccount(
            id=user_id or str(uuid.uuid4()),
            email=email,
            display_name=display_name,
            role=role,
            is_active=is_active,
            preferences_json=json.dumps(preferences) if preferences is not None else None,
            created_at=created_at or _now_utc(),
        )
        try:
            with self._session_factory() as db:
                db.add(row)
                db.commit()
                db.refresh(row)
                return _profile_from_row(row)
        except IntegrityError:
            return None

    def update_user_preferences(self, user_id: str, preferences: dict[str, Any]) -> UserProfile | None:
        # stored as given; malformed documents only degrade scoring
        with self._session_factory() as db:
            row = db.get(UserAccount, str(user_id))
            if row is None:
                return None
            row.preferences_json = json.dumps(preferences)
            db.commit()
            db.refresh(row)
            return _profile_from_row(row)


class SqlMatchStore:
    """Match store over the ``roommate_match`` table.

    Inserts rely on the unique pair constraint and updates on the ``version``
    column; losing either race raises ConcurrentModificationError.
    """

    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def find_record(self, user_a: str, user_b: str) -> MatchRecord | None:
        a, b = canonical_pair(user_a, user_b)
        with self._session_factory() as db:
            row = db.scalars(
                select(RoommateMatch).where(RoommateMatch.user_a_id == a, RoommateMatch.user_b_id == b)
            ).first()
            return _record_from_row(row) if row else None

    def save(self, record: MatchRecord) -> MatchRecord:
        values = {
            "status": record.status.value,
            "compatibility_score": record.compatibility_score,
            "user_a_liked": record.user_a_liked,
            "user_b_liked": record.user_b_liked,
            "user_a_passed": record.user_a_passed,
            "user_b_passed": record.user_b_passed,
            "matched_at": record.matched_at,
            "updated_at": record.updated_at,
        }
        with self._session_factory() as db:
            if record.id is None:
                row = RoommateMatch(
                    user_a_id=record.user_a_id,
                    user_b_id=record.user_b_id,
                    initiated_by=record.initiated_by,
                    created_at=record.created_at,
                    version=1,
                    **values,
                )
                db.add(row)
                try:
                    db.commit()
                except IntegrityError as exc:
                    db.rollback()
                    raise ConcurrentModificationError(f"match already exists for {record.pair}") from exc
                match_id = row.id
            else:
                result = db.execute(
                    update(RoommateMatch)
                    .where(RoommateMatch.id == record.id, RoommateMatch.version == record.version)
                    .values(version=record.version + 1, **values)
                )
                if result.rowcount != 1:
                    db.rollback()
                    raise ConcurrentModificationError(f"stale match record {record.id}")
                db.commit()
                match_id = record.id
            return _record_from_row(db.get(RoommateMatch, match_id))

    def find_candidate_users(self, excluding_user_id: str, excluding_paired_with: set[str]) -> list[str]:
        uid = str(excluding_user_id)
        stmt = select(UserAccount.id).where(
            UserAccount.is_active.is_(True),
            UserAccount.role == CANDIDATE_ROLE,
            UserAccount.id != uid,
        )
        excluded = sorted(str(x) for x in excluding_paired_with)
        if excluded:
            stmt = stmt.where(UserAccount.id.not_in(excluded))
        stmt = stmt.order_by(UserAccount.created_at.desc(), UserAccount.id)
        with self._session_factory() as db:
            return [str(x) for x in db.scalars(stmt).all()]

    def find_by_user(self, user_id: str) -> list[MatchRecord]:
        uid = str(user_id)
        with self._session_factory() as db:
            rows = db.scalars(
                select(RoommateMatch)
                .where(or_(RoommateMatch.user_a_id == uid, RoommateMatch.user_b_id == uid))
                .order_by(RoommateMatch.id)
            ).all()
            return [_record_from_row(r) for r in rows]

    def find_by_user_and_status(self, user_id: str, status: MatchStatus) -> list[MatchRecord]:
        uid = str(user_id)
        with self._session_factory() as db:
            rows = db.scalars(
                select(RoommateMatch)
                .where(
                    or_(RoommateMatch.user_a_id == uid, RoommateMatch.user_b_id == uid),
                    RoommateMatch.status == MatchStatus(status).value,
                )
                .order_by(RoommateMatch.id)
            ).all()
            return [_record_from_row(r) for r in rows]
