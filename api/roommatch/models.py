import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class UserAccount(Base):
    __tablename__ = "user_account"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    email = Column(String, nullable=True, unique=True)
    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="student")
    is_active = Column(Boolean, nullable=False, default=True)
    preferences_json = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (Index("idx_user_account_active_role", "is_active", "role"),)


class RoommateMatch(Base):
    __tablename__ = "roommate_match"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_a_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    user_b_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    initiated_by = Column(String(36), nullable=False)
    compatibility_score = Column(Numeric(5, 2), nullable=False, default=0)
    status = Column(String, nullable=False)
    user_a_liked = Column(Boolean, nullable=False, default=False)
    user_b_liked = Column(Boolean, nullable=False, default=False)
    user_a_passed = Column(Boolean, nullable=False, default=False)
    user_b_passed = Column(Boolean, nullable=False, default=False)
    matched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="uq_roommate_match_pair"),
        CheckConstraint("user_a_id < user_b_id", name="ck_roommate_match_canonical"),
        Index("idx_roommate_match_user_a", "user_a_id"),
        Index("idx_roommate_match_user_b", "user_b_id"),
        Index("idx_roommate_match_status", "status"),
    )


class MatchEvent(Base):
    __tablename__ = "match_event"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(36), nullable=False, index=True)
    counterpart_user_id = Column(String(36), nullable=True)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
