import json
import uuid
from typing import Any

from sqlalchemy import text


def log_match_event(
    db,
    user_id: str,
    event_type: str,
    payload: dict[str, Any] | None = None,
    counterpart_user_id: str | None = None,
) -> None:
    payload = payload or {}
    db.execute(
        text(
            """
            INSERT INTO match_event (id, user_id, counterpart_user_id, event_type, payload)
            VALUES (:id, :user_id, :counterpart_user_id, :event_type, :payload)
            """
        ),
        {
            "id": str(uuid.uuid4()),
            "user_id": str(user_id),
            "counterpart_user_id": str(counterpart_user_id) if counterpart_user_id else None,
            "event_type": event_type,
            "payload": json.dumps(payload, default=str),
        },
    )


def log_match_action(db, *, user_id: str, target_id: str, action: str, record) -> None:
    """Record a like/pass, plus a ``match_created`` event for each side on a new match."""
    status = record.status.value
    log_match_event(
        db,
        user_id=user_id,
        counterpart_user_id=target_id,
        event_type=f"match_{action}",
        payload={"status": status, "match_id": record.id},
    )
    if action == "like" and record.became_matched:
        for uid, other in ((user_id, target_id), (target_id, user_id)):
            log_match_event(
                db,
                user_id=uid,
                counterpart_user_id=other,
                event_type="match_created",
                payload={"match_id": record.id, "matched_at": record.matched_at.isoformat()},
            )
