from functools import lru_cache

from fastapi import Header, HTTPException

from .repo import SqlMatchStore, SqlProfileStore
from .services.matching import MatchCoordinator


def current_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    value = x_user_id.strip()
    if not value:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return value


@lru_cache(maxsize=1)
def get_coordinator() -> MatchCoordinator:
    return MatchCoordinator(SqlProfileStore(), SqlMatchStore())
