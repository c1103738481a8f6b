import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from ..database import SessionLocal
from ..deps import current_user_id, get_coordinator
from ..errors import ConcurrentModificationError, InvalidPairError, MatchingError, NotFoundError
from ..schemas import (
    CandidateListResponse,
    CandidateOut,
    LikeResponse,
    MatchListResponse,
    MatchOut,
    PassResponse,
    ScoreResponse,
    StatsResponse,
    TargetRequest,
)
from ..services.compatibility import compute_compatibility
from ..services.events import log_match_action
from ..services.matching import MatchCoordinator
from ..services.state_machine import MatchStatus

logger = logging.getLogger(__name__)

router = APIRouter()
scaffold_router = APIRouter()


def _raise_http(exc: MatchingError) -> NoReturn:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail={"message": str(exc), "user_id": exc.user_id})
    if isinstance(exc, InvalidPairError):
        raise HTTPException(status_code=400, detail={"message": str(exc), "user_id": exc.user_id})
    if isinstance(exc, ConcurrentModificationError):
        raise HTTPException(status_code=409, detail={"message": "Match was updated concurrently, try again"})
    raise HTTPException(status_code=400, detail={"message": str(exc)})


def _log_action(user_id: str, target_id: str, action: str, record) -> None:
    if not record.applied:
        return
    # the match is already saved; a lost event must not fail the request
    try:
        with SessionLocal() as db:
            log_match_action(db, user_id=user_id, target_id=target_id, action=action, record=record)
            db.commit()
    except SQLAlchemyError:
        logger.exception("[EVENTS] failed to record match_%s %s->%s", action, user_id, target_id)


@scaffold_router.get("/health")
def match_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "match"}


@router.get("/matches/potential", response_model=CandidateListResponse)
def get_potential_matches(
    user_id: str = Depends(current_user_id),
    coordinator: MatchCoordinator = Depends(get_coordinator),
) -> CandidateListResponse:
    try:
        ranked = coordinator.ranked_candidates(user_id)
    except MatchingError as exc:
        _raise_http(exc)
    candidates = [CandidateOut.from_ranked(c) for c in ranked]
    return CandidateListResponse(candidates=candidates, count=len(candidates))


@router.post("/matches/like", response_model=LikeResponse)
def like_user(
    payload: TargetRequest,
    user_id: str = Depends(current_user_id),
    coordinator: MatchCoordinator = Depends(get_coordinator),
) -> LikeResponse:
    try:
        record = coordinator.like(user_id, payload.target_user_id)
    except MatchingError as exc:
        _raise_http(exc)
    _log_action(user_id, payload.target_user_id, "like", record)

    is_match = record.status == MatchStatus.MATCHED
    return LikeResponse(
        match=MatchOut.for_viewer(record, user_id),
        is_match=is_match,
        message="It's a match!" if is_match else "Like recorded successfully",
    )


@router.post("/matches/pass", response_model=PassResponse)
def pass_user(
    payload: TargetRequest,
    user_id: str = Depends(current_user_id),
    coordinator: MatchCoordinator = Depends(get_coordinator),
) -> PassResponse:
    try:
        record = coordinator.pass_(user_id, payload.target_user_id)
    except MatchingError as exc:
        _raise_http(exc)
    _log_action(user_id, payload.target_user_id, "pass", record)
    return PassResponse(match=MatchOut.for_viewer(record, user_id), message="Pass recorded successfully")


@router.get("/matches/mine", response_model=MatchListResponse)
def get_my_matches(
    user_id: str = Depends(current_user_id),
    coordinator: MatchCoordinator = Depends(get_coordinator),
) -> MatchListResponse:
    rows = [MatchOut.for_viewer(r, user_id) for r in coordinator.matches_for(user_id)]
    return MatchListResponse(matches=rows, count=len(rows))


@router.get("/matches/matched", response_model=MatchListResponse)
def get_matched_pairs(
    user_id: str = Depends(current_user_id),
    coordinator: MatchCoordinator = Depends(get_coordinator),
) -> MatchListResponse:
    rows = [MatchOut.for_viewer(r, user_id) for r in coordinator.matched_pairs_for(user_id)]
    return MatchListResponse(matches=rows, count=len(rows))


@router.get("/matches/stats", response_model=StatsResponse)
def get_match_stats(
    user_id: str = Depends(current_user_id),
    coordinator: MatchCoordinator = Depends(get_coordinator),
) -> StatsResponse:
    stats = coordinator.stats_for(user_id)
    return StatsResponse(
        total_matches=stats.total_matches,
        matched_pairs=stats.matched_pairs,
        likes_given=stats.likes_given,
        passes_given=stats.passes_given,
    )


@router.get("/matches/score/{target_user_id}", response_model=ScoreResponse)
def get_compatibility_score(
    target_user_id: str,
    user_id: str = Depends(current_user_id),
    coordinator: MatchCoordinator = Depends(get_coordinator),
) -> ScoreResponse:
    user = coordinator.profiles.get_profile(user_id)
    if user is None:
        _raise_http(NotFoundError(user_id))
    target = coordinator.profiles.get_profile(target_user_id)
    if target is None:
        _raise_http(NotFoundError(target_user_id))
    comp = compute_compatibility(user.preferences, target.preferences, coordinator.cfg)
    logger.debug("[MATCH] score %s vs %s = %s", user_id, target_user_id, comp["score_total"])
    return ScoreResponse(
        user_id=user.user_id,
        target_user_id=target.user_id,
        score_total=comp["score_total"],
        score_breakdown=comp["score_breakdown"],
    )
