from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlmodel import Session

from tgdating.core.db import get_session
from tgdating.core.errors import MatchNotFound
from tgdating.models.user import User
from tgdating.routers.users import get_current_user, require_user_id
from tgdating.schemas.match import (
    MatchSummary,
    SwipeDecisionResult,
    SwipeIn,
    SwipePage,
    SwipeStats,
)
from tgdating.services import swipe_service
from tgdating.services.match_service import get_match_detail, list_matches
from tgdating.services.message_service import unmatch
from tgdating.services.realtime import EVENT_NEW_MATCH, EVENT_UNMATCHED, manager

router = APIRouter(prefix="/matches", tags=["matches"])
logger = structlog.get_logger(__name__)

SessionDep = Annotated[Session, Depends(get_session)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
LimitQuery = Annotated[int, Query(ge=1, le=100)]
OffsetQuery = Annotated[int, Query(ge=0)]


@router.post("/swipe", response_model=SwipeDecisionResult)
def swipe(
    payload: SwipeIn,
    current: CurrentUserDep,
    session: SessionDep,
    background_tasks: BackgroundTasks,
) -> SwipeDecisionResult:
    """Record a like/pass/superlike; ``is_match`` reports a fresh mutual like."""
    user_id = require_user_id(current)
    result = swipe_service.record_swipe(
        user_id,
        payload.target_user_id,
        payload.action,
        session=session,
    )
    if result.is_match:
        try:
            detail = get_match_detail(payload.target_user_id, user_id, session=session)
        except MatchNotFound:
            # Unmatched again before the push; the swipe itself is committed
            logger.info(
                "match_gone_before_push",
                user_id=user_id,
                target_id=payload.target_user_id,
            )
            return result
        background_tasks.add_task(
            manager.deliver,
            payload.target_user_id,
            EVENT_NEW_MATCH,
            detail.model_dump(mode="json"),
        )
    return result


@router.get("", response_model=list[MatchSummary])
def list_my_matches(
    current: CurrentUserDep,
    session: SessionDep,
    response: Response,
) -> list[MatchSummary]:
    matches = list_matches(require_user_id(current), session=session)
    response.headers["X-Total-Count"] = str(len(matches))
    return matches


@router.get("/stats", response_model=SwipeStats)
def match_stats(current: CurrentUserDep, session: SessionDep) -> SwipeStats:
    return swipe_service.swipe_stats(require_user_id(current), session=session)


@router.get("/history/swipes", response_model=SwipePage)
def swipe_history(
    current: CurrentUserDep,
    session: SessionDep,
    limit: LimitQuery = 50,
    offset: OffsetQuery = 0,
) -> SwipePage:
    items, has_more = swipe_service.list_swipe_history(
        require_user_id(current), session=session, limit=limit, offset=offset
    )
    return SwipePage(items=items, has_more=has_more)


@router.get("/likes/received", response_model=SwipePage)
def likes_received(
    current: CurrentUserDep,
    session: SessionDep,
    limit: LimitQuery = 20,
    offset: OffsetQuery = 0,
) -> SwipePage:
    items, has_more = swipe_service.list_likes_received(
        require_user_id(current), session=session, limit=limit, offset=offset
    )
    return SwipePage(items=items, has_more=has_more)


@router.get("/likes/sent", response_model=SwipePage)
def likes_sent(
    current: CurrentUserDep,
    session: SessionDep,
    limit: LimitQuery = 20,
    offset: OffsetQuery = 0,
) -> SwipePage:
    items, has_more = swipe_service.list_likes_sent(
        require_user_id(current), session=session, limit=limit, offset=offset
    )
    return SwipePage(items=items, has_more=has_more)


@router.get("/{user_id}", response_model=MatchSummary)
def read_match(user_id: int, current: CurrentUserDep, session: SessionDep) -> MatchSummary:
    return get_match_detail(require_user_id(current), user_id, session=session)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def unmatch_user(
    user_id: int,
    current: CurrentUserDep,
    session: SessionDep,
    background_tasks: BackgroundTasks,
) -> None:
    me = require_user_id(current)
    if unmatch(me, user_id, session=session):
        background_tasks.add_task(manager.deliver, user_id, EVENT_UNMATCHED, {"user_id": me})
