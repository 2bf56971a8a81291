from __future__ import annotations

from typing import cast

import structlog
from sqlalchemy import and_, delete, desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.schema import Table
from sqlmodel import Session, col, select

from tgdating.core.errors import (
    DuplicateSwipe,
    InvalidAction,
    SelfSwipe,
    TargetInactive,
    TargetNotFound,
)
from tgdating.models.swipe import LIKE_ACTIONS, Swipe, SwipeAction
from tgdating.models.user import User
from tgdating.schemas.match import SwipeDecisionResult, SwipeOut, SwipeStats
from tgdating.services.match_service import count_matches, is_mutual_match
from tgdating.services.user_service import public_profiles, users_by_id

logger = structlog.get_logger(__name__)


def _coerce_action(action: SwipeAction | str) -> SwipeAction:
    try:
        return SwipeAction(action)
    except ValueError as err:
        raise InvalidAction() from err


def record_swipe(
    actor_id: int,
    target_id: int,
    action: SwipeAction | str,
    *,
    session: Session,
) -> SwipeDecisionResult:
    swipe_action = _coerce_action(action)
    if actor_id == target_id:
        raise SelfSwipe()

    target = session.get(User, target_id)
    if target is None:
        raise TargetNotFound()
    if not target.is_active:
        raise TargetInactive()

    # Uniqueness is left to uq_swipe_actor_target so concurrent duplicates
    # cannot both pass a read-then-write check.
    session.add(Swipe(actor_id=actor_id, target_id=target_id, action=swipe_action))
    try:
        session.commit()
    except IntegrityError as err:
        session.rollback()
        logger.info("swipe_duplicate", actor_id=actor_id, target_id=target_id)
        raise DuplicateSwipe() from err

    is_match = False
    if swipe_action in LIKE_ACTIONS:
        is_match = is_mutual_match(actor_id, target_id, session=session)

    logger.info(
        "swipe_recorded",
        actor_id=actor_id,
        target_id=target_id,
        action=swipe_action.value,
        is_match=is_match,
    )
    if is_match:
        logger.info("match_created", user_a=actor_id, user_b=target_id)
    return SwipeDecisionResult(accepted=True, is_match=is_match, action=swipe_action)


def delete_swipe_pair(user_a: int, user_b: int, *, session: Session) -> int:
    """Remove both directions of a pair; the caller owns the transaction."""
    statement = delete(Swipe).where(
        or_(
            and_(col(Swipe.actor_id) == user_a, col(Swipe.target_id) == user_b),
            and_(col(Swipe.actor_id) == user_b, col(Swipe.target_id) == user_a),
        )
    )
    result = session.exec(statement)  # type: ignore[call-overload]
    return int(result.rowcount or 0)


def _page(
    session: Session,
    statement: object,
    *,
    user_id: int,
    limit: int,
    offset: int,
) -> tuple[list[SwipeOut], bool]:
    rows = list(session.exec(statement.offset(offset).limit(limit + 1)).all())  # type: ignore[attr-defined]
    has_more = len(rows) > limit
    rows = rows[:limit]

    other_ids = {
        swipe.target_id if swipe.actor_id == user_id else swipe.actor_id
        for swipe in rows
    }
    profiles = public_profiles(session, users_by_id(session, other_ids).values())
    items = [
        SwipeOut(
            id=swipe.id,
            actor_id=swipe.actor_id,
            target_id=swipe.target_id,
            action=swipe.action,
            created_at=swipe.created_at,
            user=profiles.get(
                swipe.target_id if swipe.actor_id == user_id else swipe.actor_id
            ),
        )
        for swipe in rows
    ]
    return items, has_more


def list_swipe_history(
    user_id: int,
    *,
    session: Session,
    limit: int,
    offset: int,
) -> tuple[list[SwipeOut], bool]:
    statement = (
        select(Swipe)
        .where(Swipe.actor_id == user_id)
        .order_by(desc(col(Swipe.created_at)), desc(col(Swipe.id)))
    )
    return _page(session, statement, user_id=user_id, limit=limit, offset=offset)


def list_likes_sent(
    user_id: int,
    *,
    session: Session,
    limit: int,
    offset: int,
) -> tuple[list[SwipeOut], bool]:
    statement = (
        select(Swipe)
        .where(Swipe.actor_id == user_id, col(Swipe.action).in_(LIKE_ACTIONS))
        .order_by(desc(col(Swipe.created_at)), desc(col(Swipe.id)))
    )
    return _page(session, statement, user_id=user_id, limit=limit, offset=offset)


def list_likes_received(
    user_id: int,
    *,
    session: Session,
    limit: int,
    offset: int,
) -> tuple[list[SwipeOut], bool]:
    statement = (
        select(Swipe)
        .where(Swipe.target_id == user_id, col(Swipe.action).in_(LIKE_ACTIONS))
        .order_by(desc(col(Swipe.created_at)), desc(col(Swipe.id)))
    )
    return _page(session, statement, user_id=user_id, limit=limit, offset=offset)


def swipe_stats(user_id: int, *, session: Session) -> SwipeStats:
    swipe_table = cast(Table, Swipe.__table__)  # type: ignore[attr-defined]
    statement = (
        select(swipe_table.c.action, func.count())
        .where(swipe_table.c.actor_id == user_id)
        .group_by(swipe_table.c.action)
    )
    counts = {action: 0 for action in SwipeAction}
    for action_value, total in session.exec(statement):
        counts[SwipeAction(action_value)] = int(total)

    received_statement = (
        select(func.count())
        .select_from(swipe_table)
        .where(
            swipe_table.c.target_id == user_id,
            swipe_table.c.action.in_(LIKE_ACTIONS),
        )
    )
    received = int(session.exec(received_statement).one())

    return SwipeStats(
        total_matches=count_matches(user_id, session=session),
        total_likes=counts[SwipeAction.like],
        total_passes=counts[SwipeAction.pass_],
        total_superlikes=counts[SwipeAction.superlike],
        received_likes=received,
    )
