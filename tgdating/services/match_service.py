from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import and_, desc, func, or_
from sqlalchemy.orm import aliased
from sqlmodel import Session, col, select

from tgdating.core.errors import MatchNotFound
from tgdating.models.message import Message
from tgdating.models.swipe import LIKE_ACTIONS, Swipe
from tgdating.schemas.match import LastMessage, MatchSummary
from tgdating.services.user_service import public_profiles, users_by_id


def _scalar_count(session: Session, statement: object) -> int:
    total_result = session.exec(statement).one()  # type: ignore[call-overload]
    return int(total_result[0] if isinstance(total_result, tuple) else total_result)


def is_mutual_match(user_a: int, user_b: int, *, session: Session) -> bool:
    """True when both directions hold a like or superlike.

    Always a fresh read: callers rely on it reflecting writes committed by the
    other party, and an unmatch must revoke access on the very next call.
    """
    if user_a == user_b:
        return False
    statement = (
        select(func.count())
        .select_from(Swipe)
        .where(
            or_(
                and_(col(Swipe.actor_id) == user_a, col(Swipe.target_id) == user_b),
                and_(col(Swipe.actor_id) == user_b, col(Swipe.target_id) == user_a),
            ),
            col(Swipe.action).in_(LIKE_ACTIONS),
        )
    )
    # (actor, target) is unique, so two rows means both directions
    return _scalar_count(session, statement) == 2


def mutual_matches(
    user_id: int,
    *,
    session: Session,
    other_user_id: int | None = None,
) -> dict[int, datetime]:
    """Map each matched counterpart to ``matched_at`` (the later of both swipes)."""
    outgoing = aliased(Swipe)
    incoming = aliased(Swipe)
    statement = (
        select(outgoing.target_id, outgoing.created_at, incoming.created_at)
        .join(
            incoming,
            and_(
                incoming.actor_id == outgoing.target_id,
                incoming.target_id == outgoing.actor_id,
            ),
        )
        .where(
            outgoing.actor_id == user_id,
            outgoing.action.in_(LIKE_ACTIONS),
            incoming.action.in_(LIKE_ACTIONS),
        )
    )
    if other_user_id is not None:
        statement = statement.where(outgoing.target_id == other_user_id)

    matched: dict[int, datetime] = {}
    for counterpart_id, sent_at, received_at in session.exec(statement).all():
        matched[int(counterpart_id)] = max(sent_at, received_at)
    return matched


def count_matches(user_id: int, *, session: Session) -> int:
    return len(mutual_matches(user_id, session=session))


def last_messages(
    user_id: int,
    counterpart_ids: Iterable[int],
    *,
    session: Session,
) -> dict[int, Message]:
    ids = set(counterpart_ids)
    if not ids:
        return {}
    statement = (
        select(Message)
        .where(
            col(Message.is_deleted).is_(False),
            or_(
                and_(
                    col(Message.sender_id) == user_id,
                    col(Message.receiver_id).in_(ids),
                ),
                and_(
                    col(Message.receiver_id) == user_id,
                    col(Message.sender_id).in_(ids),
                ),
            ),
        )
        .order_by(desc(col(Message.created_at)), desc(col(Message.id)))
    )
    latest: dict[int, Message] = {}
    for message in session.exec(statement).all():
        other = message.receiver_id if message.sender_id == user_id else message.sender_id
        latest.setdefault(other, message)
        if len(latest) == len(ids):
            break
    return latest


def _summaries(
    user_id: int,
    matched: dict[int, datetime],
    *,
    session: Session,
) -> list[MatchSummary]:
    users = users_by_id(session, matched)
    profiles = public_profiles(session, users.values())
    latest = last_messages(user_id, users, session=session)

    summaries: list[MatchSummary] = []
    for counterpart_id, matched_at in matched.items():
        profile = profiles.get(counterpart_id)
        if profile is None:
            continue
        message = latest.get(counterpart_id)
        summaries.append(
            MatchSummary(
                user_id=counterpart_id,
                user=profile,
                matched_at=matched_at,
                last_message=(
                    LastMessage.model_validate(message) if message is not None else None
                ),
            )
        )
    summaries.sort(
        key=lambda summary: (
            summary.last_message.created_at
            if summary.last_message is not None
            else summary.matched_at
        ),
        reverse=True,
    )
    return summaries


def list_matches(user_id: int, *, session: Session) -> list[MatchSummary]:
    matched = mutual_matches(user_id, session=session)
    return _summaries(user_id, matched, session=session)


def get_match_detail(
    user_id: int,
    other_user_id: int,
    *,
    session: Session,
) -> MatchSummary:
    matched = mutual_matches(user_id, session=session, other_user_id=other_user_id)
    summaries = _summaries(user_id, matched, session=session)
    if not summaries:
        raise MatchNotFound()
    return summaries[0]
