from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import cast

import structlog
from sqlalchemy import and_, desc, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.schema import Table
from sqlmodel import Session, col, select

from tgdating.core.config import settings
from tgdating.core.errors import (
    ContentTooLong,
    EmptyContent,
    InvalidMessageType,
    InvalidReplyTarget,
    InvalidSearchQuery,
    MessageNotFound,
    NotOwner,
    SelfMessage,
)
from tgdating.models.message import Message, MessageType
from tgdating.schemas.match import LastMessage
from tgdating.schemas.message import ConversationSummary, ReportReason
from tgdating.services.gate import authorize
from tgdating.services.match_service import is_mutual_match
from tgdating.services.swipe_service import delete_swipe_pair
from tgdating.services.user_service import public_profiles, users_by_id

logger = structlog.get_logger(__name__)


def _pair_clause(user_a: int, user_b: int):  # type: ignore[no-untyped-def]
    return or_(
        and_(col(Message.sender_id) == user_a, col(Message.receiver_id) == user_b),
        and_(col(Message.sender_id) == user_b, col(Message.receiver_id) == user_a),
    )


def _involves(user_id: int):  # type: ignore[no-untyped-def]
    return or_(col(Message.sender_id) == user_id, col(Message.receiver_id) == user_id)


def _scalar_count(session: Session, statement: object) -> int:
    total_result = session.exec(statement).one()  # type: ignore[call-overload]
    return int(total_result[0] if isinstance(total_result, tuple) else total_result)


def _coerce_type(message_type: MessageType | str) -> MessageType:
    try:
        return MessageType(message_type)
    except ValueError as err:
        raise InvalidMessageType() from err


def send_message(
    sender_id: int,
    receiver_id: int,
    content: str,
    *,
    session: Session,
    message_type: MessageType | str = MessageType.text,
    media_url: str | None = None,
    reply_to: int | None = None,
) -> Message:
    if sender_id == receiver_id:
        raise SelfMessage()

    body = (content or "").strip()
    if not body:
        raise EmptyContent()
    if len(body) > settings.message_max_length:
        raise ContentTooLong(max_length=settings.message_max_length)
    kind = _coerce_type(message_type)

    authorize(sender_id, receiver_id, session=session)

    if reply_to is not None:
        target = session.get(Message, reply_to)
        if (
            target is None
            or target.is_deleted
            or {target.sender_id, target.receiver_id} != {sender_id, receiver_id}
        ):
            raise InvalidReplyTarget()

    message = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=body,
        type=kind,
        media_url=(media_url or "").strip() or None,
        reply_to_id=reply_to,
    )
    session.add(message)
    session.commit()
    session.refresh(message)
    logger.info(
        "message_sent",
        message_id=message.id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        type=kind.value,
    )
    return message


def get_conversation(
    user_a: int,
    user_b: int,
    *,
    session: Session,
    limit: int,
    offset: int,
) -> tuple[list[Message], bool]:
    """Page through a conversation, newest page first, each page oldest-first.

    Read-only: marking messages as read is a separate call.
    """
    authorize(user_a, user_b, session=session)

    message_table = cast(Table, Message.__table__)  # type: ignore[attr-defined]
    count_statement = (
        select(func.count())
        .select_from(message_table)
        .where(_pair_clause(user_a, user_b), message_table.c.is_deleted.is_(False))
    )
    total_count = _scalar_count(session, count_statement)

    statement = (
        select(Message)
        .where(_pair_clause(user_a, user_b), col(Message.is_deleted).is_(False))
        .order_by(desc(message_table.c.created_at), desc(message_table.c.id))
        .offset(offset)
        .limit(limit)
    )
    newest_first = list(session.exec(statement).all())
    has_more = offset + len(newest_first) < total_count
    return list(reversed(newest_first)), has_more


def mark_conversation_as_read(
    reader_id: int,
    other_user_id: int,
    *,
    session: Session,
) -> int:
    authorize(reader_id, other_user_id, session=session)

    statement = (
        update(Message)
        .where(
            col(Message.receiver_id) == reader_id,
            col(Message.sender_id) == other_user_id,
            col(Message.is_read).is_(False),
        )
        .values(is_read=True, read_at=datetime.utcnow())
    )
    result = session.exec(statement)  # type: ignore[call-overload]
    session.commit()
    updated = int(result.rowcount or 0)
    if updated:
        logger.info(
            "conversation_read",
            reader_id=reader_id,
            other_user_id=other_user_id,
            updated=updated,
        )
    return updated


def list_conversations(user_id: int, *, session: Session) -> list[ConversationSummary]:
    statement = (
        select(Message)
        .where(_involves(user_id), col(Message.is_deleted).is_(False))
        .order_by(desc(col(Message.created_at)), desc(col(Message.id)))
    )

    # Newest-first scan: the first message seen per counterpart is its latest.
    latest: dict[int, Message] = {}
    unread: Counter[int] = Counter()
    for message in session.exec(statement).all():
        other = message.receiver_id if message.sender_id == user_id else message.sender_id
        latest.setdefault(other, message)
        if message.receiver_id == user_id and not message.is_read:
            unread[other] += 1

    profiles = public_profiles(session, users_by_id(session, latest).values())
    return [
        ConversationSummary(
            user_id=other,
            user=profiles[other],
            last_message=LastMessage.model_validate(message),
            unread_count=unread[other],
        )
        for other, message in latest.items()
        if other in profiles
    ]


def unread_count(user_id: int, *, session: Session) -> int:
    message_table = cast(Table, Message.__table__)  # type: ignore[attr-defined]
    statement = (
        select(func.count())
        .select_from(message_table)
        .where(
            message_table.c.receiver_id == user_id,
            message_table.c.is_read.is_(False),
            message_table.c.is_deleted.is_(False),
        )
    )
    return _scalar_count(session, statement)


def soft_delete_message(requester_id: int, message_id: int, *, session: Session) -> None:
    message = session.get(Message, message_id)
    if message is None or message.is_deleted:
        raise MessageNotFound()
    if message.sender_id != requester_id:
        raise NotOwner()

    message.is_deleted = True
    message.deleted_at = datetime.utcnow()
    session.add(message)
    session.commit()
    logger.info("message_deleted", message_id=message_id, sender_id=requester_id)


def report_message(
    reporter_id: int,
    message_id: int,
    reason: ReportReason,
    *,
    session: Session,
    description: str | None = None,
) -> None:
    """Flag a received message for moderation. Reports are only logged."""
    message = session.get(Message, message_id)
    # Only the receiver may report; anyone else sees the message as missing
    if message is None or message.is_deleted or message.receiver_id != reporter_id:
        raise MessageNotFound()

    logger.warning(
        "message_reported",
        message_id=message_id,
        reporter_id=reporter_id,
        sender_id=message.sender_id,
        reason=ReportReason(reason).value,
        description=(description or "").strip() or None,
    )


def unmatch(user_a: int, user_b: int, *, session: Session) -> bool:
    """Sever a match: drop both swipes, then soft-delete the pair's history.

    Both steps share one transaction. The ledger goes first so the gate is
    already closed should the purge be observed on its own. Returns whether
    the pair was matched beforehand; repeating the call is a no-op.
    """
    try:
        was_matched = is_mutual_match(user_a, user_b, session=session)
        removed_swipes = delete_swipe_pair(user_a, user_b, session=session)
        purge = (
            update(Message)
            .where(_pair_clause(user_a, user_b), col(Message.is_deleted).is_(False))
            .values(is_deleted=True, deleted_at=datetime.utcnow())
        )
        purged = session.exec(purge)  # type: ignore[call-overload]
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("unmatch_failed", user_a=user_a, user_b=user_b)
        raise

    logger.info(
        "unmatched",
        user_a=user_a,
        user_b=user_b,
        removed_swipes=removed_swipes,
        purged_messages=int(purged.rowcount or 0),
        was_matched=was_matched,
    )
    return was_matched


def search_messages(
    user_id: int,
    query: str,
    *,
    session: Session,
    other_user_id: int | None = None,
    limit: int,
    offset: int,
) -> tuple[list[Message], bool]:
    term = (query or "").strip()
    if len(term) < 2:
        raise InvalidSearchQuery()

    statement = select(Message).where(
        col(Message.is_deleted).is_(False),
        col(Message.content).icontains(term, autoescape=True),
    )
    if other_user_id is not None:
        statement = statement.where(_pair_clause(user_id, other_user_id))
    else:
        statement = statement.where(_involves(user_id))
    statement = (
        statement.order_by(desc(col(Message.created_at)), desc(col(Message.id)))
        .offset(offset)
        .limit(limit + 1)
    )
    rows = list(session.exec(statement).all())
    return rows[:limit], len(rows) > limit
