from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlmodel import Session

from tgdating.core.config import settings
from tgdating.core.db import get_session
from tgdating.models.user import User
from tgdating.routers.users import get_current_user, require_user_id
from tgdating.schemas.message import (
    ConversationSummary,
    MessageCreate,
    MessageOut,
    MessagePage,
    MessageReport,
    ReadReceipt,
    ReportAck,
    UnreadCount,
)
from tgdating.services import message_service
from tgdating.services.realtime import EVENT_MESSAGES_READ, EVENT_NEW_MESSAGE, manager

router = APIRouter(prefix="/messages", tags=["messages"])

SessionDep = Annotated[Session, Depends(get_session)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]


@router.post("", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def create_message(
    payload: MessageCreate,
    current: CurrentUserDep,
    session: SessionDep,
    background_tasks: BackgroundTasks,
) -> MessageOut:
    message = message_service.send_message(
        require_user_id(current),
        payload.receiver_id,
        payload.content,
        session=session,
        message_type=payload.type,
        media_url=payload.media_url,
        reply_to=payload.reply_to,
    )
    out = MessageOut.model_validate(message, from_attributes=True)
    background_tasks.add_task(
        manager.deliver,
        payload.receiver_id,
        EVENT_NEW_MESSAGE,
        out.model_dump(mode="json"),
    )
    return out


@router.get("/conversations", response_model=list[ConversationSummary])
def list_my_conversations(
    current: CurrentUserDep,
    session: SessionDep,
) -> list[ConversationSummary]:
    return message_service.list_conversations(require_user_id(current), session=session)


@router.get("/conversations/{user_id}", response_model=MessagePage)
def read_conversation(
    user_id: int,
    current: CurrentUserDep,
    session: SessionDep,
    background_tasks: BackgroundTasks,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> MessagePage:
    me = require_user_id(current)
    messages, has_more = message_service.get_conversation(
        me, user_id, session=session, limit=limit, offset=offset
    )
    # Serialise before marking so the payload shows the state as fetched
    page = MessagePage(
        messages=[
            MessageOut.model_validate(message, from_attributes=True)
            for message in messages
        ],
        has_more=has_more,
    )
    if settings.mark_read_on_fetch:
        updated = message_service.mark_conversation_as_read(me, user_id, session=session)
        if updated:
            background_tasks.add_task(
                manager.deliver, user_id, EVENT_MESSAGES_READ, {"reader_id": me}
            )
    return page


@router.put("/conversations/{user_id}/read", response_model=ReadReceipt)
def mark_read(
    user_id: int,
    current: CurrentUserDep,
    session: SessionDep,
    background_tasks: BackgroundTasks,
) -> ReadReceipt:
    me = require_user_id(current)
    updated = message_service.mark_conversation_as_read(me, user_id, session=session)
    if updated:
        background_tasks.add_task(
            manager.deliver, user_id, EVENT_MESSAGES_READ, {"reader_id": me}
        )
    return ReadReceipt(updated=updated)


@router.get("/unread/count", response_model=UnreadCount)
def my_unread_count(current: CurrentUserDep, session: SessionDep) -> UnreadCount:
    return UnreadCount(
        unread_count=message_service.unread_count(require_user_id(current), session=session)
    )


@router.get("/search", response_model=MessagePage)
def search(
    current: CurrentUserDep,
    session: SessionDep,
    query: Annotated[str, Query(max_length=200)],
    user_id: Annotated[int | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> MessagePage:
    messages, has_more = message_service.search_messages(
        require_user_id(current),
        query,
        session=session,
        other_user_id=user_id,
        limit=limit,
        offset=offset,
    )
    return MessagePage(
        messages=[
            MessageOut.model_validate(message, from_attributes=True)
            for message in messages
        ],
        has_more=has_more,
    )


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    message_id: int,
    current: CurrentUserDep,
    session: SessionDep,
) -> None:
    message_service.soft_delete_message(
        require_user_id(current), message_id, session=session
    )


@router.post("/{message_id}/report", response_model=ReportAck)
def report_message(
    message_id: int,
    payload: MessageReport,
    current: CurrentUserDep,
    session: SessionDep,
) -> ReportAck:
    message_service.report_message(
        require_user_id(current),
        message_id,
        payload.reason,
        session=session,
        description=payload.description,
    )
    return ReportAck()
