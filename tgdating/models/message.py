from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, Index, desc
from sqlalchemy.types import Enum as SAEnum
from sqlmodel import Field, SQLModel


class MessageType(str, Enum):
    text = "text"
    image = "image"
    sticker = "sticker"
    gif = "gif"


class Message(SQLModel, table=True):
    __tablename__ = "message"
    __table_args__ = (
        Index(
            "ix_message_sender_receiver_created_at",
            "sender_id",
            "receiver_id",
            desc("created_at"),
        ),
        Index("ix_message_receiver_is_read", "receiver_id", "is_read"),
    )

    id: int | None = Field(default=None, primary_key=True)
    sender_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    receiver_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    content: str = Field(nullable=False)
    type: MessageType = Field(
        default=MessageType.text,
        sa_column=Column(
            SAEnum(MessageType, name="messagetype"),
            nullable=False,
            server_default=MessageType.text.value,
        ),
    )
    media_url: str | None = None
    reply_to_id: int | None = Field(default=None, foreign_key="message.id")
    is_read: bool = Field(default=False, nullable=False)
    read_at: datetime | None = None
    is_deleted: bool = Field(default=False, nullable=False)
    deleted_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def conversation_id(self) -> str:
        return conversation_id(self.sender_id, self.receiver_id)


def conversation_id(user_a: int, user_b: int) -> str:
    low, high = sorted((user_a, user_b))
    return f"{low}_{high}"
