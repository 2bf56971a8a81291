from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from tgdating.models.message import MessageType
from tgdating.schemas.match import LastMessage
from tgdating.schemas.user import UserPublic


class MessageCreate(BaseModel):
    receiver_id: int
    content: str
    type: MessageType = MessageType.text
    media_url: str | None = Field(default=None, max_length=2048)
    reply_to: int | None = None


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    conversation_id: str
    content: str
    type: MessageType
    media_url: str | None = None
    reply_to_id: int | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class MessagePage(BaseModel):
    messages: list[MessageOut]
    has_more: bool


class ConversationSummary(BaseModel):
    user_id: int
    user: UserPublic
    last_message: LastMessage
    unread_count: int


class ReadReceipt(BaseModel):
    updated: int


class UnreadCount(BaseModel):
    unread_count: int


class ReportReason(str, Enum):
    spam = "spam"
    harassment = "harassment"
    inappropriate = "inappropriate"
    other = "other"


class MessageReport(BaseModel):
    reason: ReportReason
    description: str | None = Field(default=None, max_length=500)


class ReportAck(BaseModel):
    reported: bool = True
