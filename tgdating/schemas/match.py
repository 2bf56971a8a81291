from datetime import datetime

from pydantic import BaseModel, ConfigDict

from tgdating.models.message import MessageType
from tgdating.models.swipe import SwipeAction
from tgdating.schemas.user import UserPublic


class SwipeIn(BaseModel):
    target_user_id: int
    action: SwipeAction


class SwipeDecisionResult(BaseModel):
    accepted: bool
    is_match: bool
    action: SwipeAction


class LastMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    content: str
    type: MessageType
    created_at: datetime
    is_read: bool


class MatchSummary(BaseModel):
    user_id: int
    user: UserPublic
    matched_at: datetime
    last_message: LastMessage | None = None


class SwipeOut(BaseModel):
    id: int
    actor_id: int
    target_id: int
    action: SwipeAction
    created_at: datetime
    # The other party: the target for sent swipes, the actor for received ones
    user: UserPublic | None = None


class SwipePage(BaseModel):
    items: list[SwipeOut]
    has_more: bool


class SwipeStats(BaseModel):
    total_matches: int
    total_likes: int
    total_passes: int
    total_superlikes: int
    received_likes: int
