from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, Index, UniqueConstraint
from sqlalchemy.types import Enum as SAEnum
from sqlmodel import Field, SQLModel


class SwipeAction(str, Enum):
    like = "like"
    pass_ = "pass"
    superlike = "superlike"


# Actions that count towards a mutual match
LIKE_ACTIONS: tuple[SwipeAction, ...] = (SwipeAction.like, SwipeAction.superlike)


class Swipe(SQLModel, table=True):
    __tablename__ = "swipe"
    __table_args__ = (
        UniqueConstraint("actor_id", "target_id", name="uq_swipe_actor_target"),
        Index("ix_swipe_target_action", "target_id", "action"),
    )

    id: int | None = Field(default=None, primary_key=True)
    actor_id: int = Field(foreign_key="user.id", index=True, nullable=False)
    target_id: int = Field(foreign_key="user.id", index=True, nullable=False)
    action: SwipeAction = Field(
        sa_column=Column(
            SAEnum(
                SwipeAction,
                name="swipeaction",
                values_callable=lambda enum: [member.value for member in enum],
            ),
            nullable=False,
        ),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False, index=True
    )
