from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy import JSON, BigInteger, Column, ForeignKey, Integer
from sqlalchemy.types import Enum as SAEnum
from sqlmodel import Field, SQLModel


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class LookingFor(str, Enum):
    male = "male"
    female = "female"
    both = "both"


class User(SQLModel, table=True):
    __tablename__ = "user"
    __table_args__ = (
        sa.UniqueConstraint("telegram_id", name="uq_user_telegram_id"),
        sa.Index("ix_user_active_last_seen", "is_active", "last_seen"),
    )

    id: int | None = Field(default=None, primary_key=True)
    telegram_id: int = Field(sa_column=Column(BigInteger, nullable=False, index=True))
    username: str | None = None
    first_name: str = Field(nullable=False)
    last_name: str | None = None
    age: int | None = None
    gender: Gender | None = Field(
        default=None,
        sa_column=Column(SAEnum(Gender, name="gender"), nullable=True),
    )
    looking_for: LookingFor | None = Field(
        default=None,
        sa_column=Column(SAEnum(LookingFor, name="lookingfor"), nullable=True),
    )
    bio: str | None = None
    interests: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    is_active: bool = Field(default=True, nullable=False)
    is_verified: bool = Field(default=False, nullable=False)
    last_seen: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class UserPhoto(SQLModel, table=True):
    __tablename__ = "user_photo"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("user.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    url: str = Field(nullable=False)
    is_main: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
