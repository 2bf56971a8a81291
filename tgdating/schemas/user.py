from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tgdating.models.user import Gender, LookingFor


class PhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    is_main: bool
    created_at: datetime


class UserPublic(BaseModel):
    """Profile fields another user is allowed to see."""

    id: int
    first_name: str
    last_name: str | None = None
    age: int | None = None
    gender: Gender | None = None
    bio: str | None = None
    interests: list[str] = Field(default_factory=list)
    photos: list[PhotoOut] = Field(default_factory=list)
    main_photo_url: str | None = None
    last_seen: datetime
    is_online: bool = False


class UserOut(UserPublic):
    telegram_id: int
    username: str | None = None
    looking_for: LookingFor | None = None
    is_active: bool
    is_verified: bool
    created_at: datetime


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=64)
    last_name: str | None = Field(default=None, max_length=64)
    age: int | None = Field(default=None, ge=18, le=100)
    gender: Gender | None = None
    looking_for: LookingFor | None = None
    bio: str | None = Field(default=None, max_length=500)
    interests: list[str] | None = Field(default=None, max_length=20)

    @field_validator("interests")
    @classmethod
    def _clean_interests(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        cleaned: list[str] = []
        for item in v:
            value = item.strip()
            if not value:
                continue
            if len(value) > 50:
                raise ValueError("interest must be at most 50 characters")
            if value not in cleaned:
                cleaned.append(value)
        return cleaned


class PhotoCreate(BaseModel):
    url: str = Field(min_length=1, max_length=2048)
    is_main: bool = False


class CandidatesOut(BaseModel):
    candidates: list[UserPublic]
    has_more: bool
