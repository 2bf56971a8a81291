from typing import Literal

from pydantic import BaseModel, Field

from tgdating.models.user import Gender, LookingFor
from tgdating.schemas.user import UserOut


class TelegramAuthRequest(BaseModel):
    init_data: str = Field(min_length=1)
    # Registration fields; ignored for users that already exist
    first_name: str | None = Field(default=None, max_length=64)
    last_name: str | None = Field(default=None, max_length=64)
    age: int | None = Field(default=None, ge=18, le=100)
    gender: Gender | None = None
    looking_for: LookingFor | None = None
    bio: str | None = Field(default=None, max_length=500)
    interests: list[str] = Field(default_factory=list, max_length=20)


class TokenResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"


class AuthResponse(TokenResponse):
    user: UserOut
    is_new: bool
