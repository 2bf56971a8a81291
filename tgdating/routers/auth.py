from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from tgdating.core.db import get_session
from tgdating.core.security import create_access_token
from tgdating.schemas.auth import AuthResponse, TelegramAuthRequest
from tgdating.services import user_service
from tgdating.services.auth_service import login_with_telegram

router = APIRouter(prefix="/auth", tags=["auth"])

SessionDep = Annotated[Session, Depends(get_session)]


@router.post("/telegram", response_model=AuthResponse)
def telegram_login(payload: TelegramAuthRequest, session: SessionDep) -> AuthResponse:
    user, is_new = login_with_telegram(payload, session=session)
    return AuthResponse(
        access_token=create_access_token(sub=str(user.id)),
        user=user_service.own_profile(session, user),
        is_new=is_new,
    )
