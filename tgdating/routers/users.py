from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from tgdating.core.config import settings
from tgdating.core.db import get_session
from tgdating.core.security import decode_token
from tgdating.models.user import Gender, User
from tgdating.schemas.user import (
    CandidatesOut,
    PhotoCreate,
    ProfileUpdate,
    UserOut,
    UserPublic,
)
from tgdating.services import user_service
from tgdating.services.candidate_service import next_candidates

router = APIRouter(prefix="/users", tags=["users"])
bearer = HTTPBearer()

SessionDep = Annotated[Session, Depends(get_session)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials, Depends(bearer)]


def resolve_token_user(token: str, session: Session) -> User:
    try:
        payload = decode_token(token)
    except Exception as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from err

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    user = session.get(User, int(subject))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated",
        )
    return user


def get_current_user(creds: CredentialsDep, session: SessionDep) -> User:
    user = resolve_token_user(creds.credentials, session)
    user_service.touch_last_seen(session, user)
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_user_id(user: User) -> int:
    if user.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="authenticated user missing identifier",
        )
    return user.id


@router.get("/me", response_model=UserOut)
def read_me(current: CurrentUserDep, session: SessionDep) -> UserOut:
    return user_service.own_profile(session, current)


@router.put("/me", response_model=UserOut)
def update_me(
    payload: ProfileUpdate,
    current: CurrentUserDep,
    session: SessionDep,
) -> UserOut:
    user = user_service.update_profile(session, current, payload)
    return user_service.own_profile(session, user)


@router.post("/me/photos", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def add_my_photo(
    payload: PhotoCreate,
    current: CurrentUserDep,
    session: SessionDep,
) -> UserOut:
    user_service.add_photo(session, current, url=payload.url, is_main=payload.is_main)
    return user_service.own_profile(session, current)


@router.post("/me/deactivate", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_me(current: CurrentUserDep, session: SessionDep) -> None:
    user_service.deactivate(session, current)


@router.get("/candidates", response_model=CandidatesOut)
def list_candidates(
    current: CurrentUserDep,
    session: SessionDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
    gender: Annotated[Gender | None, Query()] = None,
    min_age: Annotated[int | None, Query(ge=18, le=100)] = None,
    max_age: Annotated[int | None, Query(ge=18, le=100)] = None,
) -> CandidatesOut:
    user_id = require_user_id(current)
    user_service.ensure_profile_complete(session, current)

    batch_size = min(
        limit or settings.candidates_default_limit,
        settings.candidates_max_limit,
    )
    candidates, has_more = next_candidates(
        user_id,
        batch_size,
        session=session,
        gender=gender,
        min_age=min_age,
        max_age=max_age,
    )
    return CandidatesOut(candidates=candidates, has_more=has_more)


@router.get("/{user_id}", response_model=UserPublic)
def read_user(user_id: int, current: CurrentUserDep, session: SessionDep) -> UserPublic:
    user = user_service.get_active_user(session, user_id)
    return user_service.public_profile(session, user)
