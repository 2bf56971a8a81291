from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import asc
from sqlmodel import Session, col, select

from tgdating.core.config import settings
from tgdating.core.errors import ProfileIncomplete, UserNotFound
from tgdating.models.user import User, UserPhoto
from tgdating.schemas.user import PhotoOut, ProfileUpdate, UserOut, UserPublic

logger = structlog.get_logger(__name__)

_LAST_SEEN_RESOLUTION = timedelta(minutes=1)
_REQUIRED_PROFILE_FIELDS = ("age", "gender", "looking_for", "bio")


def is_online(user: User, now: datetime | None = None) -> bool:
    now = now or datetime.utcnow()
    return now - user.last_seen < timedelta(minutes=settings.online_window_minutes)


def touch_last_seen(session: Session, user: User, now: datetime | None = None) -> None:
    now = now or datetime.utcnow()
    if now - user.last_seen < _LAST_SEEN_RESOLUTION:
        return
    user.last_seen = now
    session.add(user)
    session.commit()
    session.refresh(user)


def photos_by_user(
    session: Session, user_ids: Iterable[int]
) -> dict[int, list[UserPhoto]]:
    ids = set(user_ids)
    grouped: dict[int, list[UserPhoto]] = defaultdict(list)
    if not ids:
        return grouped
    statement = (
        select(UserPhoto)
        .where(col(UserPhoto.user_id).in_(ids))
        .order_by(asc(col(UserPhoto.created_at)), asc(col(UserPhoto.id)))
    )
    for photo in session.exec(statement).all():
        grouped[photo.user_id].append(photo)
    return grouped


def _main_photo_url(photos: list[UserPhoto]) -> str | None:
    for photo in photos:
        if photo.is_main:
            return photo.url
    return photos[0].url if photos else None


def _profile_fields(user: User, photos: list[UserPhoto], now: datetime) -> dict[str, Any]:
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "age": user.age,
        "gender": user.gender,
        "bio": user.bio,
        "interests": list(user.interests or []),
        "photos": [PhotoOut.model_validate(photo) for photo in photos],
        "main_photo_url": _main_photo_url(photos),
        "last_seen": user.last_seen,
        "is_online": is_online(user, now),
    }


def public_profiles(
    session: Session, users: Iterable[User], now: datetime | None = None
) -> dict[int, UserPublic]:
    now = now or datetime.utcnow()
    user_list = [user for user in users if user.id is not None]
    photos = photos_by_user(session, (user.id for user in user_list))  # type: ignore[misc]
    return {
        user.id: UserPublic(**_profile_fields(user, photos.get(user.id, []), now))  # type: ignore[index, arg-type]
        for user in user_list
    }


def public_profile(session: Session, user: User) -> UserPublic:
    return public_profiles(session, [user])[user.id]  # type: ignore[index]


def users_by_id(session: Session, user_ids: Iterable[int]) -> dict[int, User]:
    ids = set(user_ids)
    if not ids:
        return {}
    users = session.exec(select(User).where(col(User.id).in_(ids))).all()
    return {user.id: user for user in users if user.id is not None}


def own_profile(session: Session, user: User) -> UserOut:
    photos = photos_by_user(session, [user.id]).get(user.id, [])  # type: ignore[list-item, arg-type]
    return UserOut(
        **_profile_fields(user, photos, datetime.utcnow()),
        telegram_id=user.telegram_id,
        username=user.username,
        looking_for=user.looking_for,
        is_active=user.is_active,
        is_verified=user.is_verified,
        created_at=user.created_at,
    )


def get_active_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise UserNotFound()
    return user


def missing_profile_fields(session: Session, user: User) -> list[str]:
    missing = [name for name in _REQUIRED_PROFILE_FIELDS if not getattr(user, name)]
    if not photos_by_user(session, [user.id]).get(user.id):  # type: ignore[list-item, arg-type]
        missing.append("photos")
    return missing


def ensure_profile_complete(session: Session, user: User) -> None:
    missing = missing_profile_fields(session, user)
    if missing:
        raise ProfileIncomplete(missing_fields=missing)


def update_profile(session: Session, user: User, payload: ProfileUpdate) -> User:
    changes = payload.model_dump(exclude_unset=True)
    for field_name, value in changes.items():
        if field_name == "first_name" and value is None:
            continue
        setattr(user, field_name, value)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user


def add_photo(session: Session, user: User, *, url: str, is_main: bool) -> UserPhoto:
    existing = photos_by_user(session, [user.id]).get(user.id, [])  # type: ignore[list-item, arg-type]
    make_main = is_main or not existing
    if make_main:
        for photo in existing:
            if photo.is_main:
                photo.is_main = False
                session.add(photo)
    photo = UserPhoto(user_id=user.id, url=url, is_main=make_main)  # type: ignore[arg-type]
    session.add(photo)
    session.commit()
    session.refresh(photo)
    return photo


def deactivate(session: Session, user: User) -> None:
    user.is_active = False
    session.add(user)
    session.commit()
    logger.info("user_deactivated", user_id=user.id)
