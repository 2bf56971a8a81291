from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlmodel import Session, select

from tgdating.core.errors import InvalidInitData
from tgdating.core.security import verify_telegram_init_data
from tgdating.models.user import User
from tgdating.schemas.auth import TelegramAuthRequest

logger = structlog.get_logger(__name__)


def _telegram_user(init_data: str) -> dict[str, Any]:
    parsed = verify_telegram_init_data(init_data)
    telegram_user = parsed.get("user")
    if not isinstance(telegram_user, dict) or "id" not in telegram_user:
        raise InvalidInitData("Telegram user data not found.")
    return telegram_user


def login_with_telegram(
    payload: TelegramAuthRequest,
    *,
    session: Session,
) -> tuple[User, bool]:
    """Return the user behind ``init_data``, registering them on first login."""
    telegram_user = _telegram_user(payload.init_data)
    telegram_id = int(telegram_user["id"])

    user = session.exec(select(User).where(User.telegram_id == telegram_id)).first()
    if user is not None:
        user.last_seen = datetime.utcnow()
        session.add(user)
        session.commit()
        session.refresh(user)
        logger.info("user_logged_in", user_id=user.id)
        return user, False

    first_name = payload.first_name or telegram_user.get("first_name") or "Anonymous"
    user = User(
        telegram_id=telegram_id,
        username=telegram_user.get("username"),
        first_name=first_name,
        last_name=payload.last_name or telegram_user.get("last_name"),
        age=payload.age,
        gender=payload.gender,
        looking_for=payload.looking_for,
        bio=payload.bio or "",
        interests=[item.strip() for item in payload.interests if item.strip()],
        # Telegram vouches for the identity
        is_verified=True,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("user_registered", user_id=user.id, telegram_id=telegram_id)
    return user, True
