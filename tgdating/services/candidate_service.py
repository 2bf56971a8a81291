from __future__ import annotations

from sqlalchemy import func
from sqlmodel import Session, col, select

from tgdating.models.swipe import Swipe
from tgdating.models.user import Gender, User
from tgdating.schemas.user import UserPublic
from tgdating.services.user_service import public_profiles


def next_candidates(
    user_id: int,
    limit: int,
    *,
    session: Session,
    gender: Gender | str | None = None,
    min_age: int | None = None,
    max_age: int | None = None,
) -> tuple[list[UserPublic], bool]:
    """Return up to ``limit`` active users ``user_id`` has never swiped on.

    Any swipe (pass included) excludes the target for good. The batch is drawn
    in random order; ``has_more`` is true when at least one more eligible
    user exists beyond it.
    """
    if limit <= 0:
        return [], False

    already_swiped = select(Swipe.target_id).where(Swipe.actor_id == user_id)

    statement = select(User).where(
        User.id != user_id,
        col(User.is_active).is_(True),
        col(User.id).not_in(already_swiped),
    )
    if gender:
        statement = statement.where(User.gender == Gender(gender))
    if min_age is not None:
        statement = statement.where(col(User.age) >= min_age)
    if max_age is not None:
        statement = statement.where(col(User.age) <= max_age)
    statement = statement.order_by(func.random()).limit(limit + 1)

    rows = list(session.exec(statement).all())
    has_more = len(rows) > limit
    batch = rows[:limit]

    profiles = public_profiles(session, batch)
    return [profiles[user.id] for user in batch if user.id in profiles], has_more
