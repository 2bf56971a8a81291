from __future__ import annotations

import os
import sys
from pathlib import Path

from sqlmodel import Session, select

# --- make project root importable even if CWD is different ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tgdating.core.db import engine, init_db  # type: ignore
from tgdating.models.swipe import Swipe, SwipeAction  # type: ignore
from tgdating.models.user import Gender, LookingFor, User, UserPhoto  # type: ignore

# telegram_id, first_name, age, gender, looking_for, bio
DEMO_USERS = [
    (900_000_001, "Anna", 26, Gender.female, LookingFor.male, "Bouldering and board games."),
    (900_000_002, "Boris", 29, Gender.male, LookingFor.female, "Cooks a mean borscht."),
    (900_000_003, "Chloe", 31, Gender.female, LookingFor.both, "Film photography nerd."),
    (900_000_004, "Dmitri", 27, Gender.male, LookingFor.both, "Runs before sunrise."),
    (900_000_005, "Elif", 24, Gender.female, LookingFor.male, "Looking for concert buddies."),
]

# (actor, target, action) by telegram id; Anna and Boris end up matched
DEMO_SWIPES = [
    (900_000_001, 900_000_002, SwipeAction.like),
    (900_000_002, 900_000_001, SwipeAction.superlike),
    (900_000_003, 900_000_004, SwipeAction.like),
    (900_000_005, 900_000_002, SwipeAction.pass_),
]


def run() -> None:
    env_file = os.environ.get("ENV_FILE", "tgdating/.env")
    print(f"[seed] ENV_FILE={env_file}")
    init_db()

    created_users = 0
    created_swipes = 0

    with Session(engine) as session:
        by_telegram_id: dict[int, int] = {}
        for telegram_id, first_name, age, gender, looking_for, bio in DEMO_USERS:
            user = session.exec(select(User).where(User.telegram_id == telegram_id)).first()
            if user:
                print(f"[seed] user already exists: {user.first_name}")
            else:
                user = User(
                    telegram_id=telegram_id,
                    first_name=first_name,
                    age=age,
                    gender=gender,
                    looking_for=looking_for,
                    bio=bio,
                    interests=["music", "travel"],
                    is_verified=True,
                )
                session.add(user)
                session.commit()
                session.refresh(user)
                session.add(
                    UserPhoto(
                        user_id=user.id,
                        url=f"https://picsum.photos/seed/{telegram_id}/600/800",
                        is_main=True,
                    )
                )
                session.commit()
                created_users += 1
                print(f"[seed] created user: {first_name}")
            by_telegram_id[telegram_id] = user.id

        for actor, target, action in DEMO_SWIPES:
            actor_id, target_id = by_telegram_id[actor], by_telegram_id[target]
            existing = session.exec(
                select(Swipe).where(Swipe.actor_id == actor_id, Swipe.target_id == target_id)
            ).first()
            if existing:
                continue
            session.add(Swipe(actor_id=actor_id, target_id=target_id, action=action))
            session.commit()
            created_swipes += 1

    print(f"[seed] done. users_created={created_users}, swipes_created={created_swipes}")


if __name__ == "__main__":
    run()
