from __future__ import annotations

import itertools
import os
from collections.abc import Callable, Iterator
from typing import Any, cast

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import tgdating.core.db as db_module
from tgdating.core.config import settings
from tgdating.main import app
from tgdating.models.message import Message  # noqa: F401
from tgdating.models.swipe import Swipe  # noqa: F401
from tgdating.models.user import Gender, LookingFor, User, UserPhoto
from tgdating.tests.helpers import TEST_BOT_TOKEN, auth_headers, build_init_data

settings.telegram_bot_token = TEST_BOT_TOKEN

_telegram_ids = itertools.count(700_000_001)


# ---- service-level fixtures ----


@pytest.fixture
def session() -> Iterator[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as db_session:
        yield db_session
    engine.dispose()


@pytest.fixture
def make_user(session: Session) -> Callable[..., User]:
    def _make(
        *,
        first_name: str = "Test",
        age: int = 27,
        gender: Gender = Gender.female,
        is_active: bool = True,
        complete: bool = True,
    ) -> User:
        user = User(
            telegram_id=next(_telegram_ids),
            first_name=first_name,
            age=age if complete else None,
            gender=gender,
            looking_for=LookingFor.both,
            bio="Coffee and long walks" if complete else None,
            interests=["music", "travel"],
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        if complete:
            session.add(
                UserPhoto(
                    user_id=cast(int, user.id),
                    url=f"https://cdn.example.com/{user.id}.jpg",
                    is_main=True,
                )
            )
            session.commit()
        return user

    return _make


# ---- HTTP-level fixtures ----


@pytest.fixture(scope="module")
def client(request: pytest.FixtureRequest) -> Iterator[TestClient]:
    db_filename = f"{request.module.__name__.rsplit('.', 1)[-1]}.db"
    db_url = f"sqlite:///./{db_filename}"
    original_engine = db_module.engine
    test_engine = create_engine(db_url, connect_args={"check_same_thread": False})
    db_module.engine = test_engine

    def override_get_session() -> Iterator[Session]:
        with Session(test_engine) as db_session:
            yield db_session

    app.dependency_overrides[db_module.get_session] = override_get_session
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(db_module.get_session, None)
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()
    db_module.engine = original_engine
    if os.path.exists(db_filename):
        os.remove(db_filename)


@pytest.fixture
def register(client: TestClient) -> Callable[..., tuple[str, int]]:
    """Log a fresh Telegram user in and give them a complete profile."""

    def _register(first_name: str = "Alex", *, complete: bool = True) -> tuple[str, int]:
        telegram_user = {"id": next(_telegram_ids), "first_name": first_name}
        body: dict[str, Any] = {"init_data": build_init_data(telegram_user)}
        if complete:
            body.update(
                {"age": 28, "gender": "male", "looking_for": "both", "bio": "Hi there"}
            )
        response = client.post("/api/v1/auth/telegram", json=body)
        assert response.status_code == 200, response.text
        data = response.json()
        token = cast(str, data["access_token"])
        if complete:
            response = client.post(
                "/api/v1/users/me/photos",
                headers=auth_headers(token),
                json={"url": f"https://cdn.example.com/{first_name}.jpg"},
            )
            assert response.status_code == 201, response.text
        return token, int(data["user"]["id"])

    return _register
