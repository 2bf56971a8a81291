from __future__ import annotations

import itertools
import time
from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from tgdating.core.errors import InvalidInitData
from tgdating.core.security import create_access_token, decode_token, verify_telegram_init_data
from tgdating.tests.helpers import TEST_BOT_TOKEN, auth_headers, build_init_data

_telegram_ids = itertools.count(810_000_001)


def test_verify_accepts_signed_init_data() -> None:
    init_data = build_init_data({"id": 42, "first_name": "Ann", "username": "ann"})

    parsed = verify_telegram_init_data(init_data, bot_token=TEST_BOT_TOKEN)

    assert parsed["user"] == {"id": 42, "first_name": "Ann", "username": "ann"}
    assert "hash" not in parsed
    assert parsed["query_id"] == "AAHdF6IQAAAAAN0XohDhrOrc"


def test_verify_rejects_foreign_signature() -> None:
    init_data = build_init_data({"id": 42}, bot_token="999:someone-else")
    with pytest.raises(InvalidInitData) as excinfo:
        verify_telegram_init_data(init_data, bot_token=TEST_BOT_TOKEN)
    assert excinfo.value.status_code == 401


def test_verify_rejects_tampered_payload() -> None:
    init_data = build_init_data({"id": 42})
    tampered = init_data.replace("42", "43")
    with pytest.raises(InvalidInitData):
        verify_telegram_init_data(tampered, bot_token=TEST_BOT_TOKEN)


def test_verify_rejects_unsigned_payload() -> None:
    with pytest.raises(InvalidInitData):
        verify_telegram_init_data("auth_date=1&user=%7B%7D", bot_token=TEST_BOT_TOKEN)


def test_verify_rejects_expired_payload() -> None:
    issued = int(time.time()) - 3600
    init_data = build_init_data({"id": 42}, auth_date=issued)

    assert verify_telegram_init_data(init_data, bot_token=TEST_BOT_TOKEN, max_age_seconds=7200)
    with pytest.raises(InvalidInitData):
        verify_telegram_init_data(init_data, bot_token=TEST_BOT_TOKEN, max_age_seconds=60)


def test_verify_requires_configured_bot_token() -> None:
    with pytest.raises(InvalidInitData):
        verify_telegram_init_data(build_init_data({"id": 42}), bot_token="")


def test_access_token_round_trip() -> None:
    assert decode_token(create_access_token(sub="17"))["sub"] == "17"


# ---- HTTP ----


def test_first_login_registers_then_reuses_account(client: TestClient) -> None:
    telegram_user = {"id": next(_telegram_ids), "first_name": "Nadia", "username": "nadia"}

    first = client.post(
        "/api/v1/auth/telegram",
        json={
            "init_data": build_init_data(telegram_user),
            "age": 30,
            "gender": "female",
            "looking_for": "male",
            "bio": "Hiking",
            "interests": [" hiking ", "", "books"],
        },
    )
    assert first.status_code == 200, first.text
    body = first.json()
    assert body["is_new"] is True
    assert body["token_type"] == "bearer"
    user = body["user"]
    assert user["telegram_id"] == telegram_user["id"]
    assert user["username"] == "nadia"
    assert user["first_name"] == "Nadia"
    assert user["age"] == 30
    assert user["interests"] == ["hiking", "books"]
    assert user["is_verified"] is True

    second = client.post(
        "/api/v1/auth/telegram",
        json={"init_data": build_init_data(telegram_user), "age": 55},
    )
    assert second.status_code == 200, second.text
    assert second.json()["is_new"] is False
    assert second.json()["user"]["id"] == user["id"]
    assert second.json()["user"]["age"] == 30

    me = client.get("/api/v1/users/me", headers=auth_headers(second.json()["access_token"]))
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


def test_login_rejects_bad_init_data(client: TestClient) -> None:
    init_data = build_init_data({"id": next(_telegram_ids)}, bot_token="999:someone-else")

    response = client.post("/api/v1/auth/telegram", json={"init_data": init_data})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "invalid_init_data"


def test_protected_routes_need_a_valid_token(client: TestClient) -> None:
    assert client.get("/api/v1/users/me").status_code in (401, 403)

    response = client.get("/api/v1/users/me", headers=auth_headers("not-a-jwt"))
    assert response.status_code == 401


def test_deactivated_account_is_locked_out(
    client: TestClient, register: Callable[..., tuple[str, int]]
) -> None:
    token, _ = register("Quinn")

    response = client.post("/api/v1/users/me/deactivate", headers=auth_headers(token))
    assert response.status_code == 204

    response = client.get("/api/v1/users/me", headers=auth_headers(token))
    assert response.status_code == 401
    assert response.json()["detail"] == "Account is deactivated"
