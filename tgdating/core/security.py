from __future__ import annotations

import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta
from typing import Any, cast
from urllib.parse import parse_qsl

import jwt

from tgdating.core.config import settings
from tgdating.core.errors import InvalidInitData

_ALGO: str = settings.jwt_algorithm


def create_access_token(sub: str, *, minutes: int | None = None) -> str:
    minutes = minutes or settings.access_token_expire_minutes
    expire = datetime.utcnow() + timedelta(minutes=minutes)
    payload: dict[str, Any] = {"sub": sub, "exp": expire}
    token = jwt.encode(payload, settings.jwt_secret, algorithm=_ALGO)
    return token


def decode_token(token: str) -> dict[str, Any]:
    return cast(
        dict[str, Any],
        jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[_ALGO],
        ),
    )


def verify_telegram_init_data(
    init_data: str,
    *,
    bot_token: str | None = None,
    max_age_seconds: int | None = None,
    now: float | None = None,
) -> dict[str, Any]:
    """Validate a Telegram WebApp ``initData`` string and return its fields.

    The signature is HMAC-SHA256 over the sorted ``key=value`` lines (without
    ``hash``), keyed with HMAC-SHA256("WebAppData", bot_token). The ``user``
    field is decoded from JSON.
    """
    bot_token = bot_token if bot_token is not None else settings.telegram_bot_token
    if not bot_token:
        raise InvalidInitData("Telegram bot token is not configured.")
    max_age = (
        max_age_seconds
        if max_age_seconds is not None
        else settings.telegram_auth_max_age_seconds
    )

    fields = dict(parse_qsl(init_data, keep_blank_values=True))
    received_hash = fields.pop("hash", None)
    if not received_hash:
        raise InvalidInitData("Telegram init data is not signed.")

    data_check_string = "\n".join(f"{key}={fields[key]}" for key in sorted(fields))
    secret_key = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    expected_hash = hmac.new(
        secret_key, data_check_string.encode(), hashlib.sha256
    ).hexdigest()
    if not hmac.compare_digest(expected_hash, received_hash):
        raise InvalidInitData("Telegram init data signature mismatch.")

    try:
        auth_date = int(fields.get("auth_date", ""))
    except ValueError as err:
        raise InvalidInitData("Telegram init data has no auth_date.") from err
    current = now if now is not None else time.time()
    if max_age > 0 and current - auth_date > max_age:
        raise InvalidInitData("Telegram init data has expired.")

    parsed: dict[str, Any] = dict(fields)
    raw_user = fields.get("user")
    if raw_user:
        try:
            parsed["user"] = json.loads(raw_user)
        except json.JSONDecodeError as err:
            raise InvalidInitData("Telegram user payload is malformed.") from err
    else:
        parsed["user"] = None
    return parsed
