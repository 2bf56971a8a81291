from __future__ import annotations

import asyncio
from typing import Any, cast

from fastapi import WebSocket

from tgdating.services.realtime import EVENT_NEW_MESSAGE, ConnectionManager


class _FakeSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.broken = broken
        self.sent: list[dict[str, Any]] = []

    async def accept(self) -> None:
        return None

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.broken:
            raise RuntimeError("Cannot call 'send' once a close message has been sent.")
        self.sent.append(data)


def _socket(fake: _FakeSocket) -> WebSocket:
    return cast(WebSocket, fake)


def test_deliver_reaches_every_socket_of_the_user() -> None:
    manager = ConnectionManager()
    phone, laptop, stranger = _FakeSocket(), _FakeSocket(), _FakeSocket()

    async def scenario() -> int:
        await manager.connect(1, _socket(phone))
        await manager.connect(1, _socket(laptop))
        await manager.connect(2, _socket(stranger))
        return await manager.deliver(1, EVENT_NEW_MESSAGE, {"content": "hi"})

    assert asyncio.run(scenario()) == 2
    expected = {"event": "receive_message", "data": {"content": "hi"}}
    assert phone.sent == [expected]
    assert laptop.sent == [expected]
    assert stranger.sent == []


def test_deliver_prunes_dead_socket_and_keeps_going() -> None:
    manager = ConnectionManager()
    dead, alive = _FakeSocket(broken=True), _FakeSocket()

    async def scenario() -> int:
        await manager.connect(1, _socket(dead))
        await manager.connect(1, _socket(alive))
        return await manager.deliver(1, EVENT_NEW_MESSAGE, {"content": "hi"})

    assert asyncio.run(scenario()) == 1
    assert alive.sent == [{"event": "receive_message", "data": {"content": "hi"}}]
    assert manager.is_connected(1)

    manager.disconnect(1, _socket(alive))
    assert not manager.is_connected(1)


def test_deliver_to_offline_user_is_a_noop() -> None:
    manager = ConnectionManager()
    assert asyncio.run(manager.deliver(42, EVENT_NEW_MESSAGE, {})) == 0
