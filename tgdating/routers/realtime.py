from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, status
from sqlmodel import Session
from starlette.websockets import WebSocketDisconnect

from tgdating.core.db import get_session
from tgdating.routers.users import resolve_token_user
from tgdating.services.realtime import manager

router = APIRouter(tags=["realtime"])

SessionDep = Annotated[Session, Depends(get_session)]


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    session: SessionDep,
    token: Annotated[str, Query()],
) -> None:
    try:
        user = resolve_token_user(token, session)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user_id = user.id
    if user_id is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    # The socket outlives any single query; release the connection now
    session.close()

    await manager.connect(user_id, websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            # Only text keepalives travel client -> server; binary frames are ignored
            text = message.get("text")
            if text is not None and text.strip() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(user_id, websocket)
