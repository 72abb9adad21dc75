"""WebSocket endpoint for live chat events."""

import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock
from app.core.database import get_session_factory
from app.core.exceptions import AppException
from app.core.redis import current_redis
from app.dependencies import get_clock
from app.models.enums import Role
from app.realtime.connection_hub import Connection, ConnectionHub
from app.realtime.events import ERROR, JOINED, LEFT
from app.repositories.chat_repo import ChatRepository
from app.repositories.settings_repo import SettingsRepository
from app.repositories.user_repo import UserRepository
from app.schemas.auth_schema import TokenPayload
from app.services.chat_service import ChatService
from app.services.settings_service import ChatSettingsService
from app.services.token_service import blacklist_key, decode_token

logger = structlog.get_logger()

router = APIRouter(tags=["realtime"])


async def _authenticate(token: str | None) -> TokenPayload | None:
    """Validate an access token passed in the query string."""
    if not token:
        return None
    try:
        payload = decode_token(token)
    except AppException:
        return None
    if payload.type != "access":
        return None
    redis_client = current_redis()
    if redis_client is not None and await redis_client.get(blacklist_key(payload.jti)):
        return None
    return payload


async def _can_join(
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock,
    session_key: str,
    connection: Connection,
) -> bool:
    async with session_factory() as session:
        service = ChatService(
            chat_repo=ChatRepository(session),
            user_repo=UserRepository(session),
            settings_service=ChatSettingsService(
                SettingsRepository(session), session, clock
            ),
            session=session,
            clock=clock,
        )
        info = await service.get_session_info(
            session_key, connection.user_id, connection.role
        )
    return info is not None


async def _handle_frame(
    hub: ConnectionHub,
    connection: Connection,
    message: dict[str, Any],
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock,
) -> None:
    action = message.get("action")
    session_key = str(message.get("chat_session_id") or "")

    if action == "join_chat":
        if not session_key or not await _can_join(
            session_factory, clock, session_key, connection
        ):
            await hub.send_to(connection, ERROR, {"message": "Cannot join chat session"})
            return
        hub.join(connection, session_key)
        await hub.send_to(connection, JOINED, {"chat_session_id": session_key})
    elif action == "leave_chat":
        hub.leave(connection, session_key)
        await hub.send_to(connection, LEFT, {"chat_session_id": session_key})
    elif action == "join_admin_presence":
        if not hub.join_admins(connection):
            await hub.send_to(connection, ERROR, {"message": "Admins only"})
            return
        await hub.send_to(connection, JOINED, {"group": "admins"})
    else:
        await hub.send_to(connection, ERROR, {"message": "Unknown action"})


@router.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> None:
    """Authenticate, register with the hub and process join/leave frames."""
    payload = await _authenticate(websocket.query_params.get("token"))
    role = Role.parse(payload.role) if payload else None
    if payload is None or role is None:
        logger.info("WebSocket rejected", reason="invalid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    hub: ConnectionHub = websocket.app.state.connection_hub
    connection = await hub.connect(websocket, payload.user_id, role)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await hub.send_to(connection, ERROR, {"message": "Invalid frame"})
                continue
            if not isinstance(message, dict):
                await hub.send_to(connection, ERROR, {"message": "Invalid frame"})
                continue
            await _handle_frame(hub, connection, message, session_factory, clock)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(connection)
