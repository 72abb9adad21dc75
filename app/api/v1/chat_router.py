"""Chat API router: sessions, messages and read receipts."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.core.clock import Clock, ensure_utc
from app.core.config import settings
from app.core.exceptions import SessionExpiredError
from app.dependencies import (
    CurrentUser,
    get_chat_service,
    get_clock,
    get_connection_hub,
    get_settings_service,
    require_role,
)
from app.models.enums import MessageType, Role
from app.realtime.connection_hub import ConnectionHub
from app.realtime.events import (
    MESSAGE_STATUS_CHANGED,
    REASON_DURATION_EXPIRED,
    RECEIVE_MESSAGE,
    SESSION_ENDED,
    UNREAD_COUNT_CHANGED,
    message_payload,
    seen_payload,
    session_ended_payload,
    unread_payload,
)
from app.schemas.chat_schema import (
    ChatHistoryItem,
    ChatSessionInfoResponse,
    ChatSessionSummary,
    MarkSeenRequest,
    MarkSeenResponse,
    MySessionResponse,
    OpenChatRequest,
    OpenChatResponse,
    SendMessageCommand,
    SendMessageRequest,
    SendMessageResponse,
)
from app.schemas.response_schema import ApiResponse, ErrorResponse, success_response
from app.services.chat_service import ChatService
from app.services.settings_service import ChatSettingsService

router = APIRouter(
    prefix="/api/v1/chat",
    tags=["chat"],
    dependencies=[Depends(require_role(Role.ADMIN, Role.USER))],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
    },
)

ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
SettingsServiceDep = Annotated[ChatSettingsService, Depends(get_settings_service)]
HubDep = Annotated[ConnectionHub, Depends(get_connection_hub)]
ClockDep = Annotated[Clock, Depends(get_clock)]
ParticipantDep = Annotated[CurrentUser, Depends(require_role(Role.ADMIN, Role.USER))]
AdminDep = Annotated[CurrentUser, Depends(require_role(Role.ADMIN))]
UserDep = Annotated[CurrentUser, Depends(require_role(Role.USER))]


@router.post("/send", response_model=ApiResponse[SendMessageResponse])
async def send_message(
    body: SendMessageRequest,
    current_user: ParticipantDep,
    chat_service: ChatServiceDep,
    settings_service: SettingsServiceDep,
    hub: HubDep,
    clock: ClockDep,
) -> dict:
    """Store a message and push it to everyone in the session."""
    if current_user.role == Role.ADMIN:
        max_length = settings.chat.admin_max_message_length
    else:
        max_length = await settings_service.get_max_user_message_length()

    command = SendMessageCommand(
        chat_session_id=body.chat_session_id,
        sender_id=current_user.id,
        role=current_user.role,
        content=body.text,
        message_type=MessageType.parse(body.message_type),
    )
    try:
        result = await chat_service.send_message(command, max_length)
    except SessionExpiredError as e:
        await hub.broadcast_to_session(
            e.session_key,
            SESSION_ENDED,
            session_ended_payload(e.session_key, REASON_DURATION_EXPIRED, clock()),
        )
        raise

    await hub.broadcast_to_session(
        result.session_key,
        RECEIVE_MESSAGE,
        message_payload(result.message, result.session_key, result.role),
    )
    if result.session_user_id is not None and result.unread_count_for_admin is not None:
        await hub.broadcast_to_admins(
            UNREAD_COUNT_CHANGED,
            unread_payload(
                result.session_user_id,
                result.session_key,
                result.unread_count_for_admin,
            ),
        )

    return success_response(
        SendMessageResponse(
            message_id=result.message.id,
            chat_session_id=result.session_key,
            sent_at=ensure_utc(result.message.created_at),
        )
    )


@router.get("/sessions", response_model=ApiResponse[list[ChatSessionSummary]])
async def list_sessions(current_user: AdminDep, chat_service: ChatServiceDep) -> dict:
    """Admin inbox: one row per end user."""
    return success_response(await chat_service.get_admin_sessions(current_user.id))


@router.post("/open", response_model=ApiResponse[OpenChatResponse])
async def open_chat(
    body: OpenChatRequest, current_user: AdminDep, chat_service: ChatServiceDep
) -> dict:
    """Open (and claim) the chat with a user."""
    chat = await chat_service.get_or_create_session(body.user_id, current_user.id)
    return success_response(
        OpenChatResponse(chat_session_id=chat.session_key, user_id=chat.user_id)
    )


@router.get("/my-session", response_model=ApiResponse[MySessionResponse])
async def my_session(current_user: UserDep, chat_service: ChatServiceDep) -> dict:
    """The caller's active session, started fresh if none or expired."""
    chat = await chat_service.get_or_create_user_session(current_user.id)
    return success_response(MySessionResponse(chat_session_id=chat.session_key))


@router.get("/history", response_model=ApiResponse[list[ChatHistoryItem]])
async def history(
    current_user: ParticipantDep,
    chat_service: ChatServiceDep,
    chat_session_id: Annotated[str, Query()] = "",
) -> dict:
    """Messages of a session, oldest first."""
    rows = await chat_service.get_history(
        current_user.id, current_user.role, chat_session_id
    )
    return success_response(
        [
            ChatHistoryItem(
                id=row.message.id,
                content=row.message.content,
                role=row.sender_role,
                sender_id=row.message.sender_id,
                is_seen=row.message.is_seen,
                created_at=ensure_utc(row.message.created_at),
                message_type=row.message.type,
            )
            for row in rows
        ]
    )


@router.post("/mark-seen", response_model=ApiResponse[MarkSeenResponse])
async def mark_seen(
    body: MarkSeenRequest,
    current_user: ParticipantDep,
    chat_service: ChatServiceDep,
    hub: HubDep,
) -> dict:
    """Mark the counterpart's messages as seen and notify the session."""
    message_ids = await chat_service.mark_messages_as_seen(
        body.chat_session_id, current_user.id, current_user.role
    )
    if message_ids:
        await hub.broadcast_to_session(
            body.chat_session_id,
            MESSAGE_STATUS_CHANGED,
            seen_payload(body.chat_session_id, message_ids),
        )
    return success_response(MarkSeenResponse(message_ids=message_ids))


@router.get(
    "/session-info", response_model=ApiResponse[ChatSessionInfoResponse | None]
)
async def session_info(
    current_user: ParticipantDep,
    chat_service: ChatServiceDep,
    chat_session_id: Annotated[str, Query()] = "",
) -> dict:
    """Timer data for the session countdown, or null when unavailable."""
    info = await chat_service.get_session_info(
        chat_session_id, current_user.id, current_user.role
    )
    return success_response(info)
