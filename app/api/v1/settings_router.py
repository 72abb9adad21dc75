"""Chat settings endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.dependencies import (
    CurrentUser,
    get_current_user,
    get_settings_service,
    require_role,
)
from app.models.enums import Role
from app.schemas.response_schema import ApiResponse, ErrorResponse, success_response
from app.schemas.settings_schema import ChatSettingsResponse, UpdateChatSettingsRequest
from app.services.settings_service import ChatSettingsService

router = APIRouter(
    prefix="/api/v1/settings",
    tags=["settings"],
    dependencies=[Depends(get_current_user)],
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)

SettingsServiceDep = Annotated[ChatSettingsService, Depends(get_settings_service)]


@router.get("/chat", response_model=ApiResponse[ChatSettingsResponse])
async def get_chat_settings(settings_service: SettingsServiceDep) -> dict:
    """Current message length and session duration limits."""
    row = await settings_service.get()
    return success_response(ChatSettingsResponse.model_validate(row))


@router.put("/chat", response_model=ApiResponse[ChatSettingsResponse])
async def update_chat_settings(
    body: UpdateChatSettingsRequest,
    settings_service: SettingsServiceDep,
    current_user: CurrentUser = Depends(require_role(Role.ADMIN)),
) -> dict:
    """Change one or both limits."""
    row = await settings_service.update(body, current_user.id)
    return success_response(ChatSettingsResponse.model_validate(row))
