"""Presence endpoints: heartbeat and the admin presence list."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.dependencies import (
    CurrentUser,
    get_current_user,
    get_presence_service,
    require_role,
)
from app.models.enums import Role
from app.schemas.presence_schema import HeartbeatResponse, UserPresence
from app.schemas.response_schema import ApiResponse, success_response
from app.services.presence_service import PresenceService

router = APIRouter(prefix="/api/v1/presence", tags=["presence"])

PresenceServiceDep = Annotated[PresenceService, Depends(get_presence_service)]


@router.post("/heartbeat", response_model=ApiResponse[HeartbeatResponse])
async def heartbeat(
    presence_service: PresenceServiceDep,
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Record that the caller is still around."""
    await presence_service.update_heartbeat(current_user.id, current_user.role)
    return success_response(HeartbeatResponse())


@router.get("/users", response_model=ApiResponse[list[UserPresence]])
async def list_user_presence(
    presence_service: PresenceServiceDep,
    current_user: CurrentUser = Depends(require_role(Role.ADMIN)),
) -> dict:
    """Derived status of every end user."""
    return success_response(await presence_service.get_user_presence_list())
