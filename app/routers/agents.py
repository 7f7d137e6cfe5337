"""
Agents Router - agent directory, profile edits and performance.

Everything here is admin-only except PUT /{agent_id}, which an agent may
also call for their own profile.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from app.core.errors import NotFoundError
from app.core.security import get_current_user, require_admin
from app.models.identity import AgentUpdateRequest, CurrentUser
from app.routers.deps import get_agent_directory, get_booking_service
from app.services.booking_service import BookingService
from app.services.identity_service import AgentDirectory

router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.get("")
async def list_agents(
    admin: CurrentUser = Depends(require_admin),
    directory: AgentDirectory = Depends(get_agent_directory),
):
    return await directory.list_agents()


@router.get("/performance")
async def agent_performance(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    admin: CurrentUser = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings and profit per agent, optionally within a creation window."""
    return {"ok": True, "data": await service.agent_performance(start, end)}


@router.get("/{agent_id}")
async def get_agent(
    agent_id: str,
    admin: CurrentUser = Depends(require_admin),
    directory: AgentDirectory = Depends(get_agent_directory),
):
    agent = await directory.get_agent(agent_id)
    if not agent:
        raise NotFoundError("Agent not found")
    return agent


@router.put("/{agent_id}")
async def update_agent(
    agent_id: str,
    request: AgentUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    directory: AgentDirectory = Depends(get_agent_directory),
):
    return await directory.update_agent(agent_id, request.model_dump(by_alias=True, exclude_none=True), user)


@router.delete("/{agent_id}")
async def delete_agent(
    agent_id: str,
    admin: CurrentUser = Depends(require_admin),
    directory: AgentDirectory = Depends(get_agent_directory),
):
    await directory.delete_agent(agent_id)
    return {"message": "Agent removed"}
