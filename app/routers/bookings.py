"""
Bookings Router - booking records and admin approval.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from app.core.security import get_current_user, require_admin
from app.models.booking import BookingCreateRequest
from app.models.identity import CurrentUser
from app.routers.deps import get_booking_service
from app.services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.get("")
async def list_bookings(
    admin: CurrentUser = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_all()


@router.get("/my")
async def my_bookings(
    user: CurrentUser = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_for_agent(user.id)


@router.get("/orphans")
async def orphan_bookings(
    admin: CurrentUser = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings opened by an assignment whose inquiry update never landed."""
    return {"success": True, "data": await service.find_orphans()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return await service.create(request, user)


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return await service.get(booking_id, user)


@router.put("/{booking_id}/approve")
async def approve_booking(
    booking_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.set_approval(booking_id, approved=True)
    return {"success": True, "message": "Booking approved", "booking": booking}


@router.put("/{booking_id}/reject")
async def reject_booking(
    booking_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.set_approval(booking_id, approved=False)
    return {"success": True, "message": "Booking rejected", "booking": booking}


@router.put("/{booking_id}")
async def update_booking(
    booking_id: str,
    changes: Dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return await service.update(booking_id, changes, user)


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    await service.delete(booking_id, user)
    return {"message": "Booking removed"}
