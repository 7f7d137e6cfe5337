"""
Inquiries Router - listing, assignment and lifecycle of customer inquiries.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Body, Depends, status
from fastapi.responses import JSONResponse

from app.core.config import Settings, get_settings
from app.core.security import get_current_user, require_admin, require_api_key
from app.models.identity import CurrentUser
from app.models.inquiry import AssignRequest, InquiryUpdateRequest, ResponseCreateRequest
from app.routers.deps import get_assignment_workflow, get_inquiry_service, get_reconciler
from app.services.assignment import AssignmentWorkflow
from app.services.inquiry_service import InquiryService
from app.services.normalizer import stored_inquiry_view
from app.services.reconciliation import InquiryReconciler
from app.services.webhook_service import forward_inquiry_webhook, notify_inquiry_created

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/inquiries", tags=["inquiries"])


@router.get("")
async def list_inquiries(
    user: CurrentUser = Depends(get_current_user),
    reconciler: InquiryReconciler = Depends(get_reconciler),
):
    """
    List the inquiries visible to the caller.

    Admins get unassigned external inquiries followed by every assigned
    inquiry; agents get only the inquiries assigned to them.
    """
    inquiries = await reconciler.list_for(user)
    return {"success": True, "data": inquiries}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_inquiry(
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
    service: InquiryService = Depends(get_inquiry_service),
    settings: Settings = Depends(get_settings),
):
    """Public submission; the signed webhook is sent after the response."""
    inquiry = await service.create(payload)
    background_tasks.add_task(notify_inquiry_created, inquiry, settings)
    return {"success": True, "data": stored_inquiry_view(inquiry)}


@router.get("/{inquiry_id}")
async def get_inquiry(
    inquiry_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: InquiryService = Depends(get_inquiry_service),
):
    return {"success": True, "data": await service.get(inquiry_id, user)}


@router.put("/{inquiry_id}/assign")
async def assign_inquiry(
    inquiry_id: str,
    request: AssignRequest,
    admin: CurrentUser = Depends(require_admin),
    workflow: AssignmentWorkflow = Depends(get_assignment_workflow),
):
    """
    Assign an inquiry to an agent.

    Unknown external inquiries are created from ``inquiryData``; a pending
    booking is opened unless ``createBooking`` is false.
    """
    logger.info(f"Admin {admin.id} assigning inquiry {inquiry_id} to {request.assigned_agent}")
    inquiry = await workflow.assign(
        inquiry_id,
        request.assigned_agent,
        create_booking=request.create_booking,
        fallback_inquiry_data=request.inquiry_data,
    )
    return {
        "success": True,
        "message": "Inquiry assigned to agent successfully",
        "data": inquiry,
    }


@router.put("/{inquiry_id}")
async def update_inquiry(
    inquiry_id: str,
    request: InquiryUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: InquiryService = Depends(get_inquiry_service),
):
    return {"success": True, "data": await service.update(inquiry_id, request, user)}


@router.post("/{inquiry_id}/responses")
async def add_response(
    inquiry_id: str,
    request: ResponseCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: InquiryService = Depends(get_inquiry_service),
):
    return {"success": True, "data": await service.add_response(inquiry_id, request.message, user)}


@router.delete("/{inquiry_id}")
async def delete_inquiry(
    inquiry_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: InquiryService = Depends(get_inquiry_service),
):
    await service.delete(inquiry_id)
    return {"success": True, "message": "Inquiry deleted successfully"}


@router.post("/{inquiry_id}/forward-webhook", dependencies=[Depends(require_api_key)])
async def forward_webhook(
    inquiry_id: str,
    service: InquiryService = Depends(get_inquiry_service),
    settings: Settings = Depends(get_settings),
):
    """Manually re-send the signed webhook for a stored inquiry."""
    inquiry = await service.get_document(inquiry_id)
    result = await forward_inquiry_webhook(inquiry, settings)

    if result.success:
        return {"success": True, "status": result.status, "body": result.body}
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "status": result.status, "body": result.body or result.reason or "failed"},
    )
