"""
Inquiry Service - single-inquiry reads and edits with role checks.
"""
import logging
from typing import Any, Dict

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.identity import CurrentUser, parse_inquiry_ref
from app.models.inquiry import InquiryResponseEntry, InquiryUpdateRequest, InquiryView
from app.services.assignment import STATUS_PENDING
from app.services.identity_service import IdentityResolver
from app.services.inquiry_store import InquiryStore
from app.services.normalizer import inquiry_document_from_payload, stored_inquiry_view

logger = logging.getLogger(__name__)


def is_assigned_to(inquiry: Dict[str, Any], user: CurrentUser) -> bool:
    assigned = inquiry.get("assignedAgent")
    return assigned is not None and str(assigned) == user.id


def _may_return_to_pending(inquiry: Dict[str, Any]) -> bool:
    # pending only holds until the first assignment
    status = inquiry.get("status") or STATUS_PENDING
    return not inquiry.get("assignedAgent") and status == STATUS_PENDING


class InquiryService:
    """Operations on one stored inquiry at a time."""

    def __init__(self, store: InquiryStore, identities: IdentityResolver):
        self.store = store
        self.identities = identities

    async def _load(self, identifier: str) -> Dict[str, Any]:
        inquiry = await self.store.find(parse_inquiry_ref(identifier))
        if not inquiry:
            raise NotFoundError("Inquiry not found")
        return inquiry

    async def _view(self, inquiry: Dict[str, Any]) -> InquiryView:
        agent = await self.identities.resolve(inquiry.get("assignedAgent"))
        return stored_inquiry_view(inquiry, agent)

    async def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Store a public submission; legacy and documented field names are both accepted."""
        document = inquiry_document_from_payload(payload)
        if not document.customer_name or not document.customer_email:
            raise ValidationError("Customer name and email are required")
        return await self.store.insert(document)

    async def get(self, identifier: str, user: CurrentUser) -> InquiryView:
        inquiry = await self._load(identifier)
        if not user.is_admin and not is_assigned_to(inquiry, user):
            raise ForbiddenError("Forbidden")
        return await self._view(inquiry)

    async def get_document(self, identifier: str) -> Dict[str, Any]:
        return await self._load(identifier)

    async def update(self, identifier: str, request: InquiryUpdateRequest, user: CurrentUser) -> InquiryView:
        """
        Partial update.

        Agents may change only the status of their own inquiries; admins may
        change status and assignment. Use the assignment workflow to open a
        booking alongside an assignment.
        """
        inquiry = await self._load(identifier)
        fields: Dict[str, Any] = {}

        if not user.is_admin:
            if not is_assigned_to(inquiry, user):
                raise ForbiddenError("Forbidden")
        elif "assigned_agent" in request.model_fields_set:
            if request.assigned_agent:
                if not await self.identities.resolve(request.assigned_agent):
                    raise ValidationError("Agent not found")
            fields["assignedAgent"] = request.assigned_agent or None

        if request.status:
            if request.status == STATUS_PENDING and not _may_return_to_pending({**inquiry, **fields}):
                raise ValidationError("An assigned inquiry cannot be moved back to pending")
            fields["status"] = request.status

        if fields:
            await self.store.update(inquiry["_id"], fields)
            logger.info(f"Inquiry {inquiry['_id']} updated by {user.role.value} {user.id}: {sorted(fields)}")
        return await self._view({**inquiry, **fields})

    async def add_response(self, identifier: str, message: str, user: CurrentUser) -> InquiryView:
        inquiry = await self._load(identifier)
        if not user.is_admin and not is_assigned_to(inquiry, user):
            raise ForbiddenError("Forbidden")

        await self.store.append_response(
            inquiry["_id"], InquiryResponseEntry(message=message, responder=user.id)
        )
        return await self._view(await self.store.reload(inquiry["_id"]))

    async def delete(self, identifier: str) -> None:
        inquiry = await self._load(identifier)
        await self.store.delete(inquiry["_id"])
        logger.info(f"Inquiry {inquiry['_id']} deleted")
