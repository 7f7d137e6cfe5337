"""
Assignment Workflow - hands an inquiry to an agent.

External inquiries are materialized into the local store on first
assignment. Unless told otherwise, a pending booking is opened for the
agent alongside the assignment.
"""
import logging
from typing import Any, Dict, Optional

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.identity import AgentSummary, parse_inquiry_ref
from app.models.inquiry import InquiryView
from app.services.booking_service import BookingService
from app.services.identity_service import IdentityResolver
from app.services.inquiry_store import InquiryStore
from app.services.normalizer import inquiry_document_from_payload, stored_inquiry_view

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in-progress"


def next_status(current: Optional[str]) -> str:
    """Assignment advances pending work; it never regresses other states."""
    if not current or current == STATUS_PENDING:
        return STATUS_IN_PROGRESS
    return current


class AssignmentWorkflow:
    """Assign inquiries to agents, optionally opening a booking."""

    def __init__(
        self,
        store: InquiryStore,
        identities: IdentityResolver,
        bookings: BookingService,
    ):
        self.store = store
        self.identities = identities
        self.bookings = bookings

    async def _locate(
        self,
        identifier: str,
        fallback_inquiry_data: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Find the inquiry to assign, materializing it from the caller's copy
        of the external record when the store does not hold it yet.
        """
        ref = parse_inquiry_ref(identifier)
        inquiry = await self.store.find(ref)
        if inquiry:
            return inquiry

        if fallback_inquiry_data:
            document = inquiry_document_from_payload(
                fallback_inquiry_data,
                external_id=fallback_inquiry_data.get("externalId") or ref.value,
            )
            try:
                inquiry = await self.store.insert(document)
            except ConflictError:
                # another assignment stored the same external inquiry first
                inquiry = await self.store.find(parse_inquiry_ref(document.external_id))
                if not inquiry:
                    raise
                return inquiry
            logger.info(f"Created inquiry in store with externalId: {document.external_id}")
            return inquiry

        raise NotFoundError(
            f'Inquiry not found. The inquiry with ID "{identifier}" may need to be '
            f"synced from the external system first."
        )

    async def _open_booking(self, inquiry: Dict[str, Any], agent_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.bookings.create_from_inquiry(inquiry, agent_id)
        except Exception as e:
            logger.warning(f"Booking creation failed for inquiry {inquiry.get('_id')}, continuing: {e}", exc_info=True)
            return None

    async def assign(
        self,
        identifier: str,
        agent_id: Optional[str],
        create_booking: Optional[bool] = None,
        fallback_inquiry_data: Optional[Dict[str, Any]] = None,
    ) -> InquiryView:
        """
        Assign an inquiry to an agent.

        Args:
            identifier: Local id or external id of the inquiry
            agent_id: Identity of the agent receiving the inquiry
            create_booking: Open a pending booking unless explicitly False
            fallback_inquiry_data: Caller's copy of the external record, used
                when the store does not hold the inquiry yet

        Returns:
            The assigned inquiry with the agent's name and email

        Raises:
            ValidationError: agent missing or unknown
            NotFoundError: inquiry unknown and no fallback data given
            ConflictError: another assignment landed in between
        """
        if not agent_id:
            raise ValidationError("Agent ID is required")

        agent: Optional[AgentSummary] = await self.identities.resolve(agent_id)
        if not agent:
            raise ValidationError("Agent not found")

        inquiry = await self._locate(identifier, fallback_inquiry_data)

        if create_booking is not False:
            await self._open_booking(inquiry, agent_id)

        fields = {
            "assignedAgent": agent_id,
            "status": next_status(inquiry.get("status")),
        }
        # only write if nobody reassigned the inquiry since it was read
        written = await self.store.update(
            inquiry["_id"],
            fields,
            expected={"assignedAgent": inquiry.get("assignedAgent")},
        )
        if not written:
            logger.warning(f"Concurrent assignment detected for inquiry {inquiry['_id']}")
            raise ConflictError("Inquiry was reassigned concurrently, reload and retry")

        logger.info(f"Inquiry {inquiry['_id']} assigned to agent {agent_id} ({agent.source})")
        return stored_inquiry_view({**inquiry, **fields}, agent)
