"""
Inquiry Reconciliation - builds the inquiry list each caller should see.

Agents see only the stored inquiries assigned to them. Admins also see
every external inquiry that has not been taken into the local store yet,
listed ahead of the assigned ones so unassigned work surfaces first.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import ValidationError as ModelValidationError

from app.core.errors import UpstreamError
from app.models.identity import CurrentUser, ExternalRef, looks_like_local_id
from app.models.inquiry import InquiryView
from app.services.external_inquiries import ExternalInquiryClient
from app.services.identity_service import IdentityResolver
from app.services.inquiry_store import InquiryStore
from app.services.normalizer import stored_inquiry_view

logger = logging.getLogger(__name__)


def dedup_keys(stored_docs: Iterable[Dict[str, Any]]) -> Set[str]:
    """
    Identifiers under which stored inquiries may appear in the external list.

    Every non-empty ``externalId`` counts, and so does a stored primary key
    that is not a local identifier (an external id reused as the key).
    """
    keys: Set[str] = set()
    for doc in stored_docs:
        external_id = str(doc.get("externalId") or "").strip()
        if external_id:
            keys.add(external_id)
        primary = str(doc.get("id") or doc.get("_id") or "").strip()
        if primary and not looks_like_local_id(primary):
            keys.add(primary)
    return keys


def filter_unassigned(external: Iterable[InquiryView], keys: Set[str]) -> List[InquiryView]:
    """Drop external inquiries already held locally, keeping source order."""
    unassigned: List[InquiryView] = []
    for view in external:
        raw_id = (view.external_id or view.id or "").strip()
        if not raw_id:
            logger.warning(f"External inquiry without an identifier dropped: {view.customer_email or view.name!r}")
            continue
        ref = ExternalRef(value=raw_id)
        if ref.value in keys:
            logger.debug(f"External inquiry {ref.value} is already assigned")
            continue
        unassigned.append(view)
    return unassigned


class InquiryReconciler:
    """Merges the external inquiry source with the local inquiry store."""

    def __init__(
        self,
        store: InquiryStore,
        identities: IdentityResolver,
        external: Optional[ExternalInquiryClient] = None,
    ):
        self.store = store
        self.identities = identities
        self.external = external or ExternalInquiryClient()

    async def _stored_views(self, docs: List[Dict[str, Any]]) -> List[InquiryView]:
        agents = await self.identities.resolve_many(doc.get("assignedAgent") for doc in docs)
        return [
            stored_inquiry_view(doc, agents.get(str(doc.get("assignedAgent"))))
            for doc in docs
        ]

    async def _fetch_external(self) -> List[InquiryView]:
        try:
            return await self.external.fetch()
        except (UpstreamError, ModelValidationError) as e:
            logger.error(f"Failed to fetch external inquiries, serving local only: {e}")
            return []

    async def list_for(self, user: CurrentUser) -> List[InquiryView]:
        """
        Produce the ordered inquiry list for the caller.

        Args:
            user: Authenticated caller

        Returns:
            Agent: own assigned inquiries, newest first.
            Admin: unassigned external inquiries in source order, then all
            assigned inquiries newest first.
        """
        if not user.is_admin:
            docs = await self.store.list_assigned(agent_id=user.id)
            logger.info(f"Agent {user.id} has {len(docs)} assigned inquiries")
            return await self._stored_views(docs)

        docs = await self.store.list_assigned()
        assigned = await self._stored_views(docs)
        external = await self._fetch_external()
        unassigned = filter_unassigned(external, dedup_keys(await self.store.list_identifiers()))

        logger.info(
            f"Returning {len(unassigned)} unassigned (external) + "
            f"{len(assigned)} assigned (local) inquiries"
        )
        return unassigned + assigned
