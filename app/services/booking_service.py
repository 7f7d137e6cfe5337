"""
Booking Service - booking records, approval and agent performance.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import get_settings
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.booking import (
    BOOKING_CREATE_FIELDS,
    BOOKING_UPDATABLE_FIELDS,
    AgentPerformance,
    BookingCreateRequest,
    BookingDocument,
    clean_pnr,
    clean_pnrs,
)
from app.models.identity import AgentSummary, CurrentUser, looks_like_local_id
from app.services.identity_service import IdentityResolver
from app.services.inquiry_store import agent_match, store_errors

logger = logging.getLogger(__name__)

DEFAULT_INQUIRY_PACKAGE = "Inquiry Package"


def _object_id(booking_id: str) -> ObjectId:
    try:
        return ObjectId(booking_id)
    except (InvalidId, TypeError):
        raise NotFoundError("Booking not found")


def booking_view(doc: Dict[str, Any], agent: Optional[AgentSummary] = None) -> Dict[str, Any]:
    """JSON-safe rendering of a booking document."""
    view = {k: v for k, v in doc.items() if k != "_id"}
    view["id"] = str(doc["_id"])
    if agent:
        view["agent"] = agent.model_dump(exclude={"source"})
    elif doc.get("agent") is not None:
        view["agent"] = str(doc["agent"])
    if isinstance(view.get("inquiryId"), ObjectId):
        view["inquiryId"] = str(view["inquiryId"])
    return view


def _amount(value: Any) -> float:
    """Money fields are stored as numbers or numeric strings; anything else counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def booking_profit(doc: Dict[str, Any]) -> float:
    """Recorded profit when positive, else total sale minus total cost."""
    costing = doc.get("costing")
    totals = costing.get("totals") if isinstance(costing, dict) else None
    if not isinstance(totals, dict):
        totals = {}
    profit = _amount(totals.get("profit"))
    if profit > 0:
        return profit
    total_sale = totals.get("totalSale")
    if total_sale is None:
        total_sale = doc.get("totalAmount")
    return _amount(total_sale) - _amount(totals.get("totalCost"))


class BookingService:
    """MongoDB-backed bookings."""

    def __init__(self, db: AsyncIOMotorDatabase, identities: Optional[IdentityResolver] = None):
        settings = get_settings()
        self.collection = db[settings.mongo_bookings_collection]
        self.inquiries = db[settings.mongo_inquiries_collection]
        self.identities = identities or IdentityResolver(db)

    async def _views(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        agents = await self.identities.resolve_many(doc.get("agent") for doc in docs)
        return [booking_view(doc, agents.get(str(doc.get("agent")))) for doc in docs]

    async def _load(self, booking_id: str) -> Dict[str, Any]:
        with store_errors("load booking"):
            doc = await self.collection.find_one({"_id": _object_id(booking_id)})
        if not doc:
            raise NotFoundError("Booking not found")
        return doc

    @staticmethod
    def _is_owner(doc: Dict[str, Any], user: CurrentUser) -> bool:
        return doc.get("agent") is not None and str(doc["agent"]) == user.id

    async def insert(self, document: BookingDocument) -> Dict[str, Any]:
        doc = document.to_mongo()
        with store_errors("create booking"):
            result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def create(self, request: BookingCreateRequest, user: CurrentUser) -> Dict[str, Any]:
        """Create a booking; the agent defaults to the caller."""
        body = request.model_dump(by_alias=True, exclude_none=True)
        data = {k: body[k] for k in BOOKING_CREATE_FIELDS if k in body}
        data.update(
            agent=request.agent or user.id,
            status=request.status or "pending",
            approvalStatus="pending",
        )
        doc = await self.insert(BookingDocument.model_validate(data))
        logger.info(f"Booking {doc['_id']} created by {user.id}")
        return booking_view(doc)

    async def create_from_inquiry(self, inquiry: Dict[str, Any], agent_id: str) -> Dict[str, Any]:
        """Materialize a pending booking for an inquiry being assigned."""
        package = inquiry.get("packageDetails") or {}
        pricing = package.get("pricing") or {}
        price = pricing.get("double") or pricing.get("triple") or pricing.get("quad") or "0"

        document = BookingDocument(
            customer_name=inquiry.get("customerName") or "",
            customer_email=inquiry.get("customerEmail") or "",
            contact_number=inquiry.get("customerPhone") or "",
            package=package.get("packageName") or DEFAULT_INQUIRY_PACKAGE,
            package_price=str(price),
            date=datetime.utcnow(),
            status="pending",
            approval_status="pending",
            agent=agent_id,
            inquiry_id=str(inquiry["_id"]),
        )
        doc = await self.insert(document)
        logger.info(f"Booking {doc['_id']} created from inquiry {inquiry['_id']}")
        return doc

    async def list_all(self) -> List[Dict[str, Any]]:
        with store_errors("list bookings"):
            docs = await self.collection.find({}).sort("createdAt", -1).to_list(length=None)
        return await self._views(docs)

    async def list_for_agent(self, agent_id: str) -> List[Dict[str, Any]]:
        with store_errors("list bookings"):
            cursor = self.collection.find({"agent": agent_match(agent_id)}).sort("createdAt", -1)
            docs = await cursor.to_list(length=None)
        return await self._views(docs)

    async def get(self, booking_id: str, user: CurrentUser) -> Dict[str, Any]:
        doc = await self._load(booking_id)
        if not user.is_admin and not self._is_owner(doc, user):
            raise ForbiddenError("Not authorized")
        return (await self._views([doc]))[0]

    async def update(self, booking_id: str, changes: Dict[str, Any], user: CurrentUser) -> Dict[str, Any]:
        """Partial update by the owning agent or an admin."""
        doc = await self._load(booking_id)
        if not user.is_admin and not self._is_owner(doc, user):
            raise ForbiddenError("Not authorized")

        fields = {k: changes[k] for k in BOOKING_UPDATABLE_FIELDS if k in changes}

        if changes.get("pnr"):
            pnr = clean_pnr(changes["pnr"])
            if len(pnr) != 6:
                raise ValidationError("PNR must be exactly 6 characters.")
            fields["pnr"] = pnr
        if "pnrs" in changes:
            fields["pnrs"] = clean_pnrs(changes["pnrs"])

        fields["updatedAt"] = datetime.utcnow()
        with store_errors("update booking"):
            await self.collection.update_one({"_id": doc["_id"]}, {"$set": fields})
        return booking_view({**doc, **fields})

    async def delete(self, booking_id: str, user: CurrentUser) -> None:
        doc = await self._load(booking_id)
        if not user.is_admin and not self._is_owner(doc, user):
            raise ForbiddenError("Not authorized")
        with store_errors("delete booking"):
            await self.collection.delete_one({"_id": doc["_id"]})
        logger.info(f"Booking {booking_id} removed by {user.id}")

    async def set_approval(self, booking_id: str, approved: bool) -> Dict[str, Any]:
        """Approve (confirm) or reject (cancel) a booking."""
        doc = await self._load(booking_id)
        fields = {
            "approvalStatus": "approved" if approved else "rejected",
            "status": "confirmed" if approved else "cancelled",
            "updatedAt": datetime.utcnow(),
        }
        with store_errors("update booking"):
            await self.collection.update_one({"_id": doc["_id"]}, {"$set": fields})
        return booking_view({**doc, **fields})

    async def find_orphans(self) -> List[Dict[str, Any]]:
        """
        Bookings spawned by an assignment whose inquiry write never landed.

        A booking is orphaned when the inquiry it references is gone or is
        not assigned to the booking's agent.
        """
        with store_errors("list bookings"):
            cursor = self.collection.find({"inquiryId": {"$ne": None}})
            docs = await cursor.to_list(length=None)

        orphans = []
        for doc in docs:
            inquiry_id = str(doc["inquiryId"])
            if not looks_like_local_id(inquiry_id):
                orphans.append(doc)
                continue
            with store_errors("load inquiry"):
                inquiry = await self.inquiries.find_one({"_id": ObjectId(inquiry_id)})
            if not inquiry or str(inquiry.get("assignedAgent")) != str(doc.get("agent")):
                orphans.append(doc)

        if orphans:
            logger.warning(f"Found {len(orphans)} orphaned bookings")
        return [booking_view(doc) for doc in orphans]

    async def agent_performance(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AgentPerformance]:
        """Booking count and profit per agent, busiest agent first."""
        query: Dict[str, Any] = {}
        if start or end:
            query["createdAt"] = {}
            if start:
                query["createdAt"]["$gte"] = start
            if end:
                query["createdAt"]["$lte"] = end

        with store_errors("list bookings"):
            docs = await self.collection.find(query).to_list(length=None)

        totals: Dict[Optional[str], AgentPerformance] = {}
        for doc in docs:
            agent = str(doc["agent"]) if doc.get("agent") is not None else None
            row = totals.setdefault(agent, AgentPerformance(agent=agent))
            row.bookings += 1
            row.profit += booking_profit(doc)

        return sorted(totals.values(), key=lambda row: row.bookings, reverse=True)
