"""
Booking models.

Bookings carry many loosely-shaped legacy sections (hotels, visas,
costing, ...); the whitelisted ones are stored as sent, anything else in a
request body is dropped.
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from app.models.inquiry import CamelModel

_PNR_STRIP_RE = re.compile(r"[^A-Za-z0-9]")


def clean_pnr(value: Any) -> str:
    return _PNR_STRIP_RE.sub("", str(value)).upper()


def clean_pnrs(values: Optional[List[Any]]) -> Optional[List[str]]:
    """Normalise a PNR list, dropping entries that are not 6 characters."""
    if not isinstance(values, list):
        return None
    cleaned = [clean_pnr(v)[:6] for v in values]
    cleaned = [p for p in cleaned if len(p) == 6]
    return cleaned or None


class BookingDocument(CamelModel):
    """MongoDB document model for the bookings collection."""
    model_config = ConfigDict(extra="allow")

    customer_name: str
    customer_email: str
    package: str
    date: datetime = Field(default_factory=datetime.utcnow)
    status: str = "pending"
    approval_status: str = "pending"
    agent: Optional[str] = None
    inquiry_id: Optional[str] = None
    contact_number: Optional[str] = None
    package_price: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_mongo(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BookingCreateRequest(CamelModel):
    """Body of POST /bookings."""
    model_config = ConfigDict(extra="allow")

    customer_name: str = Field(..., min_length=1)
    customer_email: str = Field(..., min_length=1)
    package: str = Field(..., min_length=1)
    date: datetime
    status: Optional[str] = None
    agent: Optional[str] = None
    contact_number: Optional[str] = None
    package_price: Optional[str] = None
    pnr: Optional[str] = None
    pnrs: Optional[List[Any]] = None

    @field_validator("pnr")
    @classmethod
    def validate_pnr(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        cleaned = clean_pnr(value)
        if len(cleaned) != 6:
            raise ValueError("PNR must be exactly 6 characters.")
        return cleaned

    @field_validator("pnrs")
    @classmethod
    def validate_pnrs(cls, value: Optional[List[Any]]) -> Optional[List[str]]:
        return clean_pnrs(value)


# Fields an update may overwrite; anything else in the body is ignored.
BOOKING_UPDATABLE_FIELDS = (
    "customerName", "customerEmail", "package", "date", "status", "agent",
    "flights", "hotels", "visas", "transportation", "transport", "costing",
    "flightPayments", "hotel", "visa", "flight", "passengers", "adults",
    "children", "contactNumber", "departureDate", "returnDate", "packagePrice",
    "additionalServices", "amount", "totalAmount", "approvalStatus",
    "flightClass", "paymentReceived", "paymentDue", "payment", "paymentMethod",
)

# Fields a new booking may carry; approval is always decided afterwards.
BOOKING_CREATE_FIELDS = tuple(
    field for field in BOOKING_UPDATABLE_FIELDS if field != "approvalStatus"
) + ("pnr", "pnrs")


class AgentPerformance(CamelModel):
    agent: Optional[str] = None
    bookings: int = 0
    profit: float = 0.0
