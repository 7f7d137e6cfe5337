"""
Inquiry Normalizer - maps inquiry records of any known shape onto the
canonical inquiry view.

External sources and older documents name the same field in several ways
(snake_case, camelCase, nested ``package_details`` or flat top-level
columns). Every accepted spelling is listed in the alias tables below;
``resolve_field`` walks an alias list and returns the first non-empty value.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.models.identity import AgentSummary
from app.models.inquiry import InquiryDocument, InquiryView, PackageDetails

logger = logging.getLogger(__name__)

# Contact fields, shared by external records, public submissions and
# fallback data supplied during assignment.
CONTACT_ALIASES: Dict[str, tuple] = {
    "external_id": ("id", "externalId", "inquiry_id"),
    "customer_name": ("name", "customerName", "customer_name", "customer"),
    "customer_email": ("email", "customerEmail", "customer_email"),
    "customer_phone": ("phone", "customerPhone", "customer_phone", "contact"),
    "message": ("message", "inquiry", "subject", "description"),
    "created_at": ("created_at", "createdAt", "date_created"),
}

# Paths inside a nested package_details / packageDetails object.
NESTED_PACKAGE_ALIASES: Dict[str, tuple] = {
    "package_name": ("packageName", "package_name"),
    "pricing.double": ("pricing.double", "price_double"),
    "pricing.triple": ("pricing.triple", "price_triple"),
    "pricing.quad": ("pricing.quad", "price_quad"),
    "pricing.currency": ("pricing.currency", "currency"),
    "duration.nights_makkah": ("duration.nightsMakkah", "duration.nights_makkah", "nights_makkah"),
    "duration.nights_madina": ("duration.nightsMadina", "duration.nights_madina", "nights_madina"),
    "duration.total_nights": ("duration.totalNights", "duration.total_nights", "total_nights"),
    "hotels.makkah": ("hotels.makkah", "hotel_makkah"),
    "hotels.madina": ("hotels.madina", "hotel_madina"),
    "services.transportation": ("services.transportation", "transportation"),
    "services.visa": ("services.visa", "visa_service"),
}

# Flat columns at the top level of a record.
FLAT_PACKAGE_ALIASES: Dict[str, tuple] = {
    "package_name": ("package_name", "packageName"),
    "pricing.double": ("price_double", "priceDouble"),
    "pricing.triple": ("price_triple", "priceTriple"),
    "pricing.quad": ("price_quad", "priceQuad"),
    "pricing.currency": ("currency",),
    "duration.nights_makkah": ("nights_makkah", "nightsMakkah", "nightsMakkahNights"),
    "duration.nights_madina": ("nights_madina", "nightsMadina", "nightsMadinaNights"),
    "duration.total_nights": ("total_nights", "totalNights", "totalNightsNights"),
    "hotels.makkah": ("hotel_makkah", "hotelMakkah", "makkahHotel"),
    "hotels.madina": ("hotel_madina", "hotelMadina", "madinaHotel"),
    "services.transportation": ("transportation", "transportationTitle"),
    "services.visa": ("visa_service", "visaService", "visaTitle"),
}

NESTED_FLAG_ALIASES: Dict[str, tuple] = {
    "breakfast": ("inclusions.breakfast", "breakfast"),
    "dinner": ("inclusions.dinner", "dinner"),
    "visa": ("inclusions.visa", "visa_included"),
    "ticket": ("inclusions.ticket", "ticket"),
    "roundtrip": ("inclusions.roundtrip", "roundtrip"),
    "ziyarat": ("inclusions.ziyarat", "ziyarat"),
    "guide": ("inclusions.guide", "guide"),
}

FLAT_FLAG_ALIASES: Dict[str, tuple] = {
    "breakfast": ("breakfast",),
    "dinner": ("dinner",),
    "visa": ("visa_included", "visa"),
    "ticket": ("ticket",),
    "roundtrip": ("roundtrip",),
    "ziyarat": ("ziyarat",),
    "guide": ("guide",),
}

# Presence of any of these at the top level means the record carries flat
# package columns.
FLAT_PACKAGE_MARKERS = ("package_name", "packageName", "price_double", "price_triple", "price_quad")

# Envelope keys tried, in order, when the source does not return a bare list.
ENVELOPE_KEYS = ("data", "inquiries", "result")

SUBJECT_LENGTH = 50


def _dig(record: Dict[str, Any], path: str) -> Any:
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value is False or value == 0


def resolve_field(record: Dict[str, Any], aliases: Iterable[str]) -> Any:
    """Return the first non-empty value among the alias paths."""
    for path in aliases:
        value = _dig(record, path)
        if not _is_empty(value):
            return value
    return None


def coerce_flag(value: Any) -> bool:
    """Inclusion flags arrive as 1, "1" or true; everything else is false."""
    if value is True:
        return True
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true")
    return False


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _set_path(target: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _package_from(
    source: Dict[str, Any],
    field_aliases: Dict[str, tuple],
    flag_aliases: Dict[str, tuple],
    flag: Callable[[Any], bool],
) -> Optional[PackageDetails]:
    data: Dict[str, Any] = {}
    for field, aliases in field_aliases.items():
        value = resolve_field(source, aliases)
        if value is not None:
            _set_path(data, field, value)

    if not data.get("package_name"):
        return None

    data["inclusions"] = {
        name: any(flag(_dig(source, path)) for path in aliases)
        for name, aliases in flag_aliases.items()
    }
    if data.get("hotels"):
        data["hotels"] = {k: _text(v) for k, v in data["hotels"].items()}
    if data.get("services"):
        data["services"] = {k: _text(v) for k, v in data["services"].items()}
    if data.get("pricing", {}).get("currency") is not None:
        data["pricing"]["currency"] = _text(data["pricing"]["currency"])
    data["package_name"] = _text(data["package_name"])
    return PackageDetails.model_validate(data)


def build_package_details(record: Dict[str, Any]) -> Optional[PackageDetails]:
    """
    Resolve package details from a record of any supported shape.

    A nested package object is preferred; flat top-level columns are used
    when the nested object is absent or has no package name. Returns None
    unless a package name can be resolved.
    """
    nested = record.get("package_details") or record.get("packageDetails")
    package = None
    if isinstance(nested, dict):
        # nested objects carry real booleans; any truthy value counts
        package = _package_from(nested, NESTED_PACKAGE_ALIASES, NESTED_FLAG_ALIASES, bool)

    if package is None and any(not _is_empty(record.get(key)) for key in FLAT_PACKAGE_MARKERS):
        package = _package_from(record, FLAT_PACKAGE_ALIASES, FLAT_FLAG_ALIASES, coerce_flag)

    return package


def derive_subject(message: str, subject: Any = None) -> str:
    if subject:
        return str(subject)
    if not message:
        return "(No subject)"
    if len(message) > SUBJECT_LENGTH:
        return message[:SUBJECT_LENGTH] + "..."
    return message


def extract_inquiry_list(payload: Any) -> List[Dict[str, Any]]:
    """Unwrap the inquiry list from any of the accepted response envelopes."""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        for key in ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                return [item for item in payload[key] if isinstance(item, dict)]
    logger.warning(f"Unexpected external inquiry response format: {str(payload)[:200]}")
    return []


def normalize_external_inquiry(record: Dict[str, Any]) -> InquiryView:
    """Map one external inquiry record onto the canonical view."""
    external_id = _text(resolve_field(record, CONTACT_ALIASES["external_id"])).strip()
    name = _text(resolve_field(record, CONTACT_ALIASES["customer_name"]))
    email = _text(resolve_field(record, CONTACT_ALIASES["customer_email"]))
    phone = _text(resolve_field(record, CONTACT_ALIASES["customer_phone"]))
    message = _text(resolve_field(record, CONTACT_ALIASES["message"]))

    return InquiryView(
        id=external_id,
        external_id=external_id,
        name=name,
        customer_name=name,
        email=email,
        customer_email=email,
        phone=phone,
        customer_phone=phone,
        subject=derive_subject(message, record.get("subject")),
        message=message,
        status=_text(record.get("status")) or "pending",
        priority=_text(record.get("priority")) or "low",
        package_details=build_package_details(record),
        created_at=resolve_field(record, CONTACT_ALIASES["created_at"]) or datetime.utcnow(),
        assigned_agent=None,
        is_external=True,
    )


def stored_inquiry_view(doc: Dict[str, Any], agent: Optional[AgentSummary] = None) -> InquiryView:
    """Render a stored inquiry document as the canonical view."""
    local_id = _text(doc.get("_id") or doc.get("id"))
    name = _text(doc.get("customerName") or doc.get("name"))
    email = _text(doc.get("customerEmail") or doc.get("email"))
    phone = _text(doc.get("customerPhone") or doc.get("phone"))
    message = _text(doc.get("message"))

    package = doc.get("packageDetails")
    if isinstance(package, dict) and package.get("packageName"):
        package_details = PackageDetails.model_validate(package)
    else:
        # documents written before packageDetails existed keep flat columns
        package_details = build_package_details(doc)

    assigned = doc.get("assignedAgent")
    return InquiryView(
        id=local_id,
        external_id=_text(doc.get("externalId")) or None,
        name=name,
        customer_name=name,
        email=email,
        customer_email=email,
        phone=phone,
        customer_phone=phone,
        subject=derive_subject(message, doc.get("subject")),
        message=message,
        status=doc.get("status") or "pending",
        priority=doc.get("priority") or "low",
        package_details=package_details,
        assigned_agent=agent if agent else (_text(assigned) if assigned else None),
        responses=[
            {**entry, "responder": _text(entry.get("responder"))}
            for entry in doc.get("responses") or []
            if isinstance(entry, dict)
        ],
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
        is_external=False,
    )


def inquiry_document_from_payload(payload: Dict[str, Any], external_id: Optional[str] = None) -> InquiryDocument:
    """
    Build a new inquiry document from a public submission or from the
    caller's cached copy of an external record.
    """
    resolved_id = external_id or resolve_field(payload, ("externalId", "id", "inquiry_id"))
    return InquiryDocument(
        external_id=_text(resolved_id).strip() or None,
        customer_name=_text(resolve_field(payload, CONTACT_ALIASES["customer_name"])) or None,
        customer_email=_text(resolve_field(payload, CONTACT_ALIASES["customer_email"])) or None,
        customer_phone=_text(resolve_field(payload, CONTACT_ALIASES["customer_phone"])),
        message=_text(payload.get("message")),
        package_details=build_package_details(payload),
        status="pending",
    )
