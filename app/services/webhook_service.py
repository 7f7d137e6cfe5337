"""
Inquiry webhook - signed outbound notification for new inquiries.
"""
import hashlib
import hmac
import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from app.core.config import Settings
from app.services.normalizer import build_package_details

logger = logging.getLogger(__name__)


class WebhookResult(BaseModel):
    success: bool = False
    skipped: bool = False
    status: Optional[int] = None
    body: Optional[str] = None
    reason: Optional[str] = None


def build_webhook_body(inquiry: Dict[str, Any]) -> Dict[str, Any]:
    """Render a stored inquiry in the receiver's snake_case shape."""
    created_at = inquiry.get("createdAt")
    if not isinstance(created_at, datetime):
        created_at = datetime.utcnow()

    body: Dict[str, Any] = {
        "id": str(inquiry.get("_id") or inquiry.get("id") or ""),
        "name": inquiry.get("customerName") or inquiry.get("name") or "",
        "email": inquiry.get("customerEmail") or inquiry.get("email") or "",
        "phone": inquiry.get("customerPhone") or inquiry.get("phone") or "",
        "message": inquiry.get("message") or "",
        "created_at": created_at.isoformat(timespec="milliseconds") + "Z",
    }

    package = build_package_details(inquiry)
    if package:
        body["package_details"] = {
            "package_name": package.package_name,
            "pricing": {
                "double": package.pricing.double,
                "triple": package.pricing.triple,
                "quad": package.pricing.quad,
                "currency": package.pricing.currency,
            },
            "duration": {
                "nights_makkah": package.duration.nights_makkah,
                "nights_madina": package.duration.nights_madina,
                "total_nights": package.duration.total_nights,
            },
            "hotels": package.hotels.model_dump(),
            "services": package.services.model_dump(),
            "inclusions": package.inclusions.model_dump(),
        }
    return body


def sign_payload(secret: str, timestamp: str, raw_body: str) -> str:
    """HMAC-SHA256 hex digest of "<timestamp>.<body>"."""
    message = f"{timestamp}.{raw_body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


async def forward_inquiry_webhook(
    inquiry: Dict[str, Any],
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WebhookResult:
    """
    Send the signed inquiry webhook.

    Never raises; failures are reported in the returned WebhookResult so
    callers on the request path are not broken by the receiver.

    Args:
        inquiry: Stored inquiry document
        settings: Application settings
        transport: Optional httpx transport override

    Returns:
        WebhookResult describing the outcome
    """
    if not settings.inquiry_webhook_url or not settings.inquiry_webhook_secret:
        return WebhookResult(skipped=True, reason="Webhook env not configured")

    body = build_webhook_body(inquiry)
    raw = json.dumps(body, separators=(",", ":"), default=str)
    timestamp = str(int(time.time()))

    headers = {
        "Content-Type": "application/json",
        "X-Webhook-Timestamp": timestamp,
        "X-Webhook-Signature": sign_payload(settings.inquiry_webhook_secret, timestamp, raw),
        "Idempotency-Key": f"inq-{body['id']}",
    }

    try:
        async with httpx.AsyncClient(timeout=settings.webhook_timeout, transport=transport) as client:
            response = await client.post(settings.inquiry_webhook_url, content=raw, headers=headers)

        if response.is_success:
            logger.info(f"Inquiry webhook delivered for {body['id']}")
            return WebhookResult(success=True, status=response.status_code, body=response.text)

        logger.error(f"Inquiry webhook failed: {response.status_code} - {response.text[:500]}")
        return WebhookResult(status=response.status_code, body=response.text)

    except httpx.HTTPError as e:
        logger.error(f"Error sending inquiry webhook: {e}")
        return WebhookResult(body=str(e))


async def notify_inquiry_created(inquiry: Dict[str, Any], settings: Settings) -> None:
    """Background task run after a public inquiry is stored."""
    result = await forward_inquiry_webhook(inquiry, settings)
    if not result.success and not result.skipped:
        logger.warning(f"Inquiry webhook forward failed: {result.model_dump()}")
