"""
External Inquiry Source client.

Fetches the list of unassigned leads from the public website's API and
normalizes each record into the canonical inquiry view.
"""
import asyncio
import logging
from typing import Dict, List, Optional

import httpx
from pydantic import ValidationError as ModelValidationError

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamError
from app.models.inquiry import InquiryView
from app.services.normalizer import extract_inquiry_list, normalize_external_inquiry

logger = logging.getLogger(__name__)


class ExternalInquiryClient:
    """Read-only client for the external inquiry source."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.url = settings.external_inquiries_api_url
        self.api_key = settings.external_api_key
        self.api_token = settings.external_api_token
        self.retries = settings.external_retries
        self.total_timeout = settings.external_total_timeout
        self.timeout = httpx.Timeout(settings.external_response_timeout)
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _get(self, client: httpx.AsyncClient) -> httpx.Response:
        """GET with a per-attempt deadline, retrying transport errors and 5xx."""
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                response = await asyncio.wait_for(
                    client.get(self.url, headers=self._headers()),
                    timeout=self.total_timeout,
                )
                if response.status_code >= 500:
                    last_error = UpstreamError(f"External API returned {response.status_code}")
                    logger.warning(
                        f"External inquiries attempt {attempt + 1} got {response.status_code}"
                    )
                    continue
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"External API rejected request: {e.response.status_code} - {e.response.text[:500]}"
                )
                raise UpstreamError(f"External API returned {e.response.status_code}") from e
            except (httpx.TransportError, asyncio.TimeoutError) as e:
                last_error = e
                logger.warning(f"External inquiries attempt {attempt + 1} failed: {e!r}")

        raise UpstreamError(f"External API unreachable after {self.retries + 1} attempts: {last_error}")

    async def fetch_raw(self) -> List[dict]:
        """
        Fetch the raw inquiry records.

        Raises:
            UpstreamError: network failure, error status or unparseable body
        """
        logger.info(f"Fetching external inquiries from: {self.url}")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await self._get(client)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError("External API returned malformed JSON") from e

        records = extract_inquiry_list(payload)
        logger.info(f"Fetched {len(records)} inquiries from external API")
        return records

    async def fetch(self) -> List[InquiryView]:
        """
        Fetch and normalize external inquiries, preserving source order.

        A record that cannot be normalized is logged and dropped; the rest of
        the feed is still returned.
        """
        views: List[InquiryView] = []
        for record in await self.fetch_raw():
            try:
                views.append(normalize_external_inquiry(record))
            except ModelValidationError as e:
                record_id = record.get("id") or record.get("externalId") or record.get("inquiry_id")
                logger.warning(f"Skipping external inquiry {record_id!r}: {e.error_count()} invalid field(s)")
        return views
