"""Issuance client used by the compose agent.

Calls the marker service's ``POST /api/v1/track`` and returns the pixel markup
to splice into the outgoing body.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from typing import Any, Optional

import structlog

from email_open_tracker.agent.lookups import MessageSnapshot
from email_open_tracker.config import Settings
from email_open_tracker.exceptions import ConfigurationError, IssuanceError

logger = structlog.get_logger()


class IssuanceClient:
    """HTTP client for the marker service issuance endpoint."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """Initialize the issuance client.

        Args:
            settings: Application settings. If None, uses default settings.

        Raises:
            ConfigurationError: If the service base URL is not http(s).
        """
        from email_open_tracker.config import get_settings

        self.settings = settings or get_settings()
        if not self.settings.service_base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Unsupported marker service URL: {self.settings.service_base_url}")
        self.endpoint = f"{self.settings.service_base_url.rstrip('/')}/api/v1/track"

    def request_pixel(self, *, owner_id: str, recipient: str, subject: str) -> dict[str, Any]:
        """Issue a tracking pixel (blocking).

        Args:
            owner_id: Owner the tracking record belongs to.
            recipient: Recipient captured from the compose surface.
            subject: Subject captured from the compose surface.

        Returns:
            The decoded JSON response.

        Raises:
            IssuanceError: On network failure, a non-2xx status or a non-JSON body.
        """

        payload = json.dumps({"userId": owner_id, "recipient": recipient, "subject": subject}).encode("utf-8")
        req = urllib.request.Request(
            url=self.endpoint,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.settings.issuance_timeout_seconds) as resp:  # noqa: S310
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise IssuanceError(f"Marker service returned HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise IssuanceError(f"Marker service unreachable: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise IssuanceError("Marker service returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise IssuanceError("Marker service returned an unexpected payload")
        return data

    async def issue(self, snapshot: MessageSnapshot) -> str:
        """Issue a pixel for an intercepted message and return its markup.

        The blocking request runs in a worker thread so the page's event loop
        keeps running while send is suspended.

        Raises:
            IssuanceError: If no usable markup came back.
        """

        data = await asyncio.to_thread(
            self.request_pixel,
            owner_id=self.settings.owner_id,
            recipient=snapshot.recipient,
            subject=snapshot.subject,
        )
        pixel_html = data.get("pixelHtml")
        if not isinstance(pixel_html, str) or not pixel_html.strip():
            raise IssuanceError("Marker service response missing 'pixelHtml'")

        logger.info("pixel_issued", tracking_id=data.get("trackingId"), recipient=snapshot.recipient)
        return pixel_html
