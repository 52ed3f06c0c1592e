"""
Transactional email client (EmailJS REST API).

Only an HTTP 200 from the send endpoint counts as delivered; anything else,
including a network failure, raises `EmailDeliveryError`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from fittings_portal.config import EMAILJS_SEND_URL
from fittings_portal.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


class EmailJSClient:
    def __init__(
        self,
        public_key: Optional[str],
        service_id: Optional[str],
        *,
        api_url: str = EMAILJS_SEND_URL,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.public_key = public_key or ""
        self.service_id = service_id or ""
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.public_key and self.service_id)

    async def send(self, template_id: Optional[str], template_params: Dict[str, Any]) -> None:
        if not self.is_configured() or not template_id:
            raise EmailDeliveryError("Email service is not configured")

        payload: Dict[str, Any] = {
            "service_id": self.service_id,
            "template_id": template_id,
            "user_id": self.public_key,
            "template_params": template_params,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Email send failed (%s): %s", template_id, e)
            raise EmailDeliveryError(f"Email service unreachable: {e}") from e

        if response.status_code != 200:
            logger.warning("Email send rejected (%s): HTTP %d %s", template_id, response.status_code, response.text[:200])
            raise EmailDeliveryError(
                f"Email service returned HTTP {response.status_code}", status_code=response.status_code
            )
        logger.info("Email sent with template %s", template_id)
