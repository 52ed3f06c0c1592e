"""Public contact form: validate, then hand the message to the email API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fittings_portal.forms import validate_contact
from fittings_portal.integrations.email.emailjs_client import EmailJSClient

logger = logging.getLogger(__name__)


class ContactService:
    def __init__(self, email: EmailJSClient, template_id: Optional[str]) -> None:
        self.email = email
        self.template_id = template_id

    async def submit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        message = validate_contact(payload)
        await self.email.send(self.template_id, message)
        logger.info("Contact message from %s forwarded", message["email"])
        return message
