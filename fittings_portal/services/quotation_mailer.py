"""
Quotation-to-email pipeline.

Sending a quotation has two steps: email the customer, then mark the request
`quoted`. The status only changes after the email API has answered 200; if
the send fails the request stays as it was and the error propagates.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional

from fittings_portal.cache.quotations import QuotationCache
from fittings_portal.config import CompanyConfig
from fittings_portal.entities import QuotationRequest, QuotationStatus, QuoteItem
from fittings_portal.errors import EntityNotFoundError, StatusTransitionError
from fittings_portal.integrations.email.emailjs_client import EmailJSClient
from fittings_portal.validation import FormValidationError

logger = logging.getLogger(__name__)

NO_PROJECT_DETAILS = "No additional project details provided"
DATE_FORMAT = "%d/%m/%Y"


def format_items_for_email(items: Iterable[QuoteItem]) -> str:
    lines = []
    for index, item in enumerate(items, start=1):
        line = f"{index}. {item.product} (Quantity: {item.quantity})"
        if item.specifications:
            line += f"\n   Specifications: {item.specifications}"
        lines.append(line)
    return "\n\n".join(lines)


def build_template_params(
    request: QuotationRequest,
    quotation_text: str,
    company: CompanyConfig,
    now: datetime,
) -> Dict[str, Any]:
    requested_on = request.created_at or now
    return {
        "to_name": request.customer_name,
        "to_email": request.email,
        "customer_name": request.customer_name,
        "customer_email": request.email,
        "customer_phone": request.phone,
        "customer_company": request.company or "",
        "requested_items": format_items_for_email(request.items),
        "project_details": request.project_details or NO_PROJECT_DETAILS,
        "quotation_details": quotation_text,
        "request_date": requested_on.strftime(DATE_FORMAT),
        "quotation_date": now.strftime(DATE_FORMAT),
        "from_name": company.name,
        "company_email": company.email,
        "company_phone": company.phone,
        "company_address": company.address,
    }


class QuotationMailer:
    def __init__(
        self,
        quotations: QuotationCache,
        email: EmailJSClient,
        company: CompanyConfig,
        template_id: Optional[str],
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.quotations = quotations
        self.email = email
        self.company = company
        self.template_id = template_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def send_quotation(self, quotation_id: str, quotation_text: str) -> QuotationRequest:
        """Email the quotation, then mark the request quoted.

        Raises:
            FormValidationError: empty quotation text (nothing is sent)
            EntityNotFoundError: unknown quotation id
            StatusTransitionError: the request can no longer be quoted
            EmailDeliveryError: the email API failed; status is unchanged
        """
        text = (quotation_text or "").strip()
        if not text:
            raise FormValidationError(
                field_errors={"quotation_text": "Please enter quotation details."},
                message="Please enter quotation details.",
            )

        request = self.quotations.get(quotation_id)
        if request is None:
            raise EntityNotFoundError("Quotation", str(quotation_id))
        if request.status not in (QuotationStatus.PENDING, QuotationStatus.QUOTED):
            raise StatusTransitionError(request.status.value, QuotationStatus.QUOTED.value)

        params = build_template_params(request, text, self.company, self._clock())
        await self.email.send(self.template_id, params)
        logger.info("Quotation %s emailed to %s", request.id, request.email)

        return await self.quotations.mark_quoted(request.id)
