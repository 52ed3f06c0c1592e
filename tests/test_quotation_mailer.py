import json

import httpx
import pytest

from fittings_portal.cache.quotations import QuotationCache
from fittings_portal.config import CompanyConfig
from fittings_portal.entities import QuotationStatus, QuoteItem
from fittings_portal.errors import EmailDeliveryError, EntityNotFoundError, StatusTransitionError
from fittings_portal.integrations.email.emailjs_client import EmailJSClient
from fittings_portal.services.contact import ContactService
from fittings_portal.services.quotation_mailer import QuotationMailer, format_items_for_email
from fittings_portal.validation import FormValidationError


class RecordingEmailAPI:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        return httpx.Response(self.status_code, text="OK" if self.status_code == 200 else "Bad template")


def _client(api):
    return EmailJSClient("public-key", "service-1", transport=httpx.MockTransport(api))


@pytest.fixture
def quotations(remote, local):
    return QuotationCache(remote, local)


def _mailer(quotations, api, clock):
    return QuotationMailer(quotations, _client(api), CompanyConfig(name="PVC Pro"), "tmpl-quote", clock=clock)


def test_format_items_for_email():
    text = format_items_for_email(
        [
            QuoteItem(product="Ball Valve", quantity=2, specifications="25mm"),
            QuoteItem(product="Solvent Cement", quantity=1),
        ]
    )
    assert text == "1. Ball Valve (Quantity: 2)\n   Specifications: 25mm\n\n2. Solvent Cement (Quantity: 1)"


@pytest.mark.asyncio
async def test_successful_send_marks_quoted(quotations, clock, make_quote_payload):
    quotation = await quotations.add(make_quote_payload(project_details=None))
    api = RecordingEmailAPI(200)

    updated = await _mailer(quotations, api, clock).send_quotation(quotation.id, "  $450 incl. GST  ")

    assert updated.status == QuotationStatus.QUOTED
    sent = api.requests[0]
    assert sent["service_id"] == "service-1"
    assert sent["template_id"] == "tmpl-quote"
    assert sent["user_id"] == "public-key"
    params = sent["template_params"]
    assert params["to_email"] == "jane@example.com"
    assert params["quotation_details"] == "$450 incl. GST"
    assert params["project_details"] == "No additional project details provided"
    assert params["from_name"] == "PVC Pro"
    assert params["quotation_date"] == "10/03/2025"
    assert params["requested_items"].startswith("1. PVC Elbow Joint 90° (Quantity: 10)")


@pytest.mark.asyncio
async def test_failed_send_leaves_status_pending(quotations, clock, make_quote_payload):
    quotation = await quotations.add(make_quote_payload())

    with pytest.raises(EmailDeliveryError) as exc:
        await _mailer(quotations, RecordingEmailAPI(400), clock).send_quotation(quotation.id, "Quote")

    assert exc.value.status_code == 400
    assert quotations.get(quotation.id).status == QuotationStatus.PENDING


@pytest.mark.asyncio
async def test_non_200_success_code_is_still_a_failure(quotations, clock, make_quote_payload):
    quotation = await quotations.add(make_quote_payload())

    with pytest.raises(EmailDeliveryError):
        await _mailer(quotations, RecordingEmailAPI(202), clock).send_quotation(quotation.id, "Quote")

    assert quotations.get(quotation.id).status == QuotationStatus.PENDING


@pytest.mark.asyncio
async def test_empty_quotation_text_never_calls_the_api(quotations, clock, make_quote_payload):
    quotation = await quotations.add(make_quote_payload())
    api = RecordingEmailAPI(200)

    with pytest.raises(FormValidationError):
        await _mailer(quotations, api, clock).send_quotation(quotation.id, "   ")

    assert api.requests == []


@pytest.mark.asyncio
async def test_unknown_or_closed_quotation(quotations, clock, make_quote_payload):
    api = RecordingEmailAPI(200)
    mailer = _mailer(quotations, api, clock)
    with pytest.raises(EntityNotFoundError):
        await mailer.send_quotation("missing", "Quote")

    quotation = await quotations.add(make_quote_payload())
    await quotations.set_status(quotation.id, QuotationStatus.CLOSED)
    with pytest.raises(StatusTransitionError):
        await mailer.send_quotation(quotation.id, "Quote")
    assert api.requests == []


@pytest.mark.asyncio
async def test_status_transitions_only_move_forward(quotations, make_quote_payload):
    quotation = await quotations.add(make_quote_payload())
    await quotations.mark_quoted(quotation.id)

    with pytest.raises(StatusTransitionError):
        await quotations.set_status(quotation.id, "pending")

    done = await quotations.set_status(quotation.id, "completed")
    assert done.status == QuotationStatus.COMPLETED


@pytest.mark.asyncio
async def test_quoted_is_not_a_manual_status(quotations, make_quote_payload):
    quotation = await quotations.add(make_quote_payload())

    with pytest.raises(StatusTransitionError):
        await quotations.set_status(quotation.id, QuotationStatus.QUOTED)

    assert quotations.get(quotation.id).status == QuotationStatus.PENDING


@pytest.mark.asyncio
async def test_unconfigured_email_client_raises():
    client = EmailJSClient(None, None)
    with pytest.raises(EmailDeliveryError):
        await client.send("tmpl", {})


@pytest.mark.asyncio
async def test_contact_form_sends_with_contact_template():
    api = RecordingEmailAPI(200)
    service = ContactService(_client(api), "tmpl-contact")

    await service.submit({"name": "Sam", "email": "sam@example.com", "message": "Do you ship to Perth?"})

    assert api.requests[0]["template_id"] == "tmpl-contact"
    assert api.requests[0]["template_params"]["message"] == "Do you ship to Perth?"


@pytest.mark.asyncio
async def test_invalid_contact_form_never_reaches_network():
    api = RecordingEmailAPI(200)
    service = ContactService(_client(api), "tmpl-contact")

    with pytest.raises(FormValidationError):
        await service.submit({"name": "Sam", "email": "sam-at-example", "message": "hi"})

    assert api.requests == []
