"""
Admin dashboard endpoints.

Everything except /admin/login requires the stored admin session and its
bearer token (see `admin_session`).
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel

from fittings_portal.api.dependencies import admin_session, get_portal
from fittings_portal.entities import QuotationStatus
from fittings_portal.errors import EntityNotFoundError
from fittings_portal.forms import validate_product, validate_product_changes
from fittings_portal.portal import Portal
from fittings_portal.services.dashboard import dashboard_stats

router = APIRouter(prefix="/admin", tags=["Admin"])


class LoginRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class StatusRequest(BaseModel):
    status: QuotationStatus


class SendQuotationRequest(BaseModel):
    quotation_text: str = ""


class CategoryRequest(BaseModel):
    name: str = ""
    description: Optional[str] = None


def _dump(items):
    return [i.model_dump(mode="json") for i in items]


# --------------------------------------------------------------------------- #
# Session
# --------------------------------------------------------------------------- #
@router.post("/login")
async def login(body: LoginRequest, portal: Portal = Depends(get_portal)):
    blob = await portal.auth.login(body.username, body.password)
    if blob is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")
    return {"success": True, "token": blob["token"], "user": blob["user"]}


@router.post("/logout")
async def logout(session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    portal.auth.logout()
    return {"success": True}


@router.get("/me")
async def me(session=Depends(admin_session)):
    return {"user": session["user"], "signed_in_at": session["timestamp"]}


@router.post("/change-password")
async def change_password(body: ChangePasswordRequest, session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    await portal.auth.change_password(session["user"]["id"], body.current_password, body.new_password)
    return {"success": True}


# --------------------------------------------------------------------------- #
# Products and categories
# --------------------------------------------------------------------------- #
@router.get("/products")
async def list_products(session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    await portal.products.refetch()
    return {"products": _dump(portal.products.items), "total": len(portal.products.items)}


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(payload: Dict[str, Any] = Body(...), session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    product = await portal.products.add(validate_product(payload))
    return product.model_dump(mode="json")


@router.patch("/products/{product_id}")
async def update_product(
    product_id: str,
    payload: Dict[str, Any] = Body(...),
    session=Depends(admin_session),
    portal: Portal = Depends(get_portal),
):
    product = await portal.products.update(product_id, validate_product_changes(payload))
    if product is None:
        raise EntityNotFoundError("Product", product_id)
    return product.model_dump(mode="json")


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    if portal.products.get(product_id) is None:
        raise EntityNotFoundError("Product", product_id)
    await portal.products.remove(product_id)
    return {"success": True, "id": product_id}


@router.get("/categories")
async def list_categories(session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    await portal.categories.refetch()
    return {"categories": _dump(portal.categories.items)}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(body: CategoryRequest, session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    category = await portal.categories.create(body.name, body.description)
    return category.model_dump(mode="json")


# --------------------------------------------------------------------------- #
# Quotations and follow-ups
# --------------------------------------------------------------------------- #
@router.get("/quotations")
async def list_quotations(
    status_filter: Optional[QuotationStatus] = Query(default=None, alias="status"),
    session=Depends(admin_session),
    portal: Portal = Depends(get_portal),
):
    await portal.quotations.refetch()
    items = portal.quotations.by_status(status_filter) if status_filter else portal.quotations.items
    return {"quotations": _dump(items), "total": len(items)}


@router.patch("/quotations/{quotation_id}/status")
async def set_quotation_status(
    quotation_id: str,
    body: StatusRequest,
    session=Depends(admin_session),
    portal: Portal = Depends(get_portal),
):
    quotation = await portal.quotations.set_status(quotation_id, body.status)
    return quotation.model_dump(mode="json")


@router.post("/quotations/{quotation_id}/send")
async def send_quotation(
    quotation_id: str,
    body: SendQuotationRequest,
    session=Depends(admin_session),
    portal: Portal = Depends(get_portal),
):
    quotation = await portal.mailer.send_quotation(quotation_id, body.quotation_text)
    return {
        "success": True,
        "message": f"Quotation has been sent to {quotation.email}",
        "quotation": quotation.model_dump(mode="json"),
    }


@router.delete("/quotations/{quotation_id}")
async def delete_quotation(quotation_id: str, session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    if portal.quotations.get(quotation_id) is None:
        raise EntityNotFoundError("Quotation", quotation_id)
    await portal.quotations.remove(quotation_id)
    return {"success": True, "id": quotation_id}


@router.get("/quotations/{quotation_id}/follow-up-draft")
async def follow_up_draft(quotation_id: str, session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    quotation = portal.quotations.get(quotation_id)
    if quotation is None:
        raise EntityNotFoundError("Quotation", quotation_id)
    return portal.follow_up_manager.draft_for(quotation)


@router.get("/follow-ups")
async def list_follow_ups(session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    await portal.quotations.refetch()
    await portal.follow_ups.refetch()
    manager = portal.follow_up_manager
    return {
        "follow_ups": _dump(portal.follow_ups.items),
        "pending": _dump(manager.pending()),
        "upcoming": _dump(manager.upcoming()),
        "quotations_needing_follow_up": _dump(manager.quotations_needing_follow_up()),
    }


@router.post("/follow-ups", status_code=status.HTTP_201_CREATED)
async def create_follow_up(payload: Dict[str, Any] = Body(...), session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    follow_up = await portal.follow_up_manager.schedule(payload)
    return follow_up.model_dump(mode="json")


@router.post("/follow-ups/{follow_up_id}/complete")
async def complete_follow_up(follow_up_id: str, session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    follow_up = await portal.follow_up_manager.complete(follow_up_id)
    return follow_up.model_dump(mode="json")


# --------------------------------------------------------------------------- #
# Visitors and stats
# --------------------------------------------------------------------------- #
@router.get("/visitors")
async def list_visitors(session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    await portal.visitors.refetch()
    await portal.visitor_sessions.refetch()
    service = portal.visitor_service
    return {
        "visitors": [v.model_dump(mode="json") for v in service.visitors_with_sessions()],
        "analytics": service.analytics(),
    }


@router.get("/stats")
async def stats(session=Depends(admin_session), portal: Portal = Depends(get_portal)):
    return dashboard_stats(portal.products, portal.quotations, portal.visitor_service)
