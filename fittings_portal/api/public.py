"""Public site endpoints: catalog, quote requests, contact form, visitor sign-up."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from fittings_portal.api.dependencies import get_portal
from fittings_portal.entities import ProductStatus
from fittings_portal.forms import validate_quote_request
from fittings_portal.portal import Portal

router = APIRouter()


@router.get("/products", tags=["Catalog"])
async def list_products(
    q: Optional[str] = None,
    category: Optional[str] = None,
    featured: bool = False,
    portal: Portal = Depends(get_portal),
):
    await portal.products.refetch()
    products = portal.products.featured() if featured else portal.products.search(q, category)
    return {"products": [p.model_dump(mode="json") for p in products], "total": len(products)}


@router.get("/products/{product_id}", tags=["Catalog"])
async def get_product(product_id: str, portal: Portal = Depends(get_portal)):
    product = portal.products.get(product_id)
    if product is None:
        await portal.products.refetch()
        product = portal.products.get(product_id)
    if product is None or product.status != ProductStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Product not found")
    return product.model_dump(mode="json")


@router.get("/categories", tags=["Catalog"])
async def list_categories(portal: Portal = Depends(get_portal)):
    await portal.categories.refetch()
    names = portal.categories.names()
    if not names:
        # No managed categories yet; derive them from the catalog.
        names = portal.products.categories_in_use()
    return {"categories": names}


@router.post("/quotes", status_code=status.HTTP_201_CREATED, tags=["Quotes"])
async def submit_quote_request(payload: Dict[str, Any] = Body(...), portal: Portal = Depends(get_portal)):
    data = validate_quote_request(payload)
    quotation = await portal.quotations.add(data)
    return {
        "success": True,
        "message": "Quote request submitted. We'll get back to you within 24 hours.",
        "quotation": quotation.model_dump(mode="json"),
    }


@router.post("/contact", tags=["Contact"])
async def submit_contact(payload: Dict[str, Any] = Body(...), portal: Portal = Depends(get_portal)):
    await portal.contact.submit(payload)
    return {"success": True, "message": "Message sent. We'll get back to you within 24 hours."}


@router.post("/visitors/register", status_code=status.HTTP_201_CREATED, tags=["Visitors"])
async def register_visitor(request: Request, payload: Dict[str, Any] = Body(...), portal: Portal = Depends(get_portal)):
    if not portal.visitors.items:
        await portal.visitors.refetch()
    visitor = await portal.visitor_service.register_visitor(payload)
    session = await portal.visitor_service.track_session(
        visitor.id,
        session_id=payload.get("session_id"),
        page_visited=payload.get("page_visited") or str(request.url.path),
        referrer=request.headers.get("referer"),
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    return {
        "success": True,
        "visitor": visitor.model_dump(mode="json"),
        "session_id": session.session_id,
    }
