"""Form payload validators for the public site and the admin dashboard.

Each validator returns a cleaned dict ready for the entity caches, or raises
`FormValidationError` with per-field messages. Nothing here touches a store.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fittings_portal.entities import ProductStatus, QuotationStatus
from fittings_portal.validation import (
    add_error,
    clean_str_list,
    optional_str,
    parse_int,
    raise_if_errors,
    require_checked,
    require_str,
    validate_datetime_iso,
    validate_email,
    validate_in,
)

DEFAULT_PRICE = "Contact for Quote"
DEFAULT_IMAGE = "/placeholder.svg?height=300&width=300"


def _price(payload: Dict[str, Any], errors: Dict[str, str]) -> Any:
    raw = payload.get("price")
    if raw is None or str(raw).strip() == "":
        return DEFAULT_PRICE
    if isinstance(raw, bool):
        add_error(errors, "price", "price must be a number or a label")
        return DEFAULT_PRICE
    if isinstance(raw, (int, float)):
        if raw < 0:
            add_error(errors, "price", "price cannot be negative")
        return float(raw)
    return str(raw).strip()


def validate_product(payload: Dict[str, Any]) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    name = require_str(payload, "name", errors, label="Product name")
    category = require_str(payload, "category", errors, label="Category")
    description = require_str(payload, "description", errors, label="Description")
    specifications = clean_str_list(payload.get("specifications"))
    if not specifications:
        add_error(errors, "specifications", "Add at least one specification")
    status = validate_in(
        payload.get("status") or ProductStatus.ACTIVE.value,
        [s.value for s in ProductStatus],
        errors,
        "status",
    )
    featured = bool(payload.get("featured", False))
    price = _price(payload, errors)
    raise_if_errors(errors)
    return {
        "name": name,
        "category": category,
        "description": description,
        "price": price,
        "image": optional_str(payload, "image") or DEFAULT_IMAGE,
        "specifications": specifications,
        "status": status,
        "featured": featured,
    }


def validate_product_changes(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Partial update: only the fields present are checked and returned."""
    errors: Dict[str, str] = {}
    changes: Dict[str, Any] = {}
    for field, label in (("name", "Product name"), ("category", "Category"), ("description", "Description")):
        if field in payload:
            changes[field] = require_str(payload, field, errors, label=label)
    if "specifications" in payload:
        specifications = clean_str_list(payload.get("specifications"))
        if not specifications:
            add_error(errors, "specifications", "Add at least one specification")
        changes["specifications"] = specifications
    if "status" in payload:
        changes["status"] = validate_in(payload.get("status"), [s.value for s in ProductStatus], errors, "status")
    if "price" in payload:
        changes["price"] = _price(payload, errors)
    if "image" in payload:
        changes["image"] = optional_str(payload, "image") or DEFAULT_IMAGE
    if "featured" in payload:
        changes["featured"] = bool(payload.get("featured"))
    raise_if_errors(errors)
    return changes


def _quote_items(raw_items: Any, errors: Dict[str, str]) -> List[Dict[str, Any]]:
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        add_error(errors, "items", "items must be a list")
        return []

    items: List[Dict[str, Any]] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            continue
        product = str(raw.get("product") or "").strip()
        if not product:
            # Blank rows are left-over form lines, not errors.
            continue
        item_errors: Dict[str, str] = {}
        quantity = parse_int(raw, "quantity", item_errors, min_value=1, default=1)
        for field, message in item_errors.items():
            add_error(errors, f"items.{index}.{field}", message)
        items.append(
            {
                "product": product,
                "quantity": quantity,
                "specifications": str(raw.get("specifications") or "").strip(),
            }
        )
    if not items and "items" not in errors:
        add_error(errors, "items", "Please add at least one product to your quote request.")
    return items


def validate_quote_request(payload: Dict[str, Any]) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    customer_name = require_str(payload, "customer_name", errors, label="Name")
    email = validate_email(payload.get("email"), errors)
    phone = require_str(payload, "phone", errors, label="Phone")
    require_checked(payload, "terms_accepted", errors, "Please accept the terms and conditions to continue.")
    items = _quote_items(payload.get("items"), errors)
    raise_if_errors(errors)
    return {
        "customer_name": customer_name,
        "email": email,
        "phone": phone,
        "company": optional_str(payload, "company"),
        "items": items,
        "project_details": optional_str(payload, "project_details"),
        "status": QuotationStatus.PENDING.value,
    }


def validate_contact(payload: Dict[str, Any]) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    name = require_str(payload, "name", errors, label="Name")
    email = validate_email(payload.get("email"), errors)
    message = require_str(payload, "message", errors, label="Message")
    raise_if_errors(errors)
    return {
        "name": name,
        "email": email,
        "phone": optional_str(payload, "phone") or "",
        "company": optional_str(payload, "company") or "",
        "message": message,
    }


def validate_follow_up(payload: Dict[str, Any]) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    quotation_id = require_str(payload, "quotation_id", errors, label="Quotation")
    message = require_str(payload, "message", errors, label="Message")
    due = validate_datetime_iso(payload.get("follow_up_date"), errors, "follow_up_date")
    raise_if_errors(errors)
    return {
        "quotation_id": quotation_id,
        "message": message,
        "follow_up_date": due,
        "completed": False,
    }


def validate_visitor(payload: Dict[str, Any]) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    name = require_str(payload, "name", errors, label="Name")
    email = validate_email(payload.get("email"), errors)
    raise_if_errors(errors)
    return {
        "name": name,
        "email": email.lower(),
        "phone": optional_str(payload, "phone"),
        "company": optional_str(payload, "company"),
        "address": optional_str(payload, "address"),
    }
