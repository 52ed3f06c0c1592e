"""Field checks shared by the public and admin forms.

Each check records at most one message per field in an `errors` dict and
returns the cleaned value, so a form reports every bad field at once.
`raise_if_errors` turns a non-empty dict into `FormValidationError`, which the
API renders as HTTP 422 with `field_errors`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class FormValidationError(Exception):
    """A submitted form was rejected; `field_errors` maps field -> message."""

    field_errors: Dict[str, str]
    message: str = "Validation failed"

    def __str__(self) -> str:
        return self.message


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def add_error(errors: Dict[str, str], field: str, message: str) -> None:
    # First message per field wins.
    errors.setdefault(field, message)


def require_str(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, label: Optional[str] = None) -> str:
    value = _clean(payload.get(field))
    if not value:
        add_error(errors, field, f"{label or field} is required")
    return value


def optional_str(payload: Dict[str, Any], field: str) -> Optional[str]:
    return _clean(payload.get(field)) or None


_CHECKED = {"true", "1", "yes", "on"}


def require_checked(payload: Dict[str, Any], field: str, errors: Dict[str, str], message: str) -> bool:
    """A checkbox that must be ticked; accepts JSON true or the usual form strings."""
    value = payload.get(field)
    checked = value is True or (isinstance(value, str) and value.strip().lower() in _CHECKED)
    if not checked:
        add_error(errors, field, message)
    return checked


def parse_int(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, min_value: Optional[int] = None, default: int = 0) -> int:
    """Whole number from an int or numeric string; blank gives `default`."""
    raw = _clean(payload.get(field))
    if not raw:
        return default
    try:
        number = int(raw)
    except ValueError:
        add_error(errors, field, f"{field} must be a whole number")
        return default
    if min_value is not None and number < min_value:
        add_error(errors, field, f"{field} must be at least {min_value}")
    return number


# Same loose shape check the public contact form has always used.
_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def validate_email(value: Any, errors: Dict[str, str], field: str = "email") -> str:
    value = _clean(value)
    if not value:
        add_error(errors, field, "Email is required")
        return value
    if not _EMAIL_RE.search(value):
        add_error(errors, field, "Email is invalid")
    return value


def validate_in(value: Any, allowed: Iterable[str], errors: Dict[str, str], field: str, *, required: bool = True) -> str:
    raw = _clean(value)
    if not raw:
        if required:
            add_error(errors, field, f"{field} is required")
        return raw
    if raw not in set(allowed):
        add_error(errors, field, f"{field} has an invalid value")
    return raw


def validate_datetime_iso(value: Any, errors: Dict[str, str], field: str) -> Optional[datetime]:
    """Accept YYYY-MM-DD or a full ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raw = _clean(value)
    if not raw:
        add_error(errors, field, f"{field} is required")
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        add_error(errors, field, f"{field} must be a valid date (YYYY-MM-DD)")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def clean_str_list(value: Any) -> List[str]:
    """Strip entries and drop blanks; a single string counts as one entry."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [_clean(v) for v in value if _clean(v)]


def raise_if_errors(errors: Dict[str, str], message: str = "Please correct the highlighted fields") -> None:
    if errors:
        raise FormValidationError(field_errors=errors, message=message)
