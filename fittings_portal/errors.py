"""Exception types shared across the portal.

Remote store errors are expected fallback triggers and never reach API
callers. Email delivery and status transition errors are surfaced to the user.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RemoteStoreError(Exception):
    """The remote store could not complete a read or write."""

    def __init__(self, message: str, *, table: Optional[str] = None) -> None:
        super().__init__(message)
        self.table = table


class RemoteStoreNotConfigured(RemoteStoreError):
    """No remote store credentials, or only placeholder values."""


class EmailDeliveryError(Exception):
    """The transactional email API rejected or failed the send."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StatusTransitionError(Exception):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move quotation from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class EntityNotFoundError(Exception):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id

    def to_payload(self) -> Dict[str, Any]:
        return {"error": str(self), "kind": self.kind, "id": self.entity_id}
