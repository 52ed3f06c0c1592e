"""
Admin session gate.

The signed-in admin is remembered as one JSON blob in the local store:
``{"user": {...}, "token": "...", "timestamp": <ms since epoch>}``. A blob
older than the TTL counts as absent and is cleared when read.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

SESSION_KEY = "admin-auth"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionGate:
    def __init__(self, local, *, ttl_hours: int = 24, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.local = local
        self.ttl = timedelta(hours=ttl_hours)
        self._clock = clock or _utcnow

    def store(self, user: Dict[str, Any], token: str) -> Dict[str, Any]:
        blob = {
            "user": user,
            "token": token,
            "timestamp": int(self._clock().timestamp() * 1000),
        }
        self.local.set_item(SESSION_KEY, json.dumps(blob))
        logger.info("Admin session stored for %s", user.get("username"))
        return blob

    def current(self) -> Optional[Dict[str, Any]]:
        """The live session blob, or None when absent, unreadable or expired."""
        raw = self.local.get_item(SESSION_KEY)
        if raw is None:
            return None
        try:
            blob = json.loads(raw)
            issued = datetime.fromtimestamp(int(blob["timestamp"]) / 1000, tz=timezone.utc)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Discarding unreadable admin session: %s", e)
            self.local.remove_item(SESSION_KEY)
            return None

        if self._clock() - issued >= self.ttl:
            logger.info("Admin session expired")
            self.local.remove_item(SESSION_KEY)
            return None
        return blob

    def is_authenticated(self) -> bool:
        return self.current() is not None

    def logout(self) -> None:
        self.local.remove_item(SESSION_KEY)
        logger.info("Admin session cleared")
