"""Site visitor and visitor session caches."""

from __future__ import annotations

from typing import List, Optional

from fittings_portal.cache.entity_cache import EntityCache
from fittings_portal.entities import Visitor, VisitorSession


class VisitorCache(EntityCache[Visitor]):
    model = Visitor
    table = "customers"
    storage_key = "site-visitors"

    def find_by_email(self, email: str) -> Optional[Visitor]:
        wanted = (email or "").strip().lower()
        for visitor in self.items:
            if visitor.email.lower() == wanted:
                return visitor
        return None


class VisitorSessionCache(EntityCache[VisitorSession]):
    model = VisitorSession
    table = "visitor_sessions"
    storage_key = "visitor-sessions"
    remote_stamps_updated_at = False

    def for_visitor(self, visitor_id: str) -> List[VisitorSession]:
        return [s for s in self.items if s.customer_id == str(visitor_id)]
