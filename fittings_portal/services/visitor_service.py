"""
Visitor registration, session tracking and analytics.

Visitors are keyed by email (case-insensitive): registering an address that
is already known updates that record instead of creating a second one.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fittings_portal.cache.visitors import VisitorCache, VisitorSessionCache
from fittings_portal.entities import Visitor, VisitorSession, VisitorWithSessions
from fittings_portal.forms import validate_visitor

logger = logging.getLogger(__name__)


class VisitorService:
    def __init__(
        self,
        visitors: VisitorCache,
        sessions: VisitorSessionCache,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.visitors = visitors
        self.sessions = sessions
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def register_visitor(self, payload: Dict[str, Any]) -> Visitor:
        data = validate_visitor(payload)
        existing = self.visitors.find_by_email(data["email"])
        if existing is not None:
            changes = {k: v for k, v in data.items() if k != "email"}
            updated = await self.visitors.update(existing.id, changes)
            logger.info("Returning visitor %s updated", existing.id)
            return updated or existing

        visitor = await self.visitors.add(data)
        logger.info("New visitor registered: %s", visitor.id)
        return visitor

    async def track_session(
        self,
        customer_id: str,
        *,
        session_id: Optional[str] = None,
        page_visited: Optional[str] = None,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> VisitorSession:
        if not session_id:
            session_id = f"session_{int(self._clock().timestamp() * 1000)}"
        return await self.sessions.add(
            {
                "customer_id": str(customer_id),
                "session_id": session_id,
                "page_visited": page_visited,
                "referrer": referrer,
                "user_agent": user_agent,
                "ip_address": ip_address,
            }
        )

    def visitors_with_sessions(self) -> List[VisitorWithSessions]:
        out: List[VisitorWithSessions] = []
        for visitor in self.visitors.items:
            sessions = [s for s in self.sessions.items if s.customer_id == visitor.id]
            sessions.sort(key=lambda s: s.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
            last_visit = sessions[0].created_at if sessions else visitor.created_at
            out.append(
                VisitorWithSessions(
                    **visitor.model_dump(exclude={"updated_at"}),
                    sessions=sessions,
                    total_visits=len(sessions),
                    last_visit=last_visit,
                )
            )
        return out

    def analytics(self) -> Dict[str, Any]:
        total_visitors = len(self.visitors.items)
        today = self._clock().astimezone(timezone.utc).date()
        new_today = sum(
            1
            for v in self.visitors.items
            if v.created_at is not None and v.created_at.astimezone(timezone.utc).date() == today
        )
        total_sessions = len(self.sessions.items)
        average = round(total_sessions / total_visitors, 2) if total_visitors else 0
        return {
            "total_visitors": total_visitors,
            "new_visitors_today": new_today,
            "total_sessions": total_sessions,
            "average_sessions_per_visitor": average,
        }
