"""Plan and track quotation follow-ups."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
import logging

from fittings_portal.cache.quotations import FollowUpCache, QuotationCache
from fittings_portal.entities import FollowUp, QuotationRequest, QuotationStatus
from fittings_portal.forms import validate_follow_up

logger = logging.getLogger(__name__)

UPCOMING_WINDOW = timedelta(days=3)
RECENT_FOLLOW_UP_WINDOW = timedelta(days=7)
DEFAULT_FOLLOW_UP_DELAY = timedelta(days=7)


class FollowUpManager:
    """Work out which quotations need chasing and record follow-ups against them.

    Reads the two caches as they currently stand; call `refetch()` on them
    first when fresh data matters.
    """

    def __init__(
        self,
        quotations: QuotationCache,
        follow_ups: FollowUpCache,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.quotations = quotations
        self.follow_ups = follow_ups
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def quotation_age_days(self, quotation: QuotationRequest) -> int:
        if quotation.created_at is None:
            return 0
        return (self._clock() - quotation.created_at).days

    def pending(self) -> List[FollowUp]:
        return [f for f in self.follow_ups.items if not f.completed]

    def upcoming(self) -> List[FollowUp]:
        # Overdue follow-ups stay in the list until completed.
        horizon = self._clock() + UPCOMING_WINDOW
        return [f for f in self.pending() if f.follow_up_date <= horizon]

    def _has_recent_follow_up(self, quotation_id: str) -> bool:
        cutoff = self._clock() - RECENT_FOLLOW_UP_WINDOW
        return any(
            f.quotation_id == quotation_id and f.follow_up_date > cutoff for f in self.follow_ups.items
        )

    def quotations_needing_follow_up(self) -> List[QuotationRequest]:
        out: List[QuotationRequest] = []
        for q in self.quotations.items:
            age = self.quotation_age_days(q)
            if q.status == QuotationStatus.QUOTED and age > 3 and not self._has_recent_follow_up(q.id):
                out.append(q)
            elif q.status == QuotationStatus.PENDING and age > 1:
                out.append(q)
        return out

    def draft_for(self, quotation: QuotationRequest) -> Dict[str, Any]:
        """Prefilled follow-up form: one week out."""
        return {
            "quotation_id": quotation.id,
            "message": f"Follow up on quotation for {quotation.customer_name}",
            "follow_up_date": (self._clock() + DEFAULT_FOLLOW_UP_DELAY).date().isoformat(),
        }

    async def schedule(self, payload: Dict[str, Any]) -> FollowUp:
        data = validate_follow_up(payload)
        follow_up = await self.follow_ups.add(data)
        logger.debug("Scheduled follow-up %s for quotation %s", follow_up.id, follow_up.quotation_id)
        return follow_up

    async def complete(self, follow_up_id: str) -> FollowUp:
        return await self.follow_ups.mark_completed(follow_up_id)
