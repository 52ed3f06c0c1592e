"""Quotation request and follow-up caches."""

from __future__ import annotations

import logging
from typing import List, Optional

from fittings_portal.cache.entity_cache import EntityCache
from fittings_portal.entities import (
    ALLOWED_STATUS_TRANSITIONS,
    FollowUp,
    QuotationRequest,
    QuotationStatus,
)
from fittings_portal.errors import EntityNotFoundError, StatusTransitionError

logger = logging.getLogger(__name__)


class QuotationCache(EntityCache[QuotationRequest]):
    model = QuotationRequest
    table = "quotation_requests"
    storage_key = "quotation-requests"

    def by_status(self, status: QuotationStatus) -> List[QuotationRequest]:
        return [q for q in self.items if q.status == status]

    async def set_status(self, quotation_id: str, status) -> QuotationRequest:
        """
        Move a quotation forward; backwards or sideways moves are refused.

        `quoted` is only reachable through `mark_quoted`, once the quotation
        email has been delivered.
        """
        requested = QuotationStatus(status)
        current = self.get(quotation_id)
        if current is None:
            raise EntityNotFoundError("Quotation", str(quotation_id))
        if requested == QuotationStatus.QUOTED and current.status != QuotationStatus.QUOTED:
            raise StatusTransitionError(current.status.value, requested.value)
        return await self._transition(current, requested)

    async def mark_quoted(self, quotation_id: str) -> QuotationRequest:
        current = self.get(quotation_id)
        if current is None:
            raise EntityNotFoundError("Quotation", str(quotation_id))
        return await self._transition(current, QuotationStatus.QUOTED)

    async def _transition(self, current: QuotationRequest, requested: QuotationStatus) -> QuotationRequest:
        if requested == current.status:
            return current
        if requested not in ALLOWED_STATUS_TRANSITIONS[current.status]:
            raise StatusTransitionError(current.status.value, requested.value)

        updated = await self.update(current.id, {"status": requested.value})
        if updated is None:
            raise EntityNotFoundError("Quotation", current.id)
        logger.info("Quotation %s: %s -> %s", current.id, current.status.value, requested.value)
        return updated


class FollowUpCache(EntityCache[FollowUp]):
    model = FollowUp
    table = "follow_ups"
    storage_key = "quotation-follow-ups"
    order_by = "follow_up_date"
    descending = False
    remote_stamps_updated_at = False

    def for_quotation(self, quotation_id: str) -> List[FollowUp]:
        return [f for f in self.items if f.quotation_id == str(quotation_id)]

    async def mark_completed(self, follow_up_id: str) -> Optional[FollowUp]:
        follow_up = await self.update(follow_up_id, {"completed": True})
        if follow_up is None:
            raise EntityNotFoundError("Follow-up", str(follow_up_id))
        return follow_up
