"""Admin dashboard counters."""

from typing import Any, Dict

from fittings_portal.cache.products import ProductCache
from fittings_portal.cache.quotations import QuotationCache
from fittings_portal.entities import ProductStatus, QuotationStatus
from fittings_portal.services.visitor_service import VisitorService


def dashboard_stats(products: ProductCache, quotations: QuotationCache, visitors: VisitorService) -> Dict[str, Any]:
    by_status = {status.value: 0 for status in QuotationStatus}
    for q in quotations.items:
        by_status[q.status.value] += 1
    return {
        "products": {
            "total": len(products.items),
            "active": sum(1 for p in products.items if p.status == ProductStatus.ACTIVE),
            "featured": sum(1 for p in products.items if p.featured),
        },
        "quotations": {"total": len(quotations.items), **by_status},
        "visitors": visitors.analytics(),
    }
