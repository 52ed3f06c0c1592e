"""Error handling helpers for the portal API."""
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:
        logger.error("Unhandled exception in portal API: %s", exc, exc_info=exc)
        return {
            "error": "internal_error",
            "message": "Something went wrong. Please try again.",
            "metadata": {"type": exc.__class__.__name__, "context": context or {}},
        }
