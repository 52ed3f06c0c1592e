import hmac
import logging
from typing import Any, Dict

from fastapi import Header, HTTPException, Request, status

from fittings_portal.portal import Portal

logger = logging.getLogger(__name__)


def get_portal(request: Request) -> Portal:
    return request.app.state.portal


async def admin_session(
    request: Request,
    authorization: str = Header(default=None),
) -> Dict[str, Any]:
    """Admin routes need the stored session's bearer token, issued to an account that is still active."""
    portal = get_portal(request)
    session = portal.gate.current()
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in or session expired",
        )

    candidate = ""
    if authorization and authorization.lower().startswith("bearer "):
        candidate = authorization[7:].strip()
    ok = bool(candidate) and hmac.compare_digest(candidate, str(session.get("token", "")))
    if not ok:
        logger.info("Admin token mismatch on %s", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin token",
        )
    if portal.auth.get_user_by_token(candidate) is None:
        logger.info("Admin token for unknown or inactive user on %s", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin account is no longer active",
        )
    return session
