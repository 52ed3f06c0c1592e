"""
Admin accounts and login.

Passwords are stored as bcrypt hashes. A successful login stamps
`last_login`, issues an opaque token and records it in the session gate.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

import bcrypt

from fittings_portal.auth.session_gate import SessionGate
from fittings_portal.cache.entity_cache import EntityCache
from fittings_portal.entities import AdminUser
from fittings_portal.validation import FormValidationError

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash.
        return False


class AdminUserCache(EntityCache[AdminUser]):
    model = AdminUser
    table = "admin_users"
    storage_key = "admin-users"
    order_by = "username"
    descending = False

    def __init__(self, remote, local, *, bootstrap: Optional[Dict[str, Any]] = None, clock=None) -> None:
        super().__init__(remote, local, clock=clock)
        self._bootstrap = bootstrap

    def seed(self) -> List[Dict[str, Any]]:
        if not self._bootstrap or not self._bootstrap.get("username") or not self._bootstrap.get("password_hash"):
            return []
        now = self._clock().isoformat()
        return [{"id": "admin-1", "role": "admin", "is_active": True, "created_at": now, **self._bootstrap}]

    def find(self, username: str) -> Optional[AdminUser]:
        wanted = (username or "").strip().lower()
        for user in self.items:
            if user.username.lower() == wanted:
                return user
        return None


class AdminAuthService:
    def __init__(self, users: AdminUserCache, gate: SessionGate) -> None:
        self.users = users
        self.gate = gate

    def _token(self, user: AdminUser) -> str:
        ms = int(self.users._clock().timestamp() * 1000)
        return base64.urlsafe_b64encode(f"{user.id}:{ms}".encode("utf-8")).decode("ascii")

    async def login(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        """Return the session blob on success, None on bad credentials."""
        if not self.users.items:
            await self.users.refetch()
        user = self.users.find(username)
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            logger.info("Admin login rejected for %s", username)
            return None

        updated = await self.users.update(user.id, {"last_login": self.users._clock()}) or user
        blob = self.gate.store(updated.public(), self._token(updated))
        logger.info("Admin %s logged in", updated.username)
        return blob

    def logout(self) -> None:
        self.gate.logout()

    def current_user(self) -> Optional[Dict[str, Any]]:
        session = self.gate.current()
        return session["user"] if session else None

    def get_user_by_token(self, token: str) -> Optional[AdminUser]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("ascii")).decode("utf-8")
            user_id, _ = decoded.rsplit(":", 1)
        except (ValueError, UnicodeError):
            return None
        user = self.users.get(user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> AdminUser:
        user = self.users.get(user_id)
        if user is None or not verify_password(current_password, user.password_hash):
            raise FormValidationError(field_errors={"current_password": "Current password is incorrect"})
        if len(new_password or "") < 8:
            raise FormValidationError(field_errors={"new_password": "New password must be at least 8 characters"})
        updated = await self.users.update(user.id, {"password_hash": hash_password(new_password)})
        logger.info("Password changed for admin %s", user.username)
        return updated or user
