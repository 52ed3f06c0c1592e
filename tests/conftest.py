"""Pytest fixtures for the portal caches, services and API."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx
import pytest

from fittings_portal.auth.admin_auth import hash_password
from fittings_portal.config import AdminConfig, EmailConfig, PortalConfig
from fittings_portal.database.local_store import LocalStore
from fittings_portal.database.remote_store import RemoteStore
from fittings_portal.errors import RemoteStoreError
from fittings_portal.portal import build_portal

FIXED_NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


class FakeRemoteStore(RemoteStore):
    """In-memory remote store; flip `failing` to simulate an outage."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.failing = False
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[str] = []

    def is_configured(self) -> bool:
        return self.configured

    def _guard(self, op: str, table: str) -> None:
        self.calls.append(f"{op}:{table}")
        if self.failing:
            raise RemoteStoreError(f"{table} unreachable", table=table)

    async def select(self, table, *, order_by=None, descending=True, filters=None):
        self._guard("select", table)
        rows = [dict(r) for r in self.tables.get(table, [])]
        for key, value in (filters or {}).items():
            rows = [r for r in rows if r.get(key) == value]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        return rows

    async def insert(self, table, row):
        self._guard("insert", table)
        now = FIXED_NOW.isoformat()
        stored = {"id": str(uuid4()), "created_at": now, "updated_at": now, **row}
        self.tables.setdefault(table, []).append(stored)
        return dict(stored)

    async def update(self, table, row_id, changes):
        self._guard("update", table)
        for row in self.tables.get(table, []):
            if row["id"] == row_id:
                row.update(changes)
                return dict(row)
        raise RemoteStoreError(f"No row {row_id} in {table}", table=table)

    async def delete(self, table, row_id):
        self._guard("delete", table)
        self.tables[table] = [r for r in self.tables.get(table, []) if r["id"] != row_id]


class Clock:
    """Settable clock so time-based rules can be tested."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def unconfigured_remote():
    return FakeRemoteStore(configured=False)


@pytest.fixture
def local():
    """In-memory local store."""
    return LocalStore()


@pytest.fixture
def clock():
    return Clock()


def quote_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "customer_name": "Jane Builder",
        "email": "jane@example.com",
        "phone": "0400 000 000",
        "company": "Builder Co",
        "items": [{"product": "PVC Elbow Joint 90°", "quantity": 10, "specifications": "50mm"}],
        "project_details": "Site drainage",
        "terms_accepted": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_quote_payload():
    return quote_payload


def product_payload(name: Optional[str] = "Gate Valve 50mm", **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": name,
        "category": "Valves",
        "description": "Brass gate valve",
        "price": 54.5,
        "specifications": ["Bore: 50mm", " ", "Body: brass"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_product_payload():
    return product_payload


ADMIN_PASSWORD = "pipes-and-fittings"


class EmailAPI:
    """Stands in for the email send endpoint; set `status_code` to simulate failures."""

    def __init__(self):
        self.status_code = 200
        self.sent = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.sent.append(request)
        return httpx.Response(self.status_code, text="OK")


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD


@pytest.fixture
def email_api():
    return EmailAPI()


@pytest.fixture
def portal(unconfigured_remote, local, email_api):
    """Fully wired portal: no remote store, in-memory local store, fake email API."""
    config = PortalConfig(
        email=EmailConfig(
            public_key="pk",
            service_id="svc",
            quotation_template_id="tmpl-quote",
            contact_template_id="tmpl-contact",
        ),
        admin=AdminConfig(username="admin", password_hash=hash_password(ADMIN_PASSWORD)),
    )
    return build_portal(
        config,
        remote=unconfigured_remote,
        local=local,
        email_transport=httpx.MockTransport(email_api),
    )
