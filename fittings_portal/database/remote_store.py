"""
Remote store clients.

The remote store is the hosted relational database that acts as the system of
record while it is reachable. Every backend implements `RemoteStore`; callers
treat any `RemoteStoreError` (including `RemoteStoreNotConfigured`) as a signal
to fall back to the local store.

`RestRemoteStore` talks to a PostgREST endpoint (the REST layer hosted
database services such as Supabase expose) using the project URL and the
public anon key.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from fittings_portal.errors import RemoteStoreError, RemoteStoreNotConfigured

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKER = "placeholder"


class RemoteStore(ABC):
    """Every remote store backend must implement this interface."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return False when credentials are missing or placeholders."""

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Return all rows of `table` matching equality `filters`."""

    @abstractmethod
    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored (server id, timestamps)."""

    @abstractmethod
    async def update(self, table: str, row_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Update one row by id and return it; raise if no row matched."""

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> None:
        """Delete one row by id."""

    async def check_connection(self, table: str = "products") -> Dict[str, Any]:
        """Probe the store with a cheap read."""
        if not self.is_configured():
            return {"connected": False, "error": "Remote store is not configured"}
        try:
            await self.select(table, order_by=None)
            return {"connected": True, "error": None}
        except RemoteStoreError as e:
            return {"connected": False, "error": str(e)}


class RestRemoteStore(RemoteStore):
    """PostgREST client. One short-lived httpx client per call."""

    def __init__(
        self,
        url: Optional[str],
        anon_key: Optional[str],
        *,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = (url or "").rstrip("/")
        self.anon_key = anon_key or ""
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key) and PLACEHOLDER_MARKER not in self.url

    def _headers(self, *, representation: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Content-Type": "application/json",
        }
        if representation:
            headers["Prefer"] = "return=representation"
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        representation: bool = False,
    ) -> Any:
        if not self.is_configured():
            raise RemoteStoreNotConfigured("Remote store is not configured", table=table)

        url = f"{self.url}/rest/v1/{table}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(representation=representation),
                )
                response.raise_for_status()
                return response.json() if response.content else None
        except httpx.HTTPStatusError as e:
            # PostgREST answers 404 for a missing table, 401/403 for RLS denials.
            detail = e.response.text[:200] if e.response is not None else ""
            raise RemoteStoreError(
                f"{method} {table} failed with HTTP {e.response.status_code}: {detail}", table=table
            ) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {table} failed: {e}", table=table) from e
        except ValueError as e:
            raise RemoteStoreError(f"{method} {table} returned invalid JSON", table=table) from e

    @staticmethod
    def _eq(value: Any) -> str:
        if isinstance(value, bool):
            value = "true" if value else "false"
        return f"eq.{value}"

    async def select(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, str] = {"select": "*"}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        for column, value in (filters or {}).items():
            params[column] = self._eq(value)
        data = await self._request("GET", table, params=params)
        return list(data or [])

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request("POST", table, json=[row], representation=True)
        if not data:
            raise RemoteStoreError(f"Insert into {table} returned no row", table=table)
        return data[0]

    async def update(self, table: str, row_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request(
            "PATCH", table, params={"id": self._eq(row_id)}, json=changes, representation=True
        )
        if not data:
            raise RemoteStoreError(f"No row {row_id} in {table} to update", table=table)
        return data[0]

    async def delete(self, table: str, row_id: str) -> None:
        await self._request("DELETE", table, params={"id": self._eq(row_id)})
