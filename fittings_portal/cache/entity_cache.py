"""
Local-first entity cache.

One `EntityCache` subclass per entity type keeps an in-memory list that the
API and services read from. Reads and writes go to the remote store first and
fall back to the local store when the remote one is absent, unconfigured or
failing. Remote failures are logged and never raised to callers.

After any successful remote read or write the local snapshot is rewritten
with the current list, so a later outage falls back to the last known state
rather than to an older one. Records created while the remote store was down
carry a local id and are kept in the snapshot across those rewrites until
they are removed.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Generic, Iterable, List, Optional, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from fittings_portal.database.remote_store import RemoteStore
from fittings_portal.entities import Entity
from fittings_portal.errors import RemoteStoreError, RemoteStoreNotConfigured

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

# Fields the store owns; callers never set them through add/update.
_MANAGED_FIELDS = {"id", "created_at", "updated_at"}

# Ids handed out by `EntityCache._local_id`.
_LOCAL_ID = re.compile(r"^\d+-[0-9a-f]{6}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)


def to_record(data: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a payload to JSON-native values for either store."""
    return json.loads(json.dumps(data, default=_json_default))


class EntityCache(Generic[E]):
    """
    Reactive list of one entity type backed by a remote and a local store.

    Subclasses set `model`, `table` and `storage_key`, and may override
    `order_by`/`descending` (natural order) and `seed()` (first-run data).
    """

    model: ClassVar[Type[Entity]]
    table: ClassVar[str]
    storage_key: ClassVar[str]
    order_by: ClassVar[Optional[str]] = "created_at"
    descending: ClassVar[bool] = True
    # Some remote tables carry no updated_at column.
    remote_stamps_updated_at: ClassVar[bool] = True

    def __init__(
        self,
        remote: Optional[RemoteStore],
        local,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.remote = remote
        self.local = local
        self.items: List[E] = []
        self.loading = False
        self._clock = clock or utcnow
        self._sequence = 0

    # ------------------------------------------------------------------ #
    # Hooks
    # ------------------------------------------------------------------ #
    def seed(self) -> List[Dict[str, Any]]:
        """Records written to an empty local store on first fallback read."""
        return []

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _require_remote(self) -> RemoteStore:
        if self.remote is None or not self.remote.is_configured():
            raise RemoteStoreNotConfigured("Remote store is not configured", table=self.table)
        return self.remote

    def _log_fallback(self, action: str, error: RemoteStoreError) -> None:
        if isinstance(error, RemoteStoreNotConfigured):
            logger.debug("%s %s: remote store not configured, using local store", action, self.table)
        else:
            logger.warning("%s %s failed on remote store, using local store: %s", action, self.table, error)

    def _sort(self, entities: List[E]) -> List[E]:
        if not self.order_by:
            return entities
        present = [e for e in entities if getattr(e, self.order_by, None) is not None]
        missing = [e for e in entities if getattr(e, self.order_by, None) is None]
        present.sort(key=lambda e: getattr(e, self.order_by), reverse=self.descending)
        return present + missing

    def _snapshot_rows(self) -> Optional[List[Dict[str, Any]]]:
        """Raw snapshot rows, or None when there is no readable snapshot."""
        raw = self.local.get_item(self.storage_key)
        if raw is None:
            return None
        try:
            rows = json.loads(raw)
        except ValueError as e:
            logger.warning("Local snapshot %s is unreadable: %s", self.storage_key, e)
            return None
        if not isinstance(rows, list):
            logger.warning("Local snapshot %s is not a list", self.storage_key)
            return None
        return [r for r in rows if isinstance(r, dict)]

    def _read_local(self) -> List[E]:
        rows = self._snapshot_rows()
        if rows is None:
            seeded = [self.model.model_validate(r) for r in self.seed()]
            self._write_local(seeded)
            return seeded

        entities: List[E] = []
        for row in rows:
            try:
                entities.append(self.model.model_validate(row))
            except ValidationError as e:
                logger.warning("Skipping invalid %s row %s in local store: %s", self.table, row.get("id"), e)
        return self._sort(entities)

    def _write_local(self, entities: List[E], *, dropped: Iterable[str] = ()) -> None:
        """Rewrite the snapshot; local-only records not in `entities` survive unless dropped."""
        known = {e.id for e in entities} | set(dropped)
        kept = [
            r for r in self._snapshot_rows() or []
            if _LOCAL_ID.match(str(r.get("id", ""))) and str(r["id"]) not in known
        ]
        payload = json.dumps([e.model_dump(mode="json") for e in entities] + kept)
        self.local.set_item(self.storage_key, payload)

    def _writable(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Drop store-owned and unknown fields."""
        fields = self.model.model_fields
        return {k: v for k, v in data.items() if k in fields and k not in _MANAGED_FIELDS}

    def _local_id(self, now: datetime) -> str:
        return f"{int(now.timestamp() * 1000)}-{uuid4().hex[:6]}"

    def _replace(self, entity: E) -> None:
        self.items = [entity if i.id == entity.id else i for i in self.items]

    def get(self, entity_id: str) -> Optional[E]:
        for item in self.items:
            if item.id == str(entity_id):
                return item
        return None

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #
    async def refetch(self) -> List[E]:
        """Reload `items`; the newest concurrent refetch wins."""
        self._sequence += 1
        sequence = self._sequence
        self.loading = True
        try:
            from_remote = True
            try:
                rows = await self._require_remote().select(
                    self.table, order_by=self.order_by, descending=self.descending
                )
                fresh = [self.model.model_validate(r) for r in rows]
            except (RemoteStoreError, ValidationError) as e:
                if isinstance(e, RemoteStoreError):
                    self._log_fallback("select", e)
                else:
                    logger.warning("Remote rows for %s do not validate, using local store: %s", self.table, e)
                from_remote = False
                fresh = self._read_local()

            if sequence != self._sequence:
                logger.debug("Discarding stale %s refetch #%d", self.table, sequence)
                return self.items

            self.items = fresh
            if from_remote:
                self._write_local(fresh)
            return self.items
        finally:
            if sequence == self._sequence:
                self.loading = False

    async def add(self, data: Dict[str, Any]) -> E:
        record = to_record(self._writable(data))
        # Fail on missing/invalid fields before anything touches a store.
        self.model.model_validate({**record, "id": "draft"})

        try:
            row = await self._require_remote().insert(self.table, record)
        except RemoteStoreError as e:
            self._log_fallback("insert", e)
        else:
            try:
                entity = self.model.model_validate(row)
            except ValidationError as e:
                # The row is committed remotely; keep what was submitted under its id.
                logger.warning("Inserted %s row does not validate, keeping submitted record: %s", self.table, e)
                now = self._clock()
                entity = self.model.model_validate(
                    {**record, "id": str(row.get("id") or self._local_id(now)), "created_at": now, "updated_at": now}
                )
            self.items = [entity] + [i for i in self.items if i.id != entity.id]
            self._write_local(self.items)
            logger.info("Added %s %s", self.table, entity.id)
            return entity

        now = self._clock()
        entity = self.model.model_validate(
            {**record, "id": self._local_id(now), "created_at": now, "updated_at": now}
        )
        self.items = [entity] + self.items
        self._write_local(self.items)
        logger.info("Added %s %s to local store", self.table, entity.id)
        return entity

    async def update(self, entity_id: str, partial: Dict[str, Any]) -> Optional[E]:
        entity_id = str(entity_id)
        if self.get(entity_id) is None:
            return None

        changes = to_record(self._writable(partial))
        now = self._clock()
        remote_changes = dict(changes)
        if self.remote_stamps_updated_at:
            remote_changes["updated_at"] = now.isoformat()

        try:
            row = await self._require_remote().update(self.table, entity_id, remote_changes)
        except RemoteStoreError as e:
            self._log_fallback("update", e)
        else:
            try:
                entity = self.model.model_validate(row)
            except ValidationError as e:
                logger.warning("Updated %s row does not validate, merging locally: %s", self.table, e)
            else:
                self._replace(entity)
                self._write_local(self.items)
                return entity

        current = self.get(entity_id)
        if current is None:
            # Removed while the remote call was in flight.
            return None
        entity = self.model.model_validate(
            {**current.model_dump(mode="json"), **changes, "updated_at": now}
        )
        self._replace(entity)
        self._write_local(self.items)
        return entity

    async def remove(self, entity_id: str) -> None:
        entity_id = str(entity_id)
        try:
            await self._require_remote().delete(self.table, entity_id)
        except RemoteStoreError as e:
            self._log_fallback("delete", e)
        self.items = [i for i in self.items if i.id != entity_id]
        self._write_local(self.items, dropped=[entity_id])
        logger.info("Removed %s %s", self.table, entity_id)
