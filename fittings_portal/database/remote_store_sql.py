"""
SQL-backed remote store for deployments with direct database access, used when
USE_SQL_REMOTE_STORE and DATABASE_URL are set. Implements the same interface as
fittings_portal.database.remote_store.RestRemoteStore.
"""

from __future__ import annotations

import asyncio
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import DateTime, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fittings_portal.database.models import TABLES, Base
from fittings_portal.database.remote_store import RemoteStore
from fittings_portal.entities import as_utc
from fittings_portal.errors import RemoteStoreError, RemoteStoreNotConfigured


def _normalize_connection_string(s: str) -> str:
    """Strip common mistakes: 'psql \'...\'', extra quotes, whitespace."""
    s = s.strip()
    if re.match(r"^psql\s+", s, re.IGNORECASE):
        s = re.sub(r"^psql\s+", "", s, flags=re.IGNORECASE).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s


class SqlRemoteStore(RemoteStore):
    """
    Remote store over SQLAlchemy. Blocking database calls run in a worker
    thread so the event loop stays responsive.
    """

    def __init__(self, connection_string: Optional[str]) -> None:
        self.connection_string = _normalize_connection_string(connection_string or "")
        self.engine = None
        self.SessionLocal = None
        if self.connection_string:
            if self.connection_string.startswith("sqlite"):
                self.engine = create_engine(
                    self.connection_string, connect_args={"check_same_thread": False}
                )
            else:
                self.engine = create_engine(
                    self.connection_string, pool_pre_ping=True, pool_size=5, max_overflow=10
                )
            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def is_configured(self) -> bool:
        return self.engine is not None

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def _session(self) -> Session:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ------------------------------------------------------------------ #
    # Row helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def _model(table: str):
        model = TABLES.get(table)
        if model is None:
            raise RemoteStoreError(f"Table {table} does not exist", table=table)
        return model

    @staticmethod
    def _to_dict(obj) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for column in obj.__table__.columns:
            value = getattr(obj, column.key)
            out[column.key] = as_utc(value) if isinstance(value, datetime) else value
        return out

    @staticmethod
    def _coerce(model, values: Dict[str, Any]) -> Dict[str, Any]:
        """Keep known columns; parse ISO strings for timestamp columns."""
        columns = model.__table__.columns
        out: Dict[str, Any] = {}
        for key, value in values.items():
            if key not in columns:
                continue
            if isinstance(columns[key].type, DateTime) and isinstance(value, str):
                value = datetime.fromisoformat(value.replace("Z", "+00:00"))
            out[key] = value
        return out

    async def _run(self, table: str, fn):
        if not self.is_configured():
            raise RemoteStoreNotConfigured("DATABASE_URL is not configured", table=table)
        try:
            return await asyncio.to_thread(fn)
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"{table}: {e.__class__.__name__}: {e}", table=table) from e

    # ------------------------------------------------------------------ #
    # RemoteStore
    # ------------------------------------------------------------------ #
    async def select(
        self,
        table: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)

        def _select() -> List[Dict[str, Any]]:
            with self._session() as s:
                stmt = select(model)
                for column, value in (filters or {}).items():
                    stmt = stmt.where(getattr(model, column) == value)
                if order_by:
                    col = getattr(model, order_by)
                    stmt = stmt.order_by(col.desc() if descending else col.asc())
                return [self._to_dict(o) for o in s.execute(stmt).scalars().all()]

        return await self._run(table, _select)

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)

        def _insert() -> Dict[str, Any]:
            with self._session() as s:
                values = self._coerce(model, row)
                values.setdefault("id", str(uuid4()))
                obj = model(**values)
                s.add(obj)
                s.flush()
                s.refresh(obj)
                return self._to_dict(obj)

        return await self._run(table, _insert)

    async def update(self, table: str, row_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)

        def _update() -> Dict[str, Any]:
            with self._session() as s:
                obj = s.get(model, str(row_id))
                if obj is None:
                    raise RemoteStoreError(f"No row {row_id} in {table} to update", table=table)
                for key, value in self._coerce(model, changes).items():
                    if key != "id":
                        setattr(obj, key, value)
                s.flush()
                s.refresh(obj)
                return self._to_dict(obj)

        return await self._run(table, _update)

    async def delete(self, table: str, row_id: str) -> None:
        model = self._model(table)

        def _delete() -> None:
            with self._session() as s:
                obj = s.get(model, str(row_id))
                if obj is not None:
                    s.delete(obj)

        await self._run(table, _delete)
