"""
Record store — generic CRUD + equality filters over the LMS tables.

SupabaseRecordStore talks to the hosted Postgres through the supabase-py
query builder. InMemoryRecordStore keeps rows in process (RECORD_STORE=memory
and tests). Both return plain dict rows.
"""

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError

from app.core.errors import PersistenceFailure

logger = logging.getLogger(__name__)

TABLES = (
    "profiles",
    "groups",
    "group_members",
    "tasks",
    "task_submissions",
    "activities",
    "announcements",
    "resources",
    "group_chat_messages",
)


class RecordStore(ABC):
    @abstractmethod
    def get(self, table: str, record_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def list(self, table: str, order_by: Optional[str] = None, desc: bool = False, **filters) -> List[dict]:
        """Rows matching every filter. A list/tuple/set value means "column in values"."""

    @abstractmethod
    def insert(self, table: str, record: dict) -> dict:
        pass

    @abstractmethod
    def update(self, table: str, record_id: str, fields: dict) -> dict:
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> None:
        pass

    def first(self, table: str, **filters) -> Optional[dict]:
        rows = self.list(table, **filters)
        return rows[0] if rows else None


class SupabaseRecordStore(RecordStore):
    def __init__(self, client_factory: Callable[[], Any]):
        # The client is created on first query so the app can start without credentials
        self._client_factory = client_factory

    @property
    def client(self):
        return self._client_factory()

    def _execute(self, query, action: str, table: str):
        try:
            return query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Record store {action} on {table} failed: {e}")
            raise PersistenceFailure(f"Could not {action} {table}: {e}") from e

    def get(self, table: str, record_id: str) -> Optional[dict]:
        query = self.client.table(table).select("*").eq("id", record_id).limit(1)
        result = self._execute(query, "read", table)
        return result.data[0] if result.data else None

    def list(self, table: str, order_by: Optional[str] = None, desc: bool = False, **filters) -> List[dict]:
        query = self.client.table(table).select("*")
        for column, value in filters.items():
            if isinstance(value, (list, tuple, set)):
                query = query.in_(column, list(value))
            else:
                query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=desc)
        result = self._execute(query, "read", table)
        return result.data or []

    def insert(self, table: str, record: dict) -> dict:
        result = self._execute(self.client.table(table).insert(record), "insert into", table)
        if not result.data:
            raise PersistenceFailure(f"Insert into {table} returned no row")
        return result.data[0]

    def update(self, table: str, record_id: str, fields: dict) -> dict:
        query = self.client.table(table).update(fields).eq("id", record_id)
        result = self._execute(query, "update", table)
        if not result.data:
            raise PersistenceFailure(f"No {table} row with id {record_id} was updated")
        return result.data[0]

    def delete(self, table: str, record_id: str) -> None:
        self._execute(self.client.table(table).delete().eq("id", record_id), "delete from", table)


class InMemoryRecordStore(RecordStore):
    def __init__(self, seed: Optional[Dict[str, List[dict]]] = None):
        self._lock = threading.Lock()
        self._tables: Dict[str, Dict[str, dict]] = {name: {} for name in TABLES}
        for table, rows in (seed or {}).items():
            for row in rows:
                self.insert(table, row)

    def _rows(self, table: str) -> Dict[str, dict]:
        return self._tables.setdefault(table, {})

    @staticmethod
    def _matches(row: dict, filters: dict) -> bool:
        for column, value in filters.items():
            if isinstance(value, (list, tuple, set)):
                if row.get(column) not in value:
                    return False
            elif row.get(column) != value:
                return False
        return True

    @staticmethod
    def _sort_key(value):
        # Nulls last; numbers compare numerically, everything else as text
        if value is None:
            return (1, 0, "")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (0, value, "")
        return (0, 0, str(value))

    def get(self, table: str, record_id: str) -> Optional[dict]:
        with self._lock:
            row = self._rows(table).get(record_id)
            return copy.deepcopy(row) if row is not None else None

    def list(self, table: str, order_by: Optional[str] = None, desc: bool = False, **filters) -> List[dict]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._rows(table).values() if self._matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: self._sort_key(r.get(order_by)), reverse=desc)
        return rows

    def insert(self, table: str, record: dict) -> dict:
        row = copy.deepcopy(record)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        with self._lock:
            self._rows(table)[row["id"]] = row
        return copy.deepcopy(row)

    def update(self, table: str, record_id: str, fields: dict) -> dict:
        with self._lock:
            row = self._rows(table).get(record_id)
            if row is None:
                raise PersistenceFailure(f"No {table} row with id {record_id} was updated")
            row.update(copy.deepcopy(fields))
            return copy.deepcopy(row)

    def delete(self, table: str, record_id: str) -> None:
        with self._lock:
            self._rows(table).pop(record_id, None)
