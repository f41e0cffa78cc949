"""
Storage Backend Module

Append-only record stores for the operation journal: in-memory (testing)
and SQLite (persistence). Records are JSON documents keyed by a unique id
and are returned in the order they were appended. A record is never
updated or removed once written.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Union
from datetime import datetime, timezone
import sqlite3
import json
import threading
from pathlib import Path
from contextlib import contextmanager


class DuplicateRecordError(ValueError):
    """A record with the same id was already appended"""

    def __init__(self, table: str, record_id: str):
        self.table = table
        self.record_id = record_id
        super().__init__(f"Record {record_id} already exists in {table}")


class StorageInterface(ABC):
    """Abstract interface for append-only storage backends"""

    @abstractmethod
    def append(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """
        Append a record

        Raises:
            DuplicateRecordError: If record_id is already present in table
        """
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table in append order"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._records: Dict[str, Dict[str, str]] = {}  # table -> id -> JSON text
        self._lock = threading.RLock()

    def append(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            records = self._records.setdefault(table, {})
            if record_id in records:
                raise DuplicateRecordError(table, record_id)
            # Stored as text so callers can't mutate what was written
            records[record_id] = json.dumps(data, default=str)

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [json.loads(text) for text in self._records.get(table, {}).values()]

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._records.get(table, {}))

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._in_transaction = False
        self._tables = set()

        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        with self._lock:
            if table in self._tables:
                return
            # seq keeps append order; id is the caller's unique key
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    data TEXT NOT NULL,
                    appended_at TEXT NOT NULL
                )
            """)
            if not self._in_transaction:
                self._connection.commit()
            self._tables.add(table)

    def append(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            try:
                self._connection.execute(
                    f"INSERT INTO {table} (id, data, appended_at) VALUES (?, ?, ?)",
                    (record_id, json.dumps(data, default=str), datetime.now(timezone.utc).isoformat())
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(table, record_id) from e
            if not self._in_transaction:
                self._connection.commit()

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"SELECT data FROM {table} ORDER BY seq")
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"SELECT COUNT(*) AS count FROM {table}")
            return cursor.fetchone()['count']

    def begin_transaction(self) -> None:
        with self._lock:
            # isolation_level='DEFERRED' opens the transaction on the next write
            self._in_transaction = True

    def commit(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.rollback()
                self._in_transaction = False

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
