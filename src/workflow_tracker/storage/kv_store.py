# src/workflow_tracker/storage/kv_store.py

from __future__ import annotations

import contextlib
import copy
import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any

from ..core.ports import KeyValueStore, Record

logger = logging.getLogger(__name__)


class SqliteKeyValueStore:
    """
    SQLite-backed collection store.

    One row per collection; the payload is the JSON-encoded list of records.
    `set` replaces the whole payload in a single statement, so a reader never
    sees a half-written collection.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "workflow.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            names = self.collection_names()
        except Exception:
            names = []
        logger.info("SqliteKeyValueStore ready db=%s collections=%s", self._db_path, names)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    name TEXT PRIMARY KEY,
                    payload TEXT NOT NULL DEFAULT '[]',
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _decode(raw: str | None, name: str) -> list[Record]:
        if not raw:
            return []
        try:
            val = json.loads(raw)
        except json.JSONDecodeError:
            logger.exception("Collection %s holds invalid JSON; reading it as empty.", name)
            return []
        if not isinstance(val, list):
            return []
        return [r for r in val if isinstance(r, dict)]

    # ---- public API ----

    def collection_names(self) -> list[str]:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT name FROM collections ORDER BY name")
            return [str(r["name"]) for r in cur.fetchall()]
        finally:
            conn.close()

    def has(self, collection: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT 1 FROM collections WHERE name = ?", (collection,))
            return cur.fetchone() is not None
        finally:
            conn.close()

    def get(self, collection: str) -> list[Record]:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT payload FROM collections WHERE name = ?", (collection,))
            row = cur.fetchone()
            return self._decode(row["payload"] if row else None, collection)
        finally:
            conn.close()

    def set(self, collection: str, records: list[Record]) -> None:
        payload = json.dumps(list(records), ensure_ascii=False)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO collections(name, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                (collection, payload, time.time()),
            )
            conn.commit()
            logger.debug("Collection written name=%s records=%d", collection, len(records))
        finally:
            conn.close()


class MemoryKeyValueStore:
    """In-process store; records are deep-copied on the way in and out."""

    def __init__(self, initial: dict[str, list[Record]] | None = None) -> None:
        self._data: dict[str, list[Record]] = copy.deepcopy(initial or {})
        self._lock = threading.Lock()

    def has(self, collection: str) -> bool:
        with self._lock:
            return collection in self._data

    def get(self, collection: str) -> list[Record]:
        with self._lock:
            return copy.deepcopy(self._data.get(collection, []))

    def set(self, collection: str, records: list[Record]) -> None:
        with self._lock:
            self._data[collection] = copy.deepcopy(list(records))


class RetryingKeyValueStore:
    """
    Retry wrapper around another store.

    Retries sqlite3.OperationalError and OSError (locked database, transient
    filesystem failures) with linear backoff. Anything else propagates at once.
    """

    RETRYABLE: tuple[type[BaseException], ...] = (sqlite3.OperationalError, OSError)

    def __init__(self, inner: KeyValueStore, *, attempts: int = 3, delay_seconds: float = 0.05) -> None:
        self._inner = inner
        self._attempts = max(1, int(attempts))
        self._delay = max(0.0, float(delay_seconds))

    def _call(self, op: str, fn: Any, *args: Any) -> Any:
        for attempt in range(1, self._attempts + 1):
            try:
                return fn(*args)
            except self.RETRYABLE as e:
                if attempt >= self._attempts:
                    logger.error("Store %s failed after %d attempts: %s", op, attempt, e)
                    raise
                logger.warning("Store %s failed (attempt %d/%d): %s", op, attempt, self._attempts, e)
                time.sleep(self._delay * attempt)
        raise RuntimeError("unreachable")

    def has(self, collection: str) -> bool:
        return bool(self._call("has", self._inner.has, collection))

    def get(self, collection: str) -> list[Record]:
        return list(self._call("get", self._inner.get, collection))

    def set(self, collection: str, records: list[Record]) -> None:
        self._call("set", self._inner.set, collection, records)
