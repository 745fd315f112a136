from __future__ import annotations
import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from ..debug import debug_log

_SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

-- Small persistent records: emergency/SOS logs, emergency contacts
CREATE TABLE IF NOT EXISTS kv (
  key         TEXT PRIMARY KEY,
  value       TEXT NOT NULL,
  updated_utc TEXT NOT NULL
);
"""


class KeyValueStore:
    """String key-value persistence on sqlite, safe to share across threads."""

    def __init__(self, db_path: str) -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            cur = self.conn.cursor()
            cur.executescript(_SCHEMA_SQL)
            self.conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row["value"] if row is not None else None

    def set(self, key: str, value: str) -> None:
        ts = datetime.now(timezone.utc).isoformat()
        with self._lock:
            self.conn.execute(
                "INSERT INTO kv(key, value, updated_utc) VALUES(?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_utc = excluded.updated_utc",
                (key, value, ts),
            )
            self.conn.commit()

    def delete(self, key: str) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            self.conn.commit()

    def get_json_list(self, key: str) -> List[Any]:
        """Read a JSON array; a missing or corrupt value reads as empty."""
        raw = self.get(key)
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            debug_log(f"ignoring corrupt value for '{key}'", "store")
            return []
        return value if isinstance(value, list) else []

    def append_json_list(self, key: str, entry: Any) -> List[Any]:
        with self._lock:
            items = self.get_json_list(key)
            items.append(entry)
            self.set(key, json.dumps(items))
        return items

    def close(self) -> None:
        with self._lock:
            self.conn.close()
