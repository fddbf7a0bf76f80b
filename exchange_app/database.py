"""Key-value stores for exchange state."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from token_exchange.core.interfaces import Store

logger = logging.getLogger(__name__)


class Database(Store):
    """Manages a SQLite key-value table holding JSON-encoded values."""

    def __init__(self, db_path: str = "data/exchange.db"):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.init_db()

    def init_db(self):
        """Create tables if they don't exist."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.commit()
        conn.close()

    def get(self, key: str) -> Optional[Any]:
        """Get the decoded value for a key."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = cursor.fetchone()
        conn.close()

        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise ValueError(f"Stored value for {key!r} is not valid JSON: {e}") from e

    def set(self, key: str, value: Any) -> None:
        """Insert or replace a key."""
        self.set_many({key: value})

    def set_many(self, items: Dict[str, Any]) -> None:
        """Write several keys in one transaction."""
        rows = [(key, json.dumps(value)) for key, value in items.items()]

        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        try:
            cursor.executemany("""
                INSERT INTO kv (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, rows)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.debug("Wrote keys %s to %s", sorted(items), self.db_path)

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()
        cursor.execute("DELETE FROM kv WHERE key = ?", (key,))
        conn.commit()
        conn.close()

    def list_keys(self) -> List[str]:
        """List all stored keys."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()
        cursor.execute("SELECT key FROM kv ORDER BY key")
        rows = cursor.fetchall()
        conn.close()

        return [row[0] for row in rows]


class MemoryStore(Store):
    """In-process store; values are JSON round-tripped like the SQLite store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def list_keys(self) -> List[str]:
        return sorted(self._data)
