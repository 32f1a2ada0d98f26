"""SQLite persistence for session snapshots.

One row per storage key; saving again under the same key overwrites the
previous snapshot. A row that no longer parses loads as ``None``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from snl_session.config import STORAGE_KEY

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Thin wrapper around a SQLite database of JSON snapshots."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.path)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS snapshots (
                key         TEXT PRIMARY KEY,
                payload     TEXT NOT NULL,
                saved_at    TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        """)
        self._conn.commit()

    def save(self, snapshot: dict[str, Any], key: str = STORAGE_KEY) -> None:
        self._conn.execute(
            "INSERT INTO snapshots (key, payload) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET payload = excluded.payload, "
            "saved_at = CURRENT_TIMESTAMP",
            (key, json.dumps(snapshot)),
        )
        self._conn.commit()

    def load(self, key: str = STORAGE_KEY) -> Any | None:
        """Return the decoded snapshot, or ``None`` if absent or unreadable."""
        row = self._conn.execute(
            "SELECT payload FROM snapshots WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("snapshot %r is not valid JSON; ignoring it", key)
            return None

    def delete(self, key: str = STORAGE_KEY) -> None:
        self._conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
        self._conn.commit()

    def keys(self) -> list[str]:
        rows = self._conn.execute("SELECT key FROM snapshots ORDER BY key").fetchall()
        return [r[0] for r in rows]

    def close(self) -> None:
        self._conn.close()
