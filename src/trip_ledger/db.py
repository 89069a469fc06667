"""SQLite snapshot store for trip-ledger.

The whole snapshot is kept as one JSON blob per key. The engine never talks to
the store; the service loads a snapshot, hands it to the engine and saves the
new snapshot after a mutation.
"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .exceptions import SnapshotError
from .models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotRepository(Protocol):
    """Anything that can load and save a whole snapshot."""

    def load(self) -> Snapshot: ...

    def save(self, snapshot: Snapshot) -> datetime: ...


class Database:
    """SQLite database manager holding snapshots by key."""

    def __init__(self, db_path: Path, key: str = "default"):
        """Initialize database connection."""
        self.db_path = db_path
        self.key = key
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS snapshots (
                key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ========================================================================
    # Snapshot operations
    # ========================================================================

    def load(self) -> Snapshot:
        """
        Load the snapshot stored under this database's key.

        Returns:
            The stored snapshot, or an empty one if nothing has been saved yet

        Raises:
            SnapshotError: If the stored payload is not a valid snapshot
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT payload FROM snapshots WHERE key = ?", (self.key,))
        row = cursor.fetchone()
        if not row:
            logger.info(f"No snapshot stored under '{self.key}', starting empty")
            return Snapshot()

        try:
            return Snapshot.model_validate_json(row["payload"])
        except ValidationError as e:
            raise SnapshotError(
                f"Stored snapshot '{self.key}' in {self.db_path} is invalid: {e}"
            ) from e

    def save(self, snapshot: Snapshot) -> datetime:
        """Store a snapshot under this database's key, replacing any previous one."""
        saved_at = datetime.now()
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO snapshots (key, payload, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                payload = excluded.payload,
                updated_at = excluded.updated_at
            """,
            (self.key, snapshot.model_dump_json(by_alias=True), saved_at.isoformat()),
        )
        self.conn.commit()
        logger.debug(f"Saved snapshot '{self.key}' at {saved_at.isoformat()}")
        return saved_at

    def get_updated_at(self) -> datetime | None:
        """When the snapshot under this key was last saved."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT updated_at FROM snapshots WHERE key = ?", (self.key,))
        row = cursor.fetchone()
        return datetime.fromisoformat(row["updated_at"]) if row else None
