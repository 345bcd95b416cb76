"""Async SQLite database layer for the keyring broker.

Uses ``aiosqlite`` with WAL mode. The database holds two things: the
single keyring state document and the journal of emitted notifications
waiting for the host to drain them.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

import aiosqlite


class Database:
    """Async wrapper around the broker's SQLite file.

    Parameters
    ----------
    db_path:
        Filesystem path to the SQLite database file.  The file (and any
        intermediate directories) will be created automatically on
        :meth:`connect` if they do not already exist.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[aiosqlite.Connection] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the database connection, enable WAL mode, and run migrations."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.row_factory = sqlite3.Row
        await self._migrate()

    async def close(self) -> None:
        """Close the database connection gracefully."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise sqlite3.ProgrammingError("Database not connected. Call connect() first.")
        return self._conn

    # ------------------------------------------------------------------
    # State document
    # ------------------------------------------------------------------

    async def load_document(self) -> Optional[str]:
        """Return the stored state document, or ``None`` before the first write."""
        cursor = await self._connection().execute(
            "SELECT document FROM keyring_state WHERE id = 1"
        )
        row = await cursor.fetchone()
        return None if row is None else row["document"]

    async def store_document(self, document: str) -> None:
        """Replace the state document."""
        conn = self._connection()
        await conn.execute(
            "INSERT INTO keyring_state (id, document, updated_at) "
            "VALUES (1, ?, CURRENT_TIMESTAMP) "
            "ON CONFLICT(id) DO UPDATE SET "
            "document = excluded.document, updated_at = excluded.updated_at",
            (document,),
        )
        await conn.commit()

    # ------------------------------------------------------------------
    # Event journal
    # ------------------------------------------------------------------

    async def append_event(self, event: str, payload: str) -> int:
        """Append one notification and return its sequence number."""
        conn = self._connection()
        cursor = await conn.execute(
            "INSERT INTO keyring_events (event, payload) VALUES (?, ?)",
            (event, payload),
        )
        await conn.commit()
        return cursor.lastrowid

    async def fetch_events(self, limit: Optional[int] = None) -> list[dict]:
        """Return journaled notifications, oldest first."""
        sql = "SELECT id, event, payload, created_at FROM keyring_events ORDER BY id"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        cursor = await self._connection().execute(sql, params)
        return [dict(row) for row in await cursor.fetchall()]

    async def delete_events(self, up_to_id: int) -> int:
        """Drop every notification with ``id <= up_to_id``; return how many."""
        conn = self._connection()
        cursor = await conn.execute(
            "DELETE FROM keyring_events WHERE id <= ?", (up_to_id,)
        )
        await conn.commit()
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    async def _migrate(self) -> None:
        """Create the state and journal tables if they do not already exist."""
        conn = self._connection()

        # A single row holds the whole keyring document.
        await conn.executescript(
            """\
            CREATE TABLE IF NOT EXISTS keyring_state (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                document TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS keyring_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event TEXT NOT NULL,
                payload TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        await conn.commit()


def get_database(profile_dir: Path) -> Database:
    """Return an unconnected :class:`Database` at ``profile_dir/keyring.db``."""
    return Database(Path(profile_dir) / "keyring.db")
