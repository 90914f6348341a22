"""Async Data Access Layer for the SESSION table.

Provides SessionDAL with raw CRUD operations compatible with
`utils.database_init.AsyncDatabaseInitializer`. Expiry policy lives in the
session store; this layer only filters on the timestamps it is given.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from utils.database_init import AsyncDatabaseInitializer


@dataclass
class SessionRow:
    """In-memory representation of a row in the SESSION table."""

    id: str
    payload: Dict[str, Any]
    created_at: float
    expires_at: float


class SessionDAL:
    """Data access layer for SESSION records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = ("id", "payload", "created_at", "expires_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def insert_session(self, row: SessionRow) -> None:
        """Insert a new SESSION row."""
        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO SESSION ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?)",
                (row.id, json.dumps(row.payload), row.created_at, row.expires_at),
            )
            await conn.commit()

    async def get_session(self, session_id: str) -> Optional[SessionRow]:
        """Return the SessionRow for `session_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM SESSION WHERE id = ?",
                (session_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def update_session(self, session_id: str, payload: Dict[str, Any], expires_at: float, now: float) -> bool:
        """Replace the payload of a live row and push its expiry. Returns True if a row changed."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "UPDATE SESSION SET payload = ?, expires_at = ? WHERE id = ? AND expires_at >= ?",
                (json.dumps(payload), expires_at, session_id, now),
            )
            await conn.commit()
            return cur.rowcount > 0

    async def delete_session(self, session_id: str) -> bool:
        """Delete SESSION row by id. Returns True if a row was deleted."""
        async with self._db.connection() as conn:
            cur = await conn.execute("DELETE FROM SESSION WHERE id = ?", (session_id,))
            await conn.commit()
            return cur.rowcount > 0

    async def delete_expired(self, now: float) -> int:
        """Delete every row whose expiry is before `now` and return the count removed."""
        async with self._db.connection() as conn:
            cur = await conn.execute("DELETE FROM SESSION WHERE expires_at < ?", (now,))
            await conn.commit()
            return max(cur.rowcount, 0)

    async def list_live(self, now: float) -> List[SessionRow]:
        """Return every row whose expiry is at or after `now`."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM SESSION WHERE expires_at >= ?",
                (now,),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> SessionRow:
        """Convert a DB row tuple into a SessionRow."""
        return SessionRow(
            id=row[0],
            payload=json.loads(row[1]),
            created_at=float(row[2]),
            expires_at=float(row[3]),
        )
