import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

DEFAULT_DB_FILENAME = "sessions.db"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS SESSION (
        id TEXT PRIMARY KEY,
        payload TEXT NOT NULL,
        created_at REAL NOT NULL,
        expires_at REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_session_expires_at ON SESSION (expires_at)",
)


def resolve_database_dir(database_dir: Optional[Path | str] = None) -> Path:
    """Return a usable directory for the session database, creating it if needed.

    An explicit `database_dir` wins over the DATABASE_DIR environment variable.

    Raises:
        RuntimeError: If neither is set, or the path is a file or cannot be created.
    """
    raw = str(database_dir) if database_dir is not None else os.getenv("DATABASE_DIR")
    if raw is None or not raw.strip():
        raise RuntimeError(
            "DATABASE_DIR must be set to a writable directory when SESSION_BACKEND=sqlite."
        )

    path = Path(raw).expanduser()
    if path.exists() and not path.is_dir():
        raise RuntimeError(f"DATABASE_DIR={raw!r} is a file, not a directory ({path}).")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Cannot create database directory {path}") from exc
    return path


class AsyncDatabaseInitializer:
    """
    Own the SQLite file behind the durable session store.

    The schema is created on first use. Existing rows are kept across
    restarts until they expire.
    """

    def __init__(self, database_dir: Optional[Path | str] = None, filename: str = DEFAULT_DB_FILENAME) -> None:
        self.db_dir = resolve_database_dir(database_dir)
        self.db_path = self.db_dir / filename
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """Create the SESSION table and its expiry index once per instance."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("PRAGMA journal_mode=WAL")
                for statement in SCHEMA_STATEMENTS:
                    await db.execute(statement)
                await db.commit()
            self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a short-lived connection, creating the schema first if needed."""
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
