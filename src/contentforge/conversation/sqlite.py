"""SQLite key-value backend.

Persists chat history and document state across sessions in a SQLite
database file. Uses aiosqlite for async access.
"""

from pathlib import Path

import aiosqlite

from ..auth.models import utcnow
from .base import KeyValueStore


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-backed key-value store.

    Values are namespaced per profile so several local users can share
    one database file.
    """

    def __init__(
        self,
        path: str | Path = "./contentforge.db",
        namespace: str = "default"
    ):
        self._db_path = Path(path)
        self._namespace = namespace
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS kv_entries (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            )
        """)
        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def get(self, key: str) -> str | None:
        async with self._require_connection().execute(
            "SELECT value FROM kv_entries WHERE namespace = ? AND key = ?",
            (self._namespace, key)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        conn = self._require_connection()
        await conn.execute("""
            INSERT INTO kv_entries (namespace, key, value, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(namespace, key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
        """, (self._namespace, key, value, utcnow().isoformat()))
        await conn.commit()

    async def remove(self, key: str) -> None:
        conn = self._require_connection()
        await conn.execute(
            "DELETE FROM kv_entries WHERE namespace = ? AND key = ?",
            (self._namespace, key)
        )
        await conn.commit()

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLite store is not connected. Call connect() first.")
        return self._connection

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
