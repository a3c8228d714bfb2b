"""SQLite record store using aiosqlite."""

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

import aiosqlite

from cache_patterns.errors import StoreUnavailableError
from cache_patterns.models import DEFAULT_MUTABLE_FIELDS, Entity
from cache_patterns.persistence.base import RecordStore


@dataclass
class SqliteRecordStoreConfig:
    """Configuration for SqliteRecordStore.

    Attributes:
        db_path: Path to the SQLite database file.
        table_name: Name of the entity table.
        columns: Mutable columns besides the integer primary key ``id``.
    """

    db_path: Path = field(default_factory=lambda: Path(os.getenv("CACHE_LAYER_DB_PATH", "users.db")))
    table_name: str = "users"
    columns: tuple[str, ...] = DEFAULT_MUTABLE_FIELDS


class SqliteRecordStore(RecordStore):
    """Record store backed by a single shared aiosqlite connection.

    The connection is opened once (explicitly, on first use, or via the async
    context manager) and reused for every call. Driver errors are surfaced as
    StoreUnavailableError.

    Example:
        ```python
        async with SqliteRecordStore(SqliteRecordStoreConfig(Path("users.db"))) as store:
            new_id = await store.insert({"name": "A", "age": 1})
            await store.update_by_id(new_id, {"name": "B"})
            users = await store.query_all()
        ```
    """

    def __init__(self, config: SqliteRecordStoreConfig | None = None) -> None:
        """Initialize the SQLite record store.

        Args:
            config: Store configuration.
        """
        self._config = config or SqliteRecordStoreConfig()
        self._db: aiosqlite.Connection | None = None
        self._closed = False
        self._open_lock = asyncio.Lock()

    @property
    def columns(self) -> tuple[str, ...]:
        """Mutable columns of the entity table."""
        return self._config.columns

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Open the database connection and ensure the entity table exists."""
        async with self._open_lock:
            if self._db is not None:
                return
            try:
                db = await aiosqlite.connect(self._config.db_path, isolation_level=None)
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA journal_mode = WAL")
                await db.execute("PRAGMA synchronous = NORMAL")
            except aiosqlite.Error as exc:
                raise StoreUnavailableError(f"Cannot open record store: {exc}") from exc
            self._db = db
            self._closed = False
            await self._ensure_schema()

    async def _ensure_schema(self) -> None:
        """Create the entity table if it doesn't exist."""
        db = await self._connection()
        column_defs = ",\n".join(f"{name} {self._column_type(name)}" for name in self.columns)
        try:
            await db.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._config.table_name} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    {column_defs}
                )
                """
            )
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"Cannot create entity table: {exc}") from exc

    @staticmethod
    def _column_type(name: str) -> str:
        return "INTEGER" if name == "age" else "TEXT"

    async def _connection(self) -> aiosqlite.Connection:
        if self._closed:
            raise RuntimeError("Cannot use closed record store")
        if self._db is None:
            await self.open()
        assert self._db is not None
        return self._db

    def _check_columns(self, fields: dict[str, Any]) -> list[str]:
        unknown = [name for name in fields if name not in self.columns]
        if unknown:
            raise ValueError(f"Unknown columns for {self._config.table_name}: {unknown}")
        return list(fields)

    async def query_all(self) -> list[Entity]:
        """Read every row ordered by id.

        Returns:
            list[Entity]: All entities in the table.
        """
        db = await self._connection()
        try:
            cursor = await db.execute(f"SELECT * FROM {self._config.table_name} ORDER BY id")
            rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"Query failed: {exc}") from exc
        return [Entity.from_dict(dict(row)) for row in rows]

    async def insert(self, fields: dict[str, Any]) -> int:
        """Insert a row.

        Args:
            fields: Column values; an ``id`` key is ignored.

        Returns:
            int: The assigned row id.

        Raises:
            ValueError: If fields name a column the table does not have.
            StoreUnavailableError: If the insert fails.
        """
        values = {k: v for k, v in fields.items() if k != "id"}
        columns = self._check_columns(values)
        db = await self._connection()

        table_name = self._config.table_name
        if columns:
            column_names = ", ".join(columns)
            placeholders = ", ".join(f":{col}" for col in columns)
            sql = f"INSERT INTO {table_name} ({column_names}) VALUES ({placeholders})"
        else:
            sql = f"INSERT INTO {table_name} DEFAULT VALUES"

        try:
            cursor = await db.execute(sql, values)
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"Insert failed: {exc}") from exc
        if cursor.lastrowid is None:
            raise StoreUnavailableError("Insert returned no row id")
        return cursor.lastrowid

    async def update_by_id(self, entity_id: int, fields: dict[str, Any]) -> int:
        """Update the row with the given id.

        Args:
            entity_id: Row id to update.
            fields: Column values to set; an ``id`` key is ignored.

        Returns:
            int: Number of rows matched (0 when the id no longer exists).
        """
        values = {k: v for k, v in fields.items() if k != "id"}
        columns = self._check_columns(values)
        if not columns:
            return 0
        db = await self._connection()

        assignments = ", ".join(f"{col} = :{col}" for col in columns)
        try:
            cursor = await db.execute(
                f"UPDATE {self._config.table_name} SET {assignments} WHERE id = :__id",
                {**values, "__id": entity_id},
            )
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"Update of {entity_id} failed: {exc}") from exc
        return cursor.rowcount

    async def close(self) -> None:
        """Close the database connection."""
        if self._closed:
            return

        self._closed = True

        if self._db:
            await self._db.close()
            self._db = None
