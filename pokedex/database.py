"""
Database module for persistent storage using SQLite.

Holds a single key-value table. Each value is a JSON document that is read
and replaced as a whole; the roster store is the only current user.
"""

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

import aiosqlite

from config.settings import DB_CONNECTION_STRING

logger = logging.getLogger("pokedex.database")


class Database:
    """
    Async Database interface for client-side persistence.
    Currently supports SQLite via aiosqlite.

    Schema:
    - **kv_store**: Whole JSON documents addressed by a well-known key.
      Columns: key (PK), value (JSON), updated_at.
    """

    def __init__(self, connection_string: str = DB_CONNECTION_STRING):
        """
        Initialize the database instance.

        Args:
            connection_string: The connection URI (e.g., 'sqlite:///data/pokedex.db').
        """
        self.connection_string = connection_string
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

        self.db_type, self.db_path = self._parse_connection_string(connection_string)

    def _parse_connection_string(self, conn_str: str) -> Tuple[str, str]:
        """
        Parse connection string to determine database type and path.

        Args:
            conn_str: Connection string in format 'scheme:///path'.

        Returns:
            Tuple containing (scheme, path).
        """
        # Handle simple sqlite paths manually to avoid os-specific parsing issues
        if conn_str.startswith("sqlite:///"):
            return "sqlite", conn_str.replace("sqlite:///", "")

        parsed = urlparse(conn_str)
        return parsed.scheme, parsed.path

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        """
        Initialize database connection and create tables.

        Raises:
            ValueError: If the database type is not supported (currently only 'sqlite').
        """
        if self.db_type == "sqlite":
            await self._connect_sqlite()
        else:
            raise ValueError(
                f"Unsupported database type: {self.db_type}. Only 'sqlite' is currently supported."
            )

    async def _connect_sqlite(self) -> None:
        """Internal method to establish connection to SQLite file."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._create_tables()
        logger.info(f"Database connected ({self.db_type}): {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Database connection closed")

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        async with self._lock:
            await self._conn.execute(  # type: ignore
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """
            )
            await self._conn.commit()  # type: ignore

    # ==================== KEY-VALUE DOCUMENTS ====================

    async def get_value(self, key: str) -> Optional[Any]:
        """
        Load the document stored under `key`.

        Returns:
            The decoded JSON value, or None if nothing is stored.

        Raises:
            json.JSONDecodeError: If the stored text is not valid JSON.
        """
        async with self._lock:
            cursor = await self._conn.execute(  # type: ignore
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return json.loads(row["value"])

    async def set_value(self, key: str, value: Any) -> bool:
        """
        Replace the document stored under `key`.

        Args:
            key: Document key.
            value: JSON-serializable value.

        Returns:
            True if the write was committed, False otherwise.
        """
        try:
            async with self._lock:
                await self._conn.execute(  # type: ignore
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, json.dumps(value), time.time()),
                )
                await self._conn.commit()  # type: ignore

            logger.debug(f"Saved document {key}")
            return True

        except (aiosqlite.Error, TypeError, ValueError) as e:
            logger.error(f"Error saving document {key}: {e}", exc_info=True)
            return False


# Global database instance
_db_instance: Optional[Database] = None
# Lock for safe initialization
_db_init_lock = asyncio.Lock()


async def get_database() -> Database:
    """
    Get global database instance (Singleton pattern).

    Initializes and connects if not already connected.
    Uses double-checked locking to prevent race conditions during startup.

    Returns:
        The connected Database instance.
    """
    global _db_instance

    if _db_instance is None:
        async with _db_init_lock:
            if _db_instance is None:
                instance = Database()
                await instance.connect()
                # Only assign to global variable AFTER connection is fully established
                _db_instance = instance

    return _db_instance


async def close_database() -> None:
    """Close global database instance and cleanup resources."""
    global _db_instance
    if _db_instance is not None:
        await _db_instance.close()
        _db_instance = None
