"""
Key-value persistence used by the roster repository.

The repository only ever loads a whole document and saves a whole document,
so the storage medium sits behind the two-method `KeyValueStore` protocol.
`SQLiteKeyValueStore` is the default; `MemoryKeyValueStore` keeps documents
in process (tests, or sessions that should not persist).
"""

import copy
import json
import logging
from typing import Any, Dict, Optional, Protocol

from pokedex.database import Database, get_database
from pokedex.errors import DecodeError

logger = logging.getLogger("pokedex.storage")


class KeyValueStore(Protocol):
    async def load(self, key: str) -> Optional[Any]:
        """Return the document under `key`, or None if absent."""
        ...

    async def save(self, key: str, value: Any) -> bool:
        """Replace the document under `key`. Returns False if not persisted."""
        ...


class SQLiteKeyValueStore:
    """KeyValueStore backed by the `kv_store` table of the SQLite database."""

    def __init__(self, database: Optional[Database] = None):
        self._database = database

    async def _db(self) -> Database:
        if self._database is None:
            self._database = await get_database()
        elif not self._database.connected:
            await self._database.connect()
        return self._database

    async def load(self, key: str) -> Optional[Any]:
        db = await self._db()
        try:
            return await db.get_value(key)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Stored document {key!r} is not valid JSON: {e}") from e

    async def save(self, key: str, value: Any) -> bool:
        db = await self._db()
        return await db.set_value(key, value)


class MemoryKeyValueStore:
    """KeyValueStore holding deep copies of documents in a dict."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def load(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def save(self, key: str, value: Any) -> bool:
        self._data[key] = copy.deepcopy(value)
        return True
