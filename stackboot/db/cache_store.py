"""Key-value cache store backed by SQLAlchemy.

Values are JSON documents. Non-persisted values stay in a process-local tier
that shadows the table for the lifetime of the process. Persisted writes go
straight to the table and clear the process tier, so every read of a
persisted key sees writes made by other processes.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from .interfaces import CacheStorePort


def _db_validate_cache_key(key: str) -> str:
    normalized_key = key.strip()
    if not normalized_key:
        raise ValueError("cache key must not be blank")
    return normalized_key


class InMemoryCacheStore(CacheStorePort):
    """Process-local cache store used by tests and dry runs.

    Persisted and non-persisted values share one dict; `persisted_keys`
    records which keys would have survived a restart.
    """

    def __init__(self, initial_values: dict[str, Any] | None = None):
        self._values: dict[str, str] = {}
        self.persisted_keys: set[str] = set()
        self._lock = threading.Lock()
        for key, value in (initial_values or {}).items():
            self.cache_set(key, value, persist=True)

    def cache_get(self, key: str) -> Any | None:
        normalized_key = _db_validate_cache_key(key)
        with self._lock:
            serialized_value = self._values.get(normalized_key)
        if serialized_value is None:
            return None
        return json.loads(serialized_value)

    def cache_set(self, key: str, value: Any, persist: bool = False) -> None:
        normalized_key = _db_validate_cache_key(key)
        serialized_value = json.dumps(value)
        with self._lock:
            self._values[normalized_key] = serialized_value
            if persist:
                self.persisted_keys.add(normalized_key)

    def cache_remove(self, key: str) -> None:
        normalized_key = _db_validate_cache_key(key)
        with self._lock:
            self._values.pop(normalized_key, None)
            self.persisted_keys.discard(normalized_key)


class SQLAlchemyCacheStore(CacheStorePort):
    """Cache store persisting values to the `cache_entry` table."""

    def __init__(self, engine: Engine):
        """Initialize cache store.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.

        Returns:
            None: This initializer does not return a value.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine
        self._process_values: dict[str, str] = {}
        self._lock = threading.Lock()

    def cache_get(self, key: str) -> Any | None:
        """Return the cached value, preferring the process-local tier.

        Args:
            key: Cache key.

        Returns:
            Any | None: Decoded JSON value, or None when absent.

        Raises:
            ValueError: Raised when the key is blank.
            RuntimeError: Raised when the database read fails.
        """

        normalized_key = _db_validate_cache_key(key)
        with self._lock:
            serialized_value = self._process_values.get(normalized_key)
        if serialized_value is not None:
            return json.loads(serialized_value)

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text("SELECT cache_value FROM cache_entry WHERE cache_key = :cache_key"),
                    {"cache_key": normalized_key},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError(f"failed to read cache key={normalized_key}") from error

        if row is None:
            return None
        try:
            return json.loads(row["cache_value"])
        except json.JSONDecodeError as error:
            raise RuntimeError(f"cache key={normalized_key} holds invalid JSON") from error

    def cache_set(self, key: str, value: Any, persist: bool = False) -> None:
        """Store one value in the process tier, or upsert it into the table.

        Args:
            key: Cache key.
            value: JSON-compatible value.
            persist: Whether to upsert the value into `cache_entry` instead.

        Returns:
            None: Stores value as side effect.

        Raises:
            ValueError: Raised when the key is blank or the value is not JSON-compatible.
            RuntimeError: Raised when the database write fails.
        """

        normalized_key = _db_validate_cache_key(key)
        try:
            serialized_value = json.dumps(value)
        except TypeError as error:
            raise ValueError(f"cache value for key={normalized_key} is not JSON-compatible") from error

        if persist:
            try:
                with self._engine.begin() as connection:
                    connection.execute(
                        text(
                            "INSERT INTO cache_entry (cache_key, cache_value, updated_at_utc) "
                            "VALUES (:cache_key, :cache_value, :updated_at_utc) "
                            "ON CONFLICT (cache_key) DO UPDATE SET "
                            "cache_value = excluded.cache_value, "
                            "updated_at_utc = excluded.updated_at_utc"
                        ),
                        {
                            "cache_key": normalized_key,
                            "cache_value": serialized_value,
                            "updated_at_utc": datetime.now(timezone.utc).isoformat(),
                        },
                    )
            except SQLAlchemyError as error:
                raise RuntimeError(f"failed to persist cache key={normalized_key}") from error
            with self._lock:
                self._process_values.pop(normalized_key, None)
            return

        with self._lock:
            self._process_values[normalized_key] = serialized_value

    def cache_remove(self, key: str) -> None:
        """Remove one key from the process tier and the `cache_entry` table.

        Args:
            key: Cache key.

        Returns:
            None: Removes value as side effect.

        Raises:
            ValueError: Raised when the key is blank.
            RuntimeError: Raised when the database write fails.
        """

        normalized_key = _db_validate_cache_key(key)
        with self._lock:
            self._process_values.pop(normalized_key, None)
        try:
            with self._engine.begin() as connection:
                connection.execute(
                    text("DELETE FROM cache_entry WHERE cache_key = :cache_key"),
                    {"cache_key": normalized_key},
                )
        except SQLAlchemyError as error:
            raise RuntimeError(f"failed to remove cache key={normalized_key}") from error
