"""Typed interfaces for database-layer services.

All SQL access must remain in the db package and its submodules.
"""

from typing import Any, Protocol

from stackboot.domain import HealthStatus


class DatabaseHealthPort(Protocol):
    """Port definition for cache store connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.

        Raises:
            RuntimeError: Raised when connection metadata is unavailable.
        """

    def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


class CacheStorePort(Protocol):
    """Port definition for the persistent key-value cache.

    Keys in use:
        `<component>.tokens`: merged machine token records.
        `<app>.meta.cache`: latest credential metadata for one stack.
        `<app>.<appserver>.open.cache`: last computed OPEN payload.
        `<app>.runconfig.lock`: first-start marker for run config writes.
        `<app>.lifecycle.last`: diagnostics timeline of the last lifecycle run.
    """

    def cache_get(self, key: str) -> Any | None:
        """Return the cached value for `key`.

        Args:
            key: Cache key.

        Returns:
            Any | None: JSON-compatible value, or None when absent.

        Raises:
            RuntimeError: Raised when the backing store cannot be read.
        """

    def cache_set(self, key: str, value: Any, persist: bool = False) -> None:
        """Store `value` under `key`.

        Args:
            key: Cache key.
            value: JSON-compatible value.
            persist: When True the value survives process restarts; otherwise
                it lives only for the current process.

        Returns:
            None: Stores value as side effect.

        Raises:
            RuntimeError: Raised when the backing store cannot be written.
        """

    def cache_remove(self, key: str) -> None:
        """Remove `key` from both the process and persistent tiers.

        Args:
            key: Cache key.

        Returns:
            None: Removes value as side effect.

        Raises:
            RuntimeError: Raised when the backing store cannot be written.
        """
