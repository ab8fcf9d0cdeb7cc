"""Database engine utilities.

This module centralizes database connectivity primitives to enforce the db-layer
boundary for all SQLAlchemy usage.
"""

from sqlalchemy import Engine, create_engine


def db_create_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for cache store access.

    SQLite engines are created with `check_same_thread=False` because the HTTP
    surface serves requests from a worker thread pool.

    Args:
        database_url: SQLAlchemy database URL.

    Returns:
        Engine: Configured SQLAlchemy engine.

    Raises:
        ValueError: Raised when the database URL is blank.
    """

    normalized_database_url = database_url.strip()
    if not normalized_database_url:
        raise ValueError("database_url must not be blank")

    if normalized_database_url.startswith("sqlite"):
        return create_engine(normalized_database_url, connect_args={"check_same_thread": False})
    return create_engine(normalized_database_url, pool_pre_ping=True)
