"""Database layer package for cache persistence boundaries."""

from .cache_store import InMemoryCacheStore, SQLAlchemyCacheStore
from .health import SQLAlchemyDatabaseHealthService
from .interfaces import CacheStorePort, DatabaseHealthPort
from .session import db_create_engine

__all__ = [
	"CacheStorePort",
	"DatabaseHealthPort",
	"InMemoryCacheStore",
	"SQLAlchemyCacheStore",
	"SQLAlchemyDatabaseHealthService",
	"db_create_engine",
]
