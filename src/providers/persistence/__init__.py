"""Persistence gateway implementations."""

from src.providers.persistence.sqlite_persistence_gateway import SQLitePersistenceGateway

__all__ = ["SQLitePersistenceGateway"]
