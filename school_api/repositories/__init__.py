"""
Persistence adapters.

Callers depend on the ``Storage`` interface and receive a concrete store
from ``create_storage``: the in-memory store (JSON backup for students) or
the MongoDB store, picked from settings.
"""

from __future__ import annotations

from school_api.core.config import Settings, get_settings
from school_api.db.session import ClientFactory, connection_from_settings
from school_api.repositories.base import Storage, StoreState
from school_api.repositories.json_storage import LoadResult, LoadStatus, StudentBackup
from school_api.repositories.memory_repository import MemoryStorage
from school_api.repositories.mongo_repository import ErrorCallback, MongoStorage


def create_storage(
    settings: Settings | None = None,
    *,
    client_factory: ClientFactory | None = None,
    on_error: ErrorCallback | None = None,
) -> Storage:
    """Build the store selected by ``STORAGE_BACKEND`` (not initialized yet)."""
    settings = settings or get_settings()
    if settings.storage_backend == "mongo":
        connection = connection_from_settings(settings, client_factory=client_factory)
        return MongoStorage(connection, id_strategy=settings.mongodb_id_strategy, on_error=on_error)
    return MemoryStorage(StudentBackup(settings.students_backup_file))


__all__ = [
    "LoadResult",
    "LoadStatus",
    "MemoryStorage",
    "MongoStorage",
    "Storage",
    "StoreState",
    "StudentBackup",
    "create_storage",
]
