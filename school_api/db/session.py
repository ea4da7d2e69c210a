"""Connection helpers for the MongoDB backend."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from school_api.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


class ConnectionNotReadyError(RuntimeError):
    """Raised when a collection is requested before the database is bound."""


class MongoConnection:
    """Lazily established, reused connection to one MongoDB database."""

    def __init__(self, url: str, database: str, client_factory: Optional[ClientFactory] = None) -> None:
        self.url = url
        self.database_name = database
        self._client_factory = client_factory or AsyncIOMotorClient
        self._client = None
        self._db = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    async def ensure_connection(self) -> None:
        """Connect and bind the database once; later calls are no-ops."""
        if self.is_connected:
            return
        async with self._lock:
            if self.is_connected:
                return
            client = self._client_factory(self.url, tz_aware=True)
            try:
                db = client[self.database_name]
                await db.command("ping")
            except Exception:
                logger.exception("MongoDB connection error")
                client.close()
                raise
            self._client = client
            self._db = db
            logger.info("Connected to MongoDB database %s", self.database_name)

    def get_collection(self, name: str):
        if self._db is None:
            raise ConnectionNotReadyError("Database not connected")
        return self._db[name]

    async def disconnect(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._db = None
        logger.info("Disconnected from MongoDB")


def connection_from_settings(settings: Settings | None = None, client_factory: Optional[ClientFactory] = None) -> MongoConnection:
    settings = settings or get_settings()
    url = (settings.mongodb_url or "").strip()
    if not url:
        raise RuntimeError("MONGODB_URL must be configured to use the MongoDB backend.")
    return MongoConnection(url, settings.mongodb_database, client_factory=client_factory)
