"""Database helpers (record models, MongoDB connection export)."""

from .session import ConnectionNotReadyError, MongoConnection, connection_from_settings

__all__ = ["ConnectionNotReadyError", "MongoConnection", "connection_from_settings"]
