"""FastAPI dependencies shared by route modules."""
from __future__ import annotations

from fastapi import Request

from school_api.repositories import Storage


def get_storage(request: Request) -> Storage:
    """Return the store created by the application lifespan."""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise RuntimeError("Storage is not initialized; create the app with create_app().")
    return storage
