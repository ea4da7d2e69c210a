"""FastAPI application factory owning the storage lifecycle."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from school_api.core.config import Settings, get_settings
from school_api.repositories import Storage, create_storage

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(settings: Settings | None = None, storage: Storage | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = storage or create_storage(settings)
        app.state.storage = store
        try:
            await store.initialize()
        except Exception:
            # operations retry the connection lazily
            logger.exception("Storage initialization failed at startup")
        try:
            yield
        finally:
            await store.close()

    app = FastAPI(title="School Management API", lifespan=lifespan)
    return app
