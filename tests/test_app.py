"""
Tests for backend selection and the application lifespan.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

# Garante que o pacote school_api seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from school_api.app import create_app  # noqa: E402
from school_api.core import config as core_config  # noqa: E402
from school_api.dependencies import get_storage  # noqa: E402
from school_api.repositories import MemoryStorage, MongoStorage, Storage, StoreState, create_storage  # noqa: E402


@pytest.fixture()
def env(tmp_path, monkeypatch):
    """Isola variáveis de ambiente e o cache de settings."""
    for name in ("STORAGE_BACKEND", "MONGODB_URL", "MONGODB_DATABASE", "MONGODB_ID_STRATEGY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STUDENTS_BACKUP_FILE", str(tmp_path / "students-backup.json"))
    core_config.get_settings.cache_clear()
    yield monkeypatch
    core_config.get_settings.cache_clear()


def test_defaults_to_memory_without_mongodb_url(env):
    settings = core_config.get_settings()
    assert settings.storage_backend == "memory"
    assert settings.mongodb_database == "school_management"
    assert isinstance(create_storage(), MemoryStorage)


def test_mongodb_url_selects_mongo(env):
    env.setenv("MONGODB_URL", "mongodb://localhost:27017")
    env.setenv("MONGODB_ID_STRATEGY", "max")
    store = create_storage(client_factory=lambda *a, **kw: AsyncMongoMockClient(**kw))
    assert isinstance(store, MongoStorage)
    assert store.id_strategy == "max"


def test_explicit_memory_backend_wins(env):
    env.setenv("MONGODB_URL", "mongodb://localhost:27017")
    env.setenv("STORAGE_BACKEND", "memory")
    assert isinstance(create_storage(), MemoryStorage)


def test_mongo_backend_without_url_fails(env):
    env.setenv("STORAGE_BACKEND", "mongo")
    with pytest.raises(RuntimeError):
        create_storage()


def test_unknown_values_fall_back_to_defaults(env):
    env.setenv("STORAGE_BACKEND", "redis")
    env.setenv("MONGODB_ID_STRATEGY", "random")
    settings = core_config.get_settings()
    assert settings.storage_backend == "memory"
    assert settings.mongodb_id_strategy == "count"


def test_lifespan_initializes_and_exposes_storage(env, tmp_path):
    app = create_app()

    @app.get("/students/count")
    async def count_students(storage: Storage = Depends(get_storage)):
        return {"count": len(await storage.get_students()), "state": storage.state.value}

    with TestClient(app) as client:
        assert isinstance(app.state.storage, MemoryStorage)
        assert app.state.storage.state is StoreState.READY
        response = client.get("/students/count")

    assert response.status_code == 200
    assert response.json() == {"count": 0, "state": "ready"}


def test_lifespan_closes_injected_storage(env, tmp_path):
    closed = []

    class TrackingStorage(MemoryStorage):
        async def close(self) -> None:
            closed.append(True)

    store = TrackingStorage(tmp_path / "students.json")
    with TestClient(create_app(storage=store)):
        pass
    assert closed == [True]


def test_startup_connection_failure_is_not_fatal(env, tmp_path):
    class _Down:
        def __getitem__(self, name):
            return self

        async def command(self, name):
            raise ConnectionError("down")

        def close(self):
            pass

    env.setenv("MONGODB_URL", "mongodb://db.invalid:27017")
    store = create_storage(client_factory=lambda *a, **kw: _Down())

    with TestClient(create_app(storage=store)):
        assert store.state is StoreState.READY
        assert not store.connection.is_connected
