import json
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from estatewatch.database import init_db
from estatewatch.errors import StorageUnavailable
from estatewatch.services.storage_backends import (
    DatabaseBackend, JsonFileBackend, MemoryBackend, create_backend
)


def _sqlite_session_factory(url):
    engine = create_engine(url, connect_args={"check_same_thread": False})
    init_db(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def test_memory_backend_copies_values():
    backend = MemoryBackend()
    value = {"items": [1, 2]}
    backend.set("k", value)

    value["items"].append(3)
    loaded = backend.get("k")
    loaded["items"].append(4)

    assert backend.get("k") == {"items": [1, 2]}


def test_memory_backend_rejects_unserializable():
    with pytest.raises(StorageUnavailable):
        MemoryBackend().set("k", object())


def test_json_file_backend_roundtrip(tmp_path):
    path = tmp_path / "nested" / "state.json"
    backend = JsonFileBackend(path)

    assert backend.get("missing") is None
    backend.set("a", [1, 2])
    backend.set("b", "two")
    backend.clear("a")
    backend.clear("never-set")

    assert json.loads(path.read_text()) == {"b": "two"}
    assert JsonFileBackend(path).get("b") == "two"
    assert list(path.parent.glob("*.tmp")) == []


def test_json_file_backend_corrupt_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")

    with pytest.raises(StorageUnavailable):
        JsonFileBackend(path).get("a")


def test_json_file_backend_unwritable_location(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")

    with pytest.raises(StorageUnavailable):
        JsonFileBackend(blocker / "state.json").set("a", 1)


def test_database_backend_roundtrip(tmp_path):
    backend = DatabaseBackend(_sqlite_session_factory(f"sqlite:///{tmp_path / 'state.db'}"))

    assert backend.get("k") is None
    backend.set("k", {"role": "Resident"})
    backend.set("k", {"role": "Admin"})
    assert backend.get("k") == {"role": "Admin"}

    backend.clear("k")
    assert backend.get("k") is None


def test_database_backend_unavailable(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing-dir' / 'state.db'}")
    backend = DatabaseBackend(sessionmaker(bind=engine))

    with pytest.raises(StorageUnavailable):
        backend.get("k")


def test_create_backend_by_name(tmp_path):
    memory = create_backend(SimpleNamespace(STORAGE_BACKEND="memory", STORAGE_PATH=""))
    json_file = create_backend(SimpleNamespace(STORAGE_BACKEND="JSON", STORAGE_PATH=str(tmp_path / "s.json")))

    assert isinstance(memory, MemoryBackend)
    assert isinstance(json_file, JsonFileBackend)

    with pytest.raises(ValueError):
        create_backend(SimpleNamespace(STORAGE_BACKEND="redis", STORAGE_PATH=""))
