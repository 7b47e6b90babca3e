from conftest import FailingBackend
from estatewatch.models.profile import UserRole
from estatewatch.services.session_store import SessionStore
from estatewatch.services.storage_backends import JsonFileBackend, MemoryBackend, ROLE_KEY, collect_warnings


def test_role_roundtrip():
    store = SessionStore(MemoryBackend())

    assert store.get_role() is None
    store.set_role(UserRole.SECURITY_OPERATIVE)
    assert store.get_role() == UserRole.SECURITY_OPERATIVE

    store.clear_role()
    assert store.get_role() is None


def test_role_persisted_as_display_string():
    backend = MemoryBackend()
    SessionStore(backend).set_role(UserRole.ESTATE_MANAGER)

    assert backend.get(ROLE_KEY) == "Estate Manager"


def test_unknown_persisted_role_reads_as_empty():
    store = SessionStore(MemoryBackend({ROLE_KEY: "Janitor"}))
    assert store.get_role() is None


def test_namespaced_keys_are_independent():
    backend = MemoryBackend()
    first = SessionStore(backend, key=f"{ROLE_KEY}:a")
    second = SessionStore(backend, key=f"{ROLE_KEY}:b")

    first.set_role(UserRole.RESIDENT)
    second.set_role(UserRole.ADMIN)
    first.clear_role()

    assert first.get_role() is None
    assert second.get_role() == UserRole.ADMIN


def test_role_survives_restart_on_json_file(tmp_path):
    path = tmp_path / "state.json"
    SessionStore(JsonFileBackend(path)).set_role(UserRole.RESIDENT)

    assert SessionStore(JsonFileBackend(path)).get_role() == UserRole.RESIDENT


def test_unavailable_storage_degrades_without_raising():
    store = SessionStore(FailingBackend())

    store.set_role(UserRole.ADMIN)

    assert store.degraded
    assert store.get_role() == UserRole.ADMIN
    store.clear_role()
    assert store.get_role() is None

    warnings = store.pop_warnings()
    assert len(warnings) == 1
    assert "set_role" in warnings[0]


def test_degradation_warning_goes_to_the_collecting_context():
    store = SessionStore(FailingBackend())
    other = SessionStore(MemoryBackend())

    with collect_warnings() as collected:
        store.set_role(UserRole.RESIDENT)
        other.set_role(UserRole.ADMIN)

    assert len(collected) == 1
    assert "set_role" in collected[0]
    assert store.pop_warnings() == []

    with collect_warnings() as later:
        store.get_role()
    assert later == []
