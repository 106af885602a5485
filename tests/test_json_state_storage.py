"""Tests for the JSON file state storage."""

import asyncio
from pathlib import Path

from dupliverse.adapters.json_state_storage import JsonFileStateStorage
from dupliverse.services.persistence import (
    STATE_KEY,
    InMemoryStateStorage,
    deserialize_state,
    serialize_state,
)
from dupliverse.services.store import ProfileSyncStore


def test_save_load_and_delete(tmp_path: Path) -> None:
    storage = JsonFileStateStorage(tmp_path / "nested" / "state.json")

    storage.save(STATE_KEY, {"session": {"id": "u1", "email": None}, "profile": None})
    storage.save("other", {"kept": True})

    reopened = JsonFileStateStorage(tmp_path / "nested" / "state.json")
    assert reopened.load(STATE_KEY) == {
        "session": {"id": "u1", "email": None},
        "profile": None,
    }

    reopened.delete(STATE_KEY)
    assert reopened.load(STATE_KEY) is None
    assert reopened.load("other") == {"kept": True}


def test_missing_or_corrupt_file_loads_nothing(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    storage = JsonFileStateStorage(path)
    assert storage.load(STATE_KEY) is None

    path.write_text("{not json", encoding="utf-8")
    assert storage.load(STATE_KEY) is None


def test_deserialize_drops_profile_of_other_user(existing_profile, session) -> None:
    payload = serialize_state(session, existing_profile)
    payload["session"] = {"id": "u2", "email": None}

    restored_session, restored_profile = deserialize_state(payload)

    assert restored_session is not None
    assert restored_session.id == "u2"
    assert restored_profile is None


def test_store_survives_restart_with_file_storage(
    tmp_path: Path, repository, session, existing_profile
) -> None:
    repository.rows["u1"] = existing_profile
    path = tmp_path / "state.json"
    store = ProfileSyncStore(repository, JsonFileStateStorage(path))
    store.set_session(session)
    asyncio.run(store.fetch_profile())

    restarted = ProfileSyncStore(repository, JsonFileStateStorage(path))

    assert restarted.restore() is True
    assert restarted.profile == existing_profile


def test_in_memory_storage_returns_copies() -> None:
    storage = InMemoryStateStorage()
    payload: dict[str, object] = {"session": None, "profile": None}
    storage.save(STATE_KEY, payload)

    payload["session"] = {"id": "u1"}
    loaded = storage.load(STATE_KEY)

    assert loaded == {"session": None, "profile": None}
    storage.delete(STATE_KEY)
    storage.delete(STATE_KEY)
    assert storage.load(STATE_KEY) is None


def test_restore_discards_bad_timestamp(tmp_path: Path, repository) -> None:
    storage = JsonFileStateStorage(tmp_path / "state.json")
    storage.save(
        STATE_KEY,
        {
            "session": {"id": "u1", "email": None},
            "profile": {"id": "u1", "created_at": "not-a-date"},
        },
    )
    store = ProfileSyncStore(repository, storage)

    assert store.restore() is False
    assert store.session is None
    assert store.profile is None
    assert JsonFileStateStorage(tmp_path / "state.json").load(STATE_KEY) is None


def test_restore_discards_profile_without_id(tmp_path: Path, repository) -> None:
    storage = JsonFileStateStorage(tmp_path / "state.json")
    storage.save(
        STATE_KEY,
        {"session": {"id": "u1", "email": None}, "profile": {"username": "x"}},
    )
    store = ProfileSyncStore(repository, storage)

    assert store.restore() is False
    assert store.session is None
    assert storage.load(STATE_KEY) is None
