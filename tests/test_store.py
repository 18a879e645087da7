import json

import pytest

from helpers import make_scenes
from trendfactory.errors import CorruptStateError, InvalidStateError
from trendfactory.models import ProjectState, Stage
from trendfactory.orchestrator import STATE_FILE, StateStore


def test_load_creates_initial_state(store):
    assert not store.exists()
    state = store.load()
    assert store.exists()
    assert store.path.name == STATE_FILE
    assert state.stage == Stage.INIT


def test_load_is_idempotent(store):
    first = store.load()
    content = store.path.read_bytes()
    second = store.load()
    assert second == first
    assert store.path.read_bytes() == content


def test_save_load_round_trip_modulo_updated_at(store):
    state = ProjectState.initial(seed=11).model_copy(
        update={"stage": Stage.SCRIPTED, "scenes": make_scenes(5), "error": "boom"}
    )
    saved = store.save(state)
    loaded = store.load()

    assert loaded == saved
    assert loaded.model_dump(exclude={"updated_at"}) == state.model_dump(exclude={"updated_at"})
    assert saved.updated_at >= state.updated_at


def test_file_is_camel_case_json(store):
    store.save(ProjectState.initial(seed=3))
    data = json.loads(store.path.read_text())
    assert data["seed"] == 3
    assert "projectId" in data
    assert "regenerationCount" in data
    assert "project_id" not in data


def test_load_rejects_non_json(store):
    store.path.write_text("{not json")
    with pytest.raises(CorruptStateError, match="not valid JSON"):
        store.load()


def test_load_rejects_invalid_utf8(store):
    store.path.write_bytes(b'{"projectId": "\xff\xfe"}')
    with pytest.raises(CorruptStateError, match="unreadable"):
        store.load()


def test_load_rejects_unreadable_path(store):
    store.path.mkdir()
    with pytest.raises(CorruptStateError, match="unreadable"):
        store.load()


def test_load_rejects_schema_invalid_file(store):
    data = ProjectState.initial(seed=3).to_json_dict()
    data["stage"] = "PUBLISHED"
    store.path.write_text(json.dumps(data))

    with pytest.raises(CorruptStateError) as exc_info:
        store.load()

    assert any(path == "stage" for path, _ in exc_info.value.field_errors)
    assert exc_info.value.payload["stage"] == "PUBLISHED"


def test_save_refuses_invalid_state_and_keeps_file(store):
    store.load()
    before = store.path.read_bytes()
    invalid = store.load().model_copy(update={"scenes": make_scenes(3)})

    with pytest.raises(InvalidStateError):
        store.save(invalid)

    assert store.path.read_bytes() == before


def test_reset_starts_a_new_project(store):
    old = store.save(ProjectState.initial(seed=1).model_copy(update={"stage": Stage.SCRIPTED}))
    new = store.reset(seed=99)

    assert new.run_id != old.run_id
    assert new.seed == 99
    assert new.stage == Stage.INIT
    assert store.load() == new


def test_store_creates_missing_directory(tmp_path):
    store = StateStore(tmp_path / "nested" / "workspace")
    store.load()
    assert (tmp_path / "nested" / "workspace" / STATE_FILE).exists()


def test_no_temp_files_left_behind(store):
    store.load()
    store.reset(seed=5)
    leftovers = [p for p in store.path.parent.iterdir() if p.name != STATE_FILE]
    assert leftovers == []
