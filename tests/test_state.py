from __future__ import annotations

import json
from pathlib import Path

import pytest

from ralph_loop.errors import PersistenceFailure
from ralph_loop.state import LoopState, StateStore


def _make_state(**overrides) -> LoopState:
    values = {
        "active": True,
        "iteration": 3,
        "max_iterations": 10,
        "started_at": "2026-10-18T09:00:00+00:00",
        "original_task": "Fix failing test suite",
        "completion_promise": "all tests pass",
        "promise_established": True,
        "last_checked_at": "2026-10-18T09:05:00+00:00",
    }
    values.update(overrides)
    return LoopState(**values)


def test_load_missing_record_returns_none(workspace: Path, store: StateStore) -> None:
    assert store.load(workspace) is None


@pytest.mark.parametrize(
    "state",
    [
        _make_state(),
        _make_state(completion_promise=None, promise_established=False, last_checked_at=None, iteration=1),
        _make_state(max_iterations=0, completion_promise="", promise_established=True),
    ],
)
def test_save_then_load_round_trips_all_fields(workspace: Path, store: StateStore, state: LoopState) -> None:
    store.save(workspace, state)

    assert store.load(workspace) == state


def test_save_creates_hidden_state_directory(workspace: Path, store: StateStore) -> None:
    store.save(workspace, _make_state())

    path = workspace / ".opencode" / "ralph-loop.state.json"
    assert path.exists()
    assert not path.with_name(path.name + ".tmp").exists()


def test_persisted_record_uses_exact_field_names(workspace: Path, store: StateStore) -> None:
    store.save(workspace, _make_state())

    payload = json.loads(store.path_for(workspace).read_text(encoding="utf-8"))
    assert set(payload) == {
        "active",
        "iteration",
        "maxIterations",
        "startedAt",
        "originalTask",
        "completionPromise",
        "promiseEstablished",
        "lastCheckedAt",
    }
    assert payload["maxIterations"] == 10
    assert payload["completionPromise"] == "all tests pass"


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        '{"active": true}',
        '{"active": true, "iteration": "3", "maxIterations": 10, "startedAt": "x", '
        '"originalTask": "t", "completionPromise": null, "promiseEstablished": false, "lastCheckedAt": null}',
        '{"active": true, "iteration": 0, "maxIterations": 10, "startedAt": "x", '
        '"originalTask": "t", "completionPromise": null, "promiseEstablished": false, "lastCheckedAt": null}',
        pytest.param("[" * 200000, id="deeply-nested"),
    ],
)
def test_corrupt_record_loads_as_absent(workspace: Path, store: StateStore, content: str) -> None:
    path = store.path_for(workspace)
    path.parent.mkdir(parents=True)
    path.write_text(content, encoding="utf-8")

    assert store.load(workspace) is None


def test_delete_reports_whether_record_existed(workspace: Path, store: StateStore) -> None:
    assert store.delete(workspace) is False

    store.save(workspace, _make_state())

    assert store.delete(workspace) is True
    assert store.load(workspace) is None
    assert not store.path_for(workspace).exists()


def test_save_failure_raises_persistence_failure(workspace: Path, store: StateStore) -> None:
    (workspace / ".opencode").write_text("a file, not a directory", encoding="utf-8")

    with pytest.raises(PersistenceFailure):
        store.save(workspace, _make_state())


def test_custom_state_location(workspace: Path) -> None:
    store = StateStore(state_dir=".ralph", state_file_name="loop.json")
    store.save(workspace, _make_state())

    assert (workspace / ".ralph" / "loop.json").exists()


def test_lock_is_shared_per_workspace(workspace: Path, tmp_path: Path, store: StateStore) -> None:
    other = tmp_path / "other"
    other.mkdir()

    assert store.lock(workspace) is store.lock(str(workspace))
    assert store.lock(workspace) is not store.lock(other)


def test_has_promise_accepts_text_without_flag() -> None:
    assert _make_state(promise_established=False, completion_promise="x").has_promise
    assert _make_state(promise_established=True, completion_promise="").has_promise
    assert not _make_state(promise_established=False, completion_promise=None).has_promise
