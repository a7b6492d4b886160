"""
LOOP_STATE
==========

Durable storage for the single loop record of a workspace.

Storage
-------
One pretty-printed JSON file per workspace, by default at
``<workspace>/.opencode/ralph-loop.state.json``. A missing file means "no
loop". The store holds no policy: deciding what to write is the
controller's job.

Record Format
-------------
::

    {
      "active": true,
      "iteration": 1,
      "maxIterations": 100,
      "startedAt": "2026-10-18T09:00:00+00:00",
      "originalTask": "Fix failing test suite",
      "completionPromise": null,
      "promiseEstablished": false,
      "lastCheckedAt": null
    }

Failure Modes
-------------
- Unreadable, unparsable or wrong-shaped records load as ``None`` so a
  corrupt file never wedges the workspace (re-init overwrites it).
- Write and delete errors raise ``PersistenceFailure``.

Concurrency
-----------
``lock(workspace)`` returns a per-workspace re-entrant lock. Callers hold it
across load → mutate → save so concurrent events cannot lose an iteration
bump.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".opencode"
DEFAULT_STATE_FILE_NAME = "ralph-loop.state.json"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class LoopState:
    """The persisted state of one loop."""
    active: bool
    iteration: int
    max_iterations: int
    started_at: str
    original_task: str
    completion_promise: Optional[str] = None
    promise_established: bool = False
    last_checked_at: Optional[str] = None

    @property
    def has_promise(self) -> bool:
        """True once the loop should start intercepting idle events."""
        return self.promise_established or bool(self.completion_promise)

    @property
    def budget_exhausted(self) -> bool:
        return self.max_iterations > 0 and self.iteration >= self.max_iterations

    def to_dict(self) -> Dict:
        return {
            "active": self.active,
            "iteration": self.iteration,
            "maxIterations": self.max_iterations,
            "startedAt": self.started_at,
            "originalTask": self.original_task,
            "completionPromise": self.completion_promise,
            "promiseEstablished": self.promise_established,
            "lastCheckedAt": self.last_checked_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "LoopState":
        """
        Build a LoopState from a persisted record.

        Raises:
            ValueError: If a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("state record must be a JSON object")

        def _field(key, types, optional=False):
            if key not in data:
                raise ValueError(f"state record missing '{key}'")
            value = data[key]
            if value is None and optional:
                return None
            # bool is an int subclass; keep counters strictly numeric
            if isinstance(value, bool) and bool not in types:
                raise ValueError(f"state field '{key}' has wrong type")
            if not isinstance(value, types):
                raise ValueError(f"state field '{key}' has wrong type")
            return value

        iteration = _field("iteration", (int,))
        max_iterations = _field("maxIterations", (int,))
        if iteration < 1 or max_iterations < 0:
            raise ValueError("state counters out of range")

        return cls(
            active=_field("active", (bool,)),
            iteration=iteration,
            max_iterations=max_iterations,
            started_at=_field("startedAt", (str,)),
            original_task=_field("originalTask", (str,)),
            completion_promise=_field("completionPromise", (str,), optional=True),
            promise_established=_field("promiseEstablished", (bool,)),
            last_checked_at=_field("lastCheckedAt", (str,), optional=True),
        )


# ============================================================================
# STATE STORE
# ============================================================================

class StateStore:
    """
    File-backed store for LoopState, keyed by workspace directory.

    Usage::

        store = StateStore()
        store.save("/repo", state)
        state = store.load("/repo")   # → LoopState or None
        store.delete("/repo")         # → True if a record existed
    """

    def __init__(self, state_dir: str = DEFAULT_STATE_DIR, state_file_name: str = DEFAULT_STATE_FILE_NAME):
        self.state_dir = state_dir
        self.state_file_name = state_file_name
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, workspace: Union[str, Path]) -> Path:
        """Get the state file path for a workspace."""
        return Path(workspace) / self.state_dir / self.state_file_name

    def lock(self, workspace: Union[str, Path]) -> threading.RLock:
        """Get the mutual-exclusion lock for a workspace."""
        key = str(Path(workspace).resolve())
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def load(self, workspace: Union[str, Path]) -> Optional[LoopState]:
        """
        Load the loop state for a workspace.

        Returns:
            LoopState, or None if there is no record or it is corrupt
        """
        path = self.path_for(workspace)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return LoopState.from_dict(data)
        except (json.JSONDecodeError, OSError, ValueError, RecursionError) as e:
            logger.warning(f"Ignoring unreadable loop state at {path}: {e}")
            return None

    def save(self, workspace: Union[str, Path], state: LoopState) -> None:
        """
        Persist the loop state, creating the state directory if needed.

        Raises:
            PersistenceFailure: If the record cannot be written
        """
        path = self.path_for(workspace)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceFailure(f"Failed to save loop state to {path}: {e}") from e

    def delete(self, workspace: Union[str, Path]) -> bool:
        """
        Remove the loop state record.

        Returns:
            True if a record existed and was removed

        Raises:
            PersistenceFailure: If the record exists but cannot be removed
        """
        path = self.path_for(workspace)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceFailure(f"Failed to delete loop state at {path}: {e}") from e
        return True
