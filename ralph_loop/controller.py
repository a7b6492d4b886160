"""
LOOP_CONTROLLER
===============

The iteration state machine. Decides, for each lifecycle event, whether to
end the loop, intercept the idle moment with injected guidance, or pass the
event through untouched.

States
------
::

    NoLoop ──init──▶ AwaitingPromise ──promise──▶ Iterating
      ▲                    │                         │
      └──── cancel / complete=true / budget spent ───┘

- ``NoLoop``: no record on disk.
- ``AwaitingPromise``: active, no promise yet. Idle events pass through so
  the agent can articulate what "done" means without being interrupted.
- ``Iterating``: active with a promise. Each idle event bumps the iteration
  counter and returns the completion check to inject.

Promise text alone is enough to start intercepting, even if
``promiseEstablished`` was never set, since the two can fall out of sync
through direct tool calls.

Idle Event Order
----------------
1. No loop → pass through.
2. Budget spent (``maxIterations > 0`` and ``iteration >= maxIterations``)
   → delete the record, pass through. The loop ends silently.
3. No promise → pass through.
4. Otherwise → ``iteration += 1``, stamp ``lastCheckedAt``, save, inject.

Message events never touch the iteration counter.

Every load → mutate → save runs under the store's per-workspace lock.

Usage::

    controller = LoopController(workspace="/repo")
    controller.init("Fix failing test suite", max_iterations=2)
    controller.set_promise("all tests pass")
    inject = controller.on_idle()   # → guidance text, or None to pass through
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from .config import RalphConfig
from .errors import AlreadyActive, NoActiveLoop
from .guidance import render_completion_check
from .signals import extract_text, parse_signals
from .state import LoopState, StateStore, utc_now

logger = logging.getLogger(__name__)

SERVICE_NAME = "ralph-loop"

IDLE_EVENT = "session.idle"
MESSAGE_EVENT = "message.updated"


def _log(message: str, level: int = logging.INFO) -> None:
    logger.log(level, message, extra={"service": SERVICE_NAME})


@dataclass
class MessageOutcome:
    """What a message event did to the loop."""
    promise_established: Optional[str] = None
    complete: Optional[bool] = None
    loop_ended: bool = False

    def to_dict(self) -> Dict:
        return {
            "promise_established": self.promise_established,
            "complete": self.complete,
            "loop_ended": self.loop_ended,
        }


@dataclass
class CompletionReport:
    """Result of report_completion."""
    complete: bool
    state: LoopState
    summary: Optional[str] = None


class LoopController:
    """
    State machine for one workspace.

    The store is passed in (or built from config) rather than shared
    globally, so its lifetime matches the workspace's.
    """

    def __init__(
        self,
        workspace: Union[str, Path],
        store: Optional[StateStore] = None,
        config: Optional[RalphConfig] = None,
    ):
        """
        Args:
            workspace: Directory the loop belongs to.
            store: StateStore to use (built from config if None).
            config: RalphConfig (defaults if None).
        """
        self.workspace = Path(workspace)
        self.config = config or RalphConfig()
        self.store = store or StateStore(
            state_dir=self.config.state_dir,
            state_file_name=self.config.state_file_name,
        )

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _lock(self):
        return self.store.lock(self.workspace)

    def _load_active(self) -> Optional[LoopState]:
        state = self.store.load(self.workspace)
        if state is None or not state.active:
            return None
        return state

    def _require_active(self) -> LoopState:
        state = self._load_active()
        if state is None:
            raise NoActiveLoop()
        return state

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def init(self, task: str, max_iterations: Optional[int] = None, promise: Optional[str] = None) -> LoopState:
        """
        Start a new loop.

        Args:
            task: The user's request, stored verbatim.
            max_iterations: Budget (None = config default, 0 = unlimited).
            promise: Optional completion promise to establish immediately.

        Raises:
            AlreadyActive: If a loop is already running.
            ValueError: If max_iterations is negative.
        """
        if max_iterations is None:
            max_iterations = self.config.default_max_iterations
        if max_iterations < 0:
            raise ValueError("max_iterations must be >= 0 (0 = unlimited)")

        with self._lock():
            if self._load_active() is not None:
                raise AlreadyActive()

            state = LoopState(
                active=True,
                iteration=1,
                max_iterations=max_iterations,
                started_at=utc_now(),
                original_task=task,
                completion_promise=promise,
                promise_established=promise is not None,
                last_checked_at=None,
            )
            self.store.save(self.workspace, state)

        budget = max_iterations if max_iterations > 0 else "unlimited"
        _log(f"Ralph loop started (max iterations: {budget}): {task}")
        if promise is not None:
            _log(f"Completion promise established: {promise}")
        return state

    def set_promise(self, promise: str) -> LoopState:
        """
        Record (or overwrite) the completion promise.

        Raises:
            NoActiveLoop: If no loop is running.
        """
        with self._lock():
            state = self._require_active()
            state.completion_promise = promise
            state.promise_established = True
            self.store.save(self.workspace, state)

        _log(f"Completion promise established: {promise}")
        return state

    def report_completion(self, complete: bool, summary: Optional[str] = None) -> CompletionReport:
        """
        Record the agent's completion judgment.

        complete=True ends the loop. complete=False leaves it untouched.

        Raises:
            NoActiveLoop: If no loop is running.
        """
        with self._lock():
            state = self._require_active()
            if complete:
                self.store.delete(self.workspace)

        if complete:
            _log(f"Task completed after {state.iteration} iterations")
        else:
            _log(f"Task incomplete - continuing iteration {state.iteration}")
        return CompletionReport(complete=complete, state=state, summary=summary)

    def status(self) -> Optional[LoopState]:
        """Read-only snapshot of the current loop, or None."""
        return self.store.load(self.workspace)

    def cancel(self) -> Optional[int]:
        """
        Stop the current loop.

        Returns:
            The iteration at cancellation, or None if nothing was active
        """
        with self._lock():
            state = self._load_active()
            if state is None:
                return None
            self.store.delete(self.workspace)

        _log(f"Ralph loop cancelled at iteration {state.iteration}")
        return state.iteration

    # ========================================================================
    # EVENTS
    # ========================================================================

    def on_idle(self) -> Optional[str]:
        """
        Handle the agent going idle.

        Returns:
            Guidance text to inject as the agent's next input, or None to
            let the host prompt the user as usual
        """
        with self._lock():
            state = self._load_active()
            if state is None:
                return None

            if state.budget_exhausted:
                _log(f"Max iterations ({state.max_iterations}) reached. Stopping loop.")
                self.store.delete(self.workspace)
                return None

            if not state.has_promise:
                return None

            state.iteration += 1
            state.last_checked_at = utc_now()
            self.store.save(self.workspace, state)

        _log(f"Ralph loop iteration {state.iteration} - checking completion")
        return render_completion_check(state)

    def on_message(self, parts: Optional[Iterable[Any]]) -> MessageOutcome:
        """
        Scan an agent message for promise and completion markers.

        The promise is recorded before the completion marker is acted on, so
        a message may establish its promise and complete in one go.
        """
        outcome = MessageOutcome()
        text = extract_text(parts)
        if not text:
            return outcome

        with self._lock():
            state = self._load_active()
            if state is None:
                return outcome

            signals = parse_signals(text)

            if signals.promise is not None and not state.promise_established:
                state.completion_promise = signals.promise
                state.promise_established = True
                self.store.save(self.workspace, state)
                outcome.promise_established = signals.promise
                _log(f"Completion promise established: {signals.promise}")

            if signals.complete is not None:
                outcome.complete = signals.complete
                if signals.complete:
                    self.store.delete(self.workspace)
                    outcome.loop_ended = True
                    _log(f"Task completed after {state.iteration} iterations")
                else:
                    _log(f"Task incomplete - continuing iteration {state.iteration}")

        return outcome

    def handle_event(self, event: Dict) -> Optional[str]:
        """
        Dispatch a host event by type.

        ``session.idle`` may return text to inject. ``message.updated`` reads
        parts from ``event["message"]["parts"]`` or ``event["parts"]``.
        Other event types are ignored.
        """
        event_type = event.get("type")
        if event_type == IDLE_EVENT:
            return self.on_idle()
        if event_type == MESSAGE_EVENT:
            message = event.get("message") or {}
            parts = message.get("parts") if isinstance(message, dict) else None
            if parts is None:
                parts = event.get("parts")
            self.on_message(parts)
        return None
