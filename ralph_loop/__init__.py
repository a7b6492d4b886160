"""
RALPH_LOOP
==========

Self-driving iteration controller for autonomous coding agents.

Keeps an agent working on a task across many turns: whenever the agent goes
idle and would hand control back to the user, the controller injects a
completion check instead. The loop ends only when the agent certifies its
own completion promise, when the iteration budget runs out, or on cancel.

Features:
- File-backed loop state per workspace (survives restarts)
- Promise/completion markers scanned from agent output
- Five-tool surface for direct state changes
- FastAPI hook server and CLI front-ends

Usage:
    from ralph_loop import LoopController

    controller = LoopController("/path/to/repo")
    controller.init("Fix failing test suite", max_iterations=10)
    controller.set_promise("all tests pass")

    inject = controller.on_idle()        # guidance text, or None
    controller.on_message(message_parts)  # scans for markers
"""

__version__ = "1.0.0"

from .config import RalphConfig, load_config
from .controller import LoopController, MessageOutcome, CompletionReport
from .errors import AlreadyActive, NoActiveLoop, PersistenceFailure, RalphLoopError
from .guidance import render_completion_check
from .signals import Signals, extract_text, parse_signals
from .state import LoopState, StateStore
from .tools import ToolRegistry, ToolResult, build_registry, register_ralph_tools

__all__ = [
    "__version__",
    "RalphConfig",
    "load_config",
    "LoopController",
    "MessageOutcome",
    "CompletionReport",
    "AlreadyActive",
    "NoActiveLoop",
    "PersistenceFailure",
    "RalphLoopError",
    "render_completion_check",
    "Signals",
    "extract_text",
    "parse_signals",
    "LoopState",
    "StateStore",
    "ToolRegistry",
    "ToolResult",
    "build_registry",
    "register_ralph_tools",
]
