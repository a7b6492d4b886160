"""
Exceptions raised by the Ralph Loop core.

``AlreadyActive`` and ``NoActiveLoop`` are recoverable user errors: the tool
layer turns them into failed ToolResults. ``PersistenceFailure`` is the only
hard failure, since a lost write would desynchronize iteration accounting.
A corrupt state file is not an exception at all; the store reports it as
"no loop".
"""


class RalphLoopError(Exception):
    """Base class for Ralph Loop errors."""


class AlreadyActive(RalphLoopError):
    """Raised by init while a loop is already running in the workspace."""

    def __init__(self, message: str = "Error: A Ralph Loop is already active. Use /cancel-ralph to stop it first."):
        super().__init__(message)


class NoActiveLoop(RalphLoopError):
    """Raised by a mutating operation when no loop is running."""

    def __init__(self, message: str = "Error: No active Ralph Loop. Start one with /ralph-loop."):
        super().__init__(message)


class PersistenceFailure(RalphLoopError):
    """Raised when the state record cannot be written or removed."""
