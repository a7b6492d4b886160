"""
RALPH_TOOLS
===========

The loop's tool surface (5 tools). They let the agent, or a human, mutate
and observe loop state directly instead of going through message markers.

All tools share one LoopController, so they see the same state file and the
same per-workspace lock as the event handlers.

Tools
-----
- ``ralph-init``     — Start a loop for a task (fails if one is active)
- ``ralph-promise``  — Set or overwrite the completion promise
- ``ralph-complete`` — Report complete=true (ends loop) or false (keep going)
- ``ralph-status``   — Show the current loop, or "No active Ralph Loop."
- ``ralph-cancel``   — Stop the loop and report the iteration reached

Expected errors (AlreadyActive, NoActiveLoop, bad arguments) come back as
``ToolResult(success=False)`` with a descriptive message. Persistence
errors propagate to the registry, which reports them the same way.

Usage::

    registry = ToolRegistry()
    register_ralph_tools(registry, LoopController("/repo"))
    registry.execute("ralph-init", {"task": "Fix failing test suite"})
"""

from .base import BaseTool, ToolDefinition, ToolParameter, ToolRegistry, ToolResult
from ..controller import LoopController
from ..errors import AlreadyActive, NoActiveLoop
from ..guidance import (
    render_cancelled,
    render_completed,
    render_incomplete,
    render_init,
    render_promise_set,
    render_status,
)


class RalphTool(BaseTool):
    """Base for tools bound to a LoopController."""

    def __init__(self, controller: LoopController):
        self.controller = controller


class RalphInitTool(RalphTool):
    """Start a new loop."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="ralph-init",
            description=(
                "Initialize a new Ralph Loop for iterative task completion. "
                "Call this when starting /ralph-loop."
            ),
            parameters=[
                ToolParameter(
                    name="task",
                    type="string",
                    description="The task description to work on",
                    required=True
                ),
                ToolParameter(
                    name="maxIterations",
                    type="integer",
                    description="Maximum iterations before stopping (default: 100, 0 = unlimited)",
                    required=False
                ),
                ToolParameter(
                    name="promise",
                    type="string",
                    description="Optional completion promise to establish right away",
                    required=False
                )
            ]
        )

    def execute(self, task: str, maxIterations: int = None, promise: str = None) -> ToolResult:
        if not isinstance(task, str):
            return ToolResult(success=False, output="", error="Error: task must be a string.")
        if promise is not None and not isinstance(promise, str):
            return ToolResult(success=False, output="", error="Error: promise must be a string.")
        if maxIterations is not None and (isinstance(maxIterations, bool) or not isinstance(maxIterations, int)):
            return ToolResult(success=False, output="", error="Error: maxIterations must be an integer.")
        try:
            state = self.controller.init(task, max_iterations=maxIterations, promise=promise)
        except AlreadyActive as e:
            return ToolResult(success=False, output="", error=str(e))
        except ValueError as e:
            return ToolResult(success=False, output="", error=f"Error: {e}")
        return ToolResult(
            success=True,
            output=render_init(state),
            metadata={"iteration": state.iteration, "maxIterations": state.max_iterations}
        )


class RalphPromiseTool(RalphTool):
    """Set the completion promise."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="ralph-promise",
            description=(
                "Set the completion promise for the active Ralph Loop. "
                "Call this after articulating your promise."
            ),
            parameters=[
                ToolParameter(
                    name="promise",
                    type="string",
                    description=(
                        "The completion promise - a clear, verifiable statement that will be "
                        "TRUE when the task is complete"
                    ),
                    required=True
                )
            ]
        )

    def execute(self, promise: str) -> ToolResult:
        if not isinstance(promise, str):
            return ToolResult(success=False, output="", error="Error: promise must be a string.")
        try:
            self.controller.set_promise(promise)
        except NoActiveLoop as e:
            return ToolResult(success=False, output="", error=str(e))
        return ToolResult(success=True, output=render_promise_set(promise))


class RalphCompleteTool(RalphTool):
    """Report whether the promise is fulfilled."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="ralph-complete",
            description=(
                "Signal whether the Ralph Loop task is complete. "
                "Call this when checking completion."
            ),
            parameters=[
                ToolParameter(
                    name="complete",
                    type="boolean",
                    description="true if the completion promise is genuinely fulfilled, false to continue working",
                    required=True
                ),
                ToolParameter(
                    name="summary",
                    type="string",
                    description="Summary of what was done (required if complete=true)",
                    required=False
                )
            ]
        )

    def execute(self, complete: bool, summary: str = None) -> ToolResult:
        if not isinstance(complete, bool):
            return ToolResult(success=False, output="", error="Error: complete must be true or false.")
        if summary is not None and not isinstance(summary, str):
            return ToolResult(success=False, output="", error="Error: summary must be a string.")
        try:
            report = self.controller.report_completion(complete, summary)
        except NoActiveLoop:
            return ToolResult(success=False, output="", error="Error: No active Ralph Loop.")

        if report.complete:
            return ToolResult(
                success=True,
                output=render_completed(report.state, summary),
                metadata={"complete": True, "iteration": report.state.iteration}
            )
        return ToolResult(
            success=True,
            output=render_incomplete(report.state),
            metadata={"complete": False, "iteration": report.state.iteration}
        )


class RalphStatusTool(RalphTool):
    """Show the current loop."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="ralph-status",
            description="Get the current status of the Ralph Loop",
            parameters=[]
        )

    def execute(self) -> ToolResult:
        state = self.controller.status()
        if state is None:
            return ToolResult(success=True, output="No active Ralph Loop.", metadata={"active": False})
        return ToolResult(success=True, output=render_status(state), metadata=state.to_dict())


class RalphCancelTool(RalphTool):
    """Cancel the current loop."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="ralph-cancel",
            description="Cancel the active Ralph Loop",
            parameters=[]
        )

    def execute(self) -> ToolResult:
        iteration = self.controller.cancel()
        if iteration is None:
            return ToolResult(success=True, output="No active Ralph Loop to cancel.", metadata={"cancelled": False})
        return ToolResult(
            success=True,
            output=render_cancelled(iteration),
            metadata={"cancelled": True, "iteration": iteration}
        )


RALPH_TOOL_CLASSES = (
    RalphInitTool,
    RalphPromiseTool,
    RalphCompleteTool,
    RalphStatusTool,
    RalphCancelTool,
)


def register_ralph_tools(registry: ToolRegistry, controller: LoopController) -> ToolRegistry:
    """Register all five loop tools against one controller."""
    for tool_class in RALPH_TOOL_CLASSES:
        registry.register(tool_class(controller))
    return registry


def build_registry(controller: LoopController) -> ToolRegistry:
    """Create a registry holding only the loop tools."""
    return register_ralph_tools(ToolRegistry(), controller)
