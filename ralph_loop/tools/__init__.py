"""
Tool surface for the Ralph Loop controller.

Available Tools (5 total)
-------------------------
**Loop Control** (ralph_tools.py):
  - ``ralph-init``     — Start a loop for a task
  - ``ralph-promise``  — Set the completion promise
  - ``ralph-complete`` — Report completion (true ends the loop)
  - ``ralph-status``   — Show current loop state
  - ``ralph-cancel``   — Cancel the loop
"""

from .base import BaseTool, ToolDefinition, ToolParameter, ToolRegistry, ToolResult
from .ralph_tools import (
    RALPH_TOOL_CLASSES,
    RalphCancelTool,
    RalphCompleteTool,
    RalphInitTool,
    RalphPromiseTool,
    RalphStatusTool,
    build_registry,
    register_ralph_tools,
)

__all__ = [
    "BaseTool",
    "ToolDefinition",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "RALPH_TOOL_CLASSES",
    "RalphCancelTool",
    "RalphCompleteTool",
    "RalphInitTool",
    "RalphPromiseTool",
    "RalphStatusTool",
    "build_registry",
    "register_ralph_tools",
]
