"""
TOOL_BASE
=========

Base classes and registry for the Ralph Loop tool surface.

Tools are the operations the agent (or a human through the CLI or hook
server) calls to mutate and observe loop state directly. Each tool defines
its schema (so the host can advertise it to the model) and an execute
method.

Architecture
------------
::

    BaseTool (abstract)
    ├── definition property → ToolDefinition (name, description, parameters)
    └── execute(**kwargs)   → ToolResult (success, output, error, metadata)

    ToolRegistry
    ├── register(tool)        — Add tool to registry
    ├── execute(name, params) — Run tool with timeout (default 30s)
    ├── get_schemas()         — OpenAI function-calling format
    └── get_schemas("anthropic") — Anthropic tool-use format

Safety
------
- **Timeout**: Default 30s per tool execution via ThreadPoolExecutor.
- **Output limiting**: Max 100KB per tool output (truncated with notice).
- **Error isolation**: All exceptions are returned as ToolResult with
  success=False, so a failing tool never takes the host down.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Dict, List, Optional


# ============================================================================
# TOOL DEFINITION STRUCTURES
# ============================================================================

@dataclass
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: str  # "string", "integer", "boolean"
    description: str
    required: bool = True

    def to_schema(self) -> Dict:
        """Convert to JSON Schema format."""
        return {"type": self.type, "description": self.description}


@dataclass
class ToolDefinition:
    """Complete tool definition for the host."""
    name: str
    description: str
    parameters: List[ToolParameter] = field(default_factory=list)

    def _input_schema(self) -> Dict:
        properties = {}
        required = []
        for param in self.parameters:
            properties[param.name] = param.to_schema()
            if param.required:
                required.append(param.name)
        return {
            "type": "object",
            "properties": properties,
            "required": required
        }

    def to_schema(self) -> Dict:
        """Convert to OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self._input_schema()
            }
        }

    def to_anthropic_schema(self) -> Dict:
        """Convert to Anthropic tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self._input_schema()
        }


# ============================================================================
# TOOL RESULT
# ============================================================================

@dataclass
class ToolResult:
    """Result of tool execution."""
    success: bool
    output: str
    error: Optional[str] = None
    metadata: Optional[Dict] = None

    def to_dict(self) -> Dict:
        result = {
            "success": self.success,
            "output": self.output,
        }
        if self.error:
            result["error"] = self.error
        if self.metadata:
            result["metadata"] = self.metadata
        return result

    def __str__(self) -> str:
        if self.success:
            return self.output
        return self.error or "Unknown error"


# ============================================================================
# BASE TOOL CLASS
# ============================================================================

class BaseTool(ABC):
    """
    Base class for all tools.

    Subclasses must implement:
    - definition property: Returns ToolDefinition with schema
    - execute method: Performs the actual work
    """

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return the tool's definition."""
        pass

    @abstractmethod
    def execute(self, **kwargs) -> ToolResult:
        """
        Execute the tool with given parameters.

        Args:
            **kwargs: Parameters as defined in the tool's schema

        Returns:
            ToolResult with success status and output
        """
        pass

    @property
    def name(self) -> str:
        """Get tool name from definition."""
        return self.definition.name

    def get_schema(self) -> Dict:
        """Get the tool schema in OpenAI format."""
        return self.definition.to_schema()

    def get_anthropic_schema(self) -> Dict:
        """Get the tool schema in Anthropic format."""
        return self.definition.to_anthropic_schema()


# ============================================================================
# TOOL REGISTRY
# ============================================================================

class ToolRegistry:
    """
    Registry for managing and executing tools.

    Handles:
    - Tool registration and discovery
    - Schema generation for the host
    - Tool execution by name with timeout
    - Output size limiting
    """

    DEFAULT_TIMEOUT = 30  # seconds
    MAX_OUTPUT_SIZE = 100000  # ~100KB

    def __init__(self, default_timeout: int = DEFAULT_TIMEOUT, max_output_size: int = MAX_OUTPUT_SIZE):
        self._tools: Dict[str, BaseTool] = {}
        self.default_timeout = default_timeout
        self.max_output_size = max_output_size
        self._executor = ThreadPoolExecutor(max_workers=2)

    def register(self, tool: BaseTool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[BaseTool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def list_tools(self) -> List[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def get_schemas(self, format: str = "openai") -> List[Dict]:
        """
        Get all tool schemas.

        Args:
            format: "openai" or "anthropic"

        Returns:
            List of tool schemas
        """
        schemas = []
        for tool in self._tools.values():
            if format == "anthropic":
                schemas.append(tool.get_anthropic_schema())
            else:
                schemas.append(tool.get_schema())
        return schemas

    def execute(self, tool_name: str, parameters: Dict, timeout: int = None) -> ToolResult:
        """
        Execute a tool by name with parameters.

        Args:
            tool_name: Name of the tool to execute
            parameters: Parameters to pass to the tool
            timeout: Timeout in seconds (uses default if None)

        Returns:
            ToolResult from tool execution
        """
        tool = self._tools.get(tool_name)
        if not tool:
            return ToolResult(
                success=False,
                output="",
                error=f"Unknown tool: {tool_name}"
            )

        timeout = timeout or self.default_timeout

        try:
            future = self._executor.submit(tool.execute, **(parameters or {}))
            result = future.result(timeout=timeout)

            if result.output and len(result.output) > self.max_output_size:
                result = ToolResult(
                    success=result.success,
                    output=result.output[:self.max_output_size] + f"\n\n[TRUNCATED - output exceeded {self.max_output_size} characters]",
                    error=result.error,
                    metadata={
                        **(result.metadata or {}),
                        "truncated": True,
                        "original_size": len(result.output)
                    }
                )

            return result

        except FuturesTimeoutError:
            return ToolResult(
                success=False,
                output="",
                error=f"Tool '{tool_name}' timed out after {timeout} seconds"
            )
        except TypeError as e:
            # Parameter mismatch
            return ToolResult(
                success=False,
                output="",
                error=f"Invalid parameters for {tool_name}: {e}"
            )
        except Exception as e:
            return ToolResult(
                success=False,
                output="",
                error=f"Tool execution error: {str(e)}"
            )

    def shutdown(self) -> None:
        """Stop the execution pool."""
        self._executor.shutdown(wait=False)
