"""
API_APP
=======

FastAPI hook server for the Ralph Loop controller.

Lets a host agent runtime deliver lifecycle events and tool calls over HTTP
instead of importing the controller in-process.

Endpoints:
    GET    /health                 Health check
    GET    /status                 Current loop snapshot
    POST   /events                 Generic host event ({type, message?, parts?})
    POST   /events/idle            Agent went idle → {"inject": text | null}
    POST   /events/message         Agent produced a message → marker outcome
    GET    /tools                  Tool schemas (?format=openai|anthropic)
    POST   /tools/{name}           Execute a tool with JSON arguments

A non-null ``inject`` tells the host to send that text to the agent as its
next input instead of prompting the user.

Usage:
    uvicorn --factory ralph_loop.api.app:create_app --port 8432
    ralph-loop --server
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fastapi import Body, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from .. import __version__
from ..config import RalphConfig, load_config
from ..controller import LoopController
from ..errors import PersistenceFailure
from ..logging_config import setup_logging_from_config
from ..tools import build_registry

logger = logging.getLogger(__name__)


# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class MessagePart(BaseModel):
    """One segment of an agent message."""
    type: str = Field(..., description="Part type; only 'text' parts are scanned")
    text: Optional[str] = Field(None, description="Text content for text parts")


class MessageEventRequest(BaseModel):
    """Request body for /events/message."""
    parts: List[MessagePart] = Field(default_factory=list)


class HostEventRequest(BaseModel):
    """Request body for /events."""
    type: str = Field(..., description="'session.idle' or 'message.updated'")
    message: Optional[Dict[str, Any]] = Field(None, description="Message with a 'parts' list")
    parts: Optional[List[MessagePart]] = None


class InjectResponse(BaseModel):
    """Response for idle events."""
    inject: Optional[str] = None


class MessageEventResponse(BaseModel):
    """Response for message events."""
    promise_established: Optional[str] = None
    complete: Optional[bool] = None
    loop_ended: bool = False


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

def create_app(
    workspace: Optional[Union[str, Path]] = None,
    config: Optional[RalphConfig] = None,
    controller: Optional[LoopController] = None,
) -> FastAPI:
    """
    Create the hook server for one workspace.

    Args:
        workspace: Workspace directory (default: current directory).
        config: RalphConfig (loaded from the workspace if None); also configures logging.
        controller: Pre-built controller (built from workspace/config if None).
    """
    workspace = Path(workspace) if workspace is not None else Path.cwd()
    if controller is None:
        config = config or load_config(workspace)
        setup_logging_from_config(config)
        controller = LoopController(workspace, config=config)
    registry = build_registry(controller)

    app = FastAPI(
        title="Ralph Loop Hooks",
        description="Event intake and tool surface for the Ralph Loop controller",
        version=__version__,
    )

    def _persistence_error(e: PersistenceFailure) -> HTTPException:
        logger.error(f"Loop state persistence failed: {e}")
        return HTTPException(status_code=500, detail=str(e))

    # ========================================================================
    # SYSTEM
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat()
        )

    @app.get("/status", tags=["Loop"])
    async def get_status():
        """Current loop state, or {"active": false}."""
        state = controller.status()
        if state is None:
            return {"active": False}
        return state.to_dict()

    # ========================================================================
    # EVENTS
    # ========================================================================

    @app.post("/events", response_model=InjectResponse, tags=["Events"])
    def post_event(request: HostEventRequest):
        """Dispatch a raw host event by type."""
        event = request.model_dump()
        try:
            return InjectResponse(inject=controller.handle_event(event))
        except PersistenceFailure as e:
            raise _persistence_error(e)

    @app.post("/events/idle", response_model=InjectResponse, tags=["Events"])
    def post_idle():
        """The agent finished responding and would wait for the user."""
        try:
            return InjectResponse(inject=controller.on_idle())
        except PersistenceFailure as e:
            raise _persistence_error(e)

    @app.post("/events/message", response_model=MessageEventResponse, tags=["Events"])
    def post_message(request: MessageEventRequest):
        """The agent produced or updated a message."""
        parts = [part.model_dump() for part in request.parts]
        try:
            outcome = controller.on_message(parts)
        except PersistenceFailure as e:
            raise _persistence_error(e)
        return MessageEventResponse(**outcome.to_dict())

    # ========================================================================
    # TOOLS
    # ========================================================================

    @app.get("/tools", tags=["Tools"])
    async def list_tools(format: str = Query("openai", description="'openai' or 'anthropic'")):
        """Schemas for the loop tools."""
        if format not in ("openai", "anthropic"):
            raise HTTPException(status_code=400, detail=f"Unknown schema format: {format}")
        return registry.get_schemas(format)

    @app.post("/tools/{tool_name}", tags=["Tools"])
    def run_tool(tool_name: str, arguments: Optional[Dict[str, Any]] = Body(None)):
        """Execute a loop tool. Tool-level failures come back with success=false."""
        if not registry.has(tool_name):
            raise HTTPException(status_code=404, detail=f"Unknown tool: {tool_name}")
        result = registry.execute(tool_name, arguments or {})
        return result.to_dict()

    return app


# ============================================================================
# MAIN
# ============================================================================

def main(workspace: Optional[Union[str, Path]] = None, host: Optional[str] = None, port: Optional[int] = None):
    """Run the hook server."""
    import uvicorn

    workspace = Path(workspace) if workspace is not None else Path.cwd()
    config = load_config(workspace)
    host = host or config.server.host
    port = port or config.server.port

    print("Starting Ralph Loop hook server...")
    print(f"Workspace: {workspace.resolve()}")
    print(f"API docs: http://{host}:{port}/docs")
    uvicorn.run(create_app(workspace, config), host=host, port=port)


if __name__ == "__main__":
    main()
