"""
CLI_MAIN
========

Command-line interface for the Ralph Loop controller.

Global Flags:
    --workspace DIR     Workspace the loop belongs to (default: cwd)
    --server            Start the hook server
    --port PORT         Port for the hook server (default: config, 8432)

Commands:
    init TASK           Start a loop (--max-iterations N, --promise TEXT)
    promise TEXT        Set the completion promise
    complete            Report completion (--incomplete, --summary TEXT)
    status              Show loop state (--json for the raw record)
    cancel              Cancel the loop
    idle                Simulate an idle event, print any injected guidance
    message TEXT        Feed agent output through the marker scanner
    tools               Print tool schemas (--format openai|anthropic)

Usage:
    python -m ralph_loop.cli init "Fix failing test suite" --max-iterations 10
    python -m ralph_loop.cli promise "all tests pass"
    python -m ralph_loop.cli status
    python -m ralph_loop.cli cancel
    python -m ralph_loop.cli --server --port 9000
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from ..config import load_config
from ..controller import LoopController
from ..errors import PersistenceFailure
from ..logging_config import setup_logging_from_config
from ..tools import ToolResult, build_registry


def get_controller(workspace: str) -> LoopController:
    """Build a controller for a workspace, with logging configured."""
    config = load_config(workspace)
    setup_logging_from_config(config)
    return LoopController(workspace, config=config)


# ============================================================================
# CLI COMMANDS
# ============================================================================

def cli_tool(controller: LoopController, tool_name: str, arguments: dict) -> ToolResult:
    """Run one loop tool through the registry."""
    registry = build_registry(controller)
    try:
        return registry.execute(tool_name, arguments)
    finally:
        registry.shutdown()


def cli_status_json(controller: LoopController) -> dict:
    state = controller.status()
    if state is None:
        return {"active": False}
    return state.to_dict()


def cli_idle(controller: LoopController) -> Optional[str]:
    return controller.on_idle()


def cli_message(controller: LoopController, text: str) -> dict:
    outcome = controller.on_message([{"type": "text", "text": text}])
    return outcome.to_dict()


def cli_tools(controller: LoopController, format: str = "openai") -> list:
    registry = build_registry(controller)
    try:
        return registry.get_schemas(format)
    finally:
        registry.shutdown()


def cli_start_server(workspace: str, port: Optional[int] = None):
    """Start the hook server."""
    from ..api.app import main as api_main

    config = load_config(workspace)
    setup_logging_from_config(config)
    api_main(workspace=workspace, port=port)


def _print_result(result: ToolResult) -> int:
    if result.success:
        print(result.output)
        return 0
    print(result.error or "Unknown error", file=sys.stderr)
    return 1


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ralph-loop",
        description="Self-driving iteration loop for coding agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--workspace", "-w",
        default=".",
        help="Workspace directory (default: current directory)"
    )
    parser.add_argument(
        "--server",
        action="store_true",
        help="Start the hook server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the hook server"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    init_parser = subparsers.add_parser("init", help="Start a loop")
    init_parser.add_argument("task", help="Task description")
    init_parser.add_argument("--max-iterations", "-m", type=int, default=None,
                             help="Iteration budget (default: 100, 0 = unlimited)")
    init_parser.add_argument("--promise", "-p", help="Completion promise")

    promise_parser = subparsers.add_parser("promise", help="Set the completion promise")
    promise_parser.add_argument("promise", help="Completion promise")

    complete_parser = subparsers.add_parser("complete", help="Report completion")
    complete_parser.add_argument("--incomplete", action="store_true",
                                 help="Report that the promise is not yet fulfilled")
    complete_parser.add_argument("--summary", "-s", help="Summary of what was done")

    status_parser = subparsers.add_parser("status", help="Show loop state")
    status_parser.add_argument("--json", "-j", action="store_true", help="Print the raw state record")

    subparsers.add_parser("cancel", help="Cancel the loop")
    subparsers.add_parser("idle", help="Deliver an idle event")

    message_parser = subparsers.add_parser("message", help="Deliver an agent message")
    message_parser.add_argument("text", help="Message text")

    tools_parser = subparsers.add_parser("tools", help="Print tool schemas")
    tools_parser.add_argument("--format", "-f", choices=["openai", "anthropic"], default="openai")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    workspace = str(Path(args.workspace))

    if args.server:
        cli_start_server(workspace, args.port)
        return 0

    if not args.command:
        parser.print_help()
        return 1

    controller = get_controller(workspace)

    try:
        if args.command == "init":
            arguments = {"task": args.task}
            if args.max_iterations is not None:
                arguments["maxIterations"] = args.max_iterations
            if args.promise is not None:
                arguments["promise"] = args.promise
            return _print_result(cli_tool(controller, "ralph-init", arguments))

        if args.command == "promise":
            return _print_result(cli_tool(controller, "ralph-promise", {"promise": args.promise}))

        if args.command == "complete":
            arguments = {"complete": not args.incomplete}
            if args.summary is not None:
                arguments["summary"] = args.summary
            return _print_result(cli_tool(controller, "ralph-complete", arguments))

        if args.command == "status":
            if args.json:
                print(json.dumps(cli_status_json(controller), indent=2))
                return 0
            return _print_result(cli_tool(controller, "ralph-status", {}))

        if args.command == "cancel":
            return _print_result(cli_tool(controller, "ralph-cancel", {}))

        if args.command == "idle":
            inject = cli_idle(controller)
            if inject:
                print(inject)
            else:
                print("No guidance (pass-through).")
            return 0

        if args.command == "message":
            print(json.dumps(cli_message(controller, args.text), indent=2))
            return 0

        if args.command == "tools":
            print(json.dumps(cli_tools(controller, args.format), indent=2))
            return 0

    except PersistenceFailure as e:
        print(f"ralph-loop {args.command}: ERROR {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
