"""
GUIDANCE
========

Text shown to the agent. Everything here is a pure function of LoopState.

``render_completion_check`` is the prompt injected on an intercepted idle
event. It is display text only; the agent's reply to it comes back as a
message that the signal parser scans for markers.

The remaining ``render_*`` helpers build the tool surface responses.
"""

from typing import Optional

from .signals import COMPLETE_CLOSE, COMPLETE_OPEN
from .state import LoopState

RULE = "═" * 79

DEFAULT_SUMMARY = "Task completed successfully."


def _complete_marker(value: str) -> str:
    return f"{COMPLETE_OPEN}{value}{COMPLETE_CLOSE}"


def check_number(state: LoopState) -> int:
    """
    Number of the completion check being performed.

    A loop starts at iteration 1 before any check has run, and each
    intercepted idle event bumps the counter before rendering, so the check
    number trails the counter by one.
    """
    return max(state.iteration - 1, 1)


def format_budget(state: LoopState, count: Optional[int] = None) -> str:
    """Format a count against the budget: ``"3/10"`` or ``"3 (unlimited)"``."""
    count = state.iteration if count is None else count
    if state.max_iterations > 0:
        return f"{count}/{state.max_iterations}"
    return f"{count} (unlimited)"


def is_final_iteration(state: LoopState) -> bool:
    return state.max_iterations > 0 and state.iteration >= state.max_iterations


# ============================================================================
# COMPLETION CHECK
# ============================================================================

def render_completion_check(state: LoopState) -> str:
    """Build the prompt injected instead of handing control back to the user."""
    final_warning = ""
    if is_final_iteration(state):
        final_warning = (
            "\nWARNING: This is your FINAL completion check. If the task is incomplete,\n"
            "document what was accomplished and what remains to be done.\n"
        )

    return f"""
{RULE}
RALPH LOOP - COMPLETION CHECK {format_budget(state, check_number(state))} (loop iteration {state.iteration})
{RULE}

STOP! Before prompting the user, you must check if the task is complete.

Original Task:
{state.original_task}

Your Completion Promise:
{state.completion_promise or ""}

EVALUATE NOW: Is your completion promise fulfilled?

If YES (promise is genuinely TRUE):
  Output: {_complete_marker("true")}
  Then provide a summary of what was accomplished.

If NO (promise is NOT yet TRUE):
  Output: {_complete_marker("false")}
  Then CONTINUE WORKING on the task. Do NOT prompt the user for input.

  Ask yourself:
  - What remains to be done?
  - What is blocking progress?
  - What should I try next?

  Then take action to move toward completion.

CRITICAL RULES:
  - Do NOT output {_complete_marker("true")} unless the promise is GENUINELY fulfilled
  - Do NOT prompt the user for input if the task is incomplete
  - Do NOT give up - iterate until completion or max iterations reached
  - Review your previous work in files and git history
  - Self-correct based on test results, errors, or failures
  - Make incremental progress toward the completion promise
{final_warning}
{RULE}
"""


# ============================================================================
# TOOL RESPONSES
# ============================================================================

def render_init(state: LoopState) -> str:
    budget = state.max_iterations if state.max_iterations > 0 else "unlimited"
    promise = state.completion_promise or (
        "Not yet established. The loop will not ask for confirmation; provide a promise "
        "with the ralph-promise tool or pass it as the optional promise argument when initializing."
    )
    return (
        "Ralph Loop initialized!\n"
        f"Task: {state.original_task}\n"
        f"Max iterations: {budget}\n"
        "\n"
        f"Completion promise: {promise}"
    )


def render_promise_set(promise: str) -> str:
    return (
        f"Completion promise established: {promise}\n"
        "\n"
        "Work will continue autonomously. When you check completion, use the ralph-complete "
        f"tool or output {_complete_marker('true')}."
    )


def render_completed(state: LoopState, summary: Optional[str] = None) -> str:
    return (
        f"Ralph Loop completed after {state.iteration} iterations.\n"
        "\n"
        f"Summary: {DEFAULT_SUMMARY if summary is None else summary}"
    )


def render_incomplete(state: LoopState) -> str:
    return (
        "Task incomplete. Continue working toward the completion promise:\n"
        f"\"{state.completion_promise or ''}\"\n"
        "\n"
        "Review what remains and take the next step."
    )


def render_status(state: LoopState) -> str:
    lines = [
        "Ralph Loop Status:",
        f"- Active: {state.active}",
        f"- Iteration: {format_budget(state)}",
        f"- Started: {state.started_at}",
        f"- Task: {state.original_task}",
        f"- Promise: {state.completion_promise or 'Not yet established'}",
        f"- Promise established: {state.promise_established}",
    ]
    if state.last_checked_at:
        lines.append(f"- Last checked: {state.last_checked_at}")
    return "\n".join(lines)


def render_cancelled(iteration: int) -> str:
    return f"Ralph Loop cancelled at iteration {iteration}."
