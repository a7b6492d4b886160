"""
SIGNAL_PARSER
=============

Extracts loop markers from free-form agent output.

Markers
-------
- ``<ralph-promise>TEXT</ralph-promise>``: the agent states its completion
  promise. TEXT is trimmed. The body runs to the first closing tag, so a
  nested opening tag is kept as part of the text.
- ``<ralph-complete>true</ralph-complete>`` /
  ``<ralph-complete>false</ralph-complete>``: the agent's judgment of
  whether the promise holds. Any other body is not a marker and scanning
  continues past it.

Tags are exact and case-sensitive. Only the first occurrence of each marker
kind counts. An opening tag with no closing tag yields nothing.

Usage::

    text = extract_text(message["parts"])
    signals = parse_signals(text)
    signals.promise    # → "all tests pass" or None
    signals.complete   # → True, False or None
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

PROMISE_OPEN = "<ralph-promise>"
PROMISE_CLOSE = "</ralph-promise>"
COMPLETE_OPEN = "<ralph-complete>"
COMPLETE_CLOSE = "</ralph-complete>"


@dataclass(frozen=True)
class Signals:
    """Markers found in one message."""
    promise: Optional[str] = None
    complete: Optional[bool] = None

    @property
    def empty(self) -> bool:
        return self.promise is None and self.complete is None


def _part_field(part: Any, name: str) -> Any:
    if isinstance(part, dict):
        return part.get(name)
    return getattr(part, name, None)


def extract_text(parts: Optional[Iterable[Any]]) -> str:
    """
    Join the text of all text-typed message parts with newlines.

    Parts may be dicts or objects with ``type`` and ``text`` attributes.
    Tool calls, files and other part types are skipped.
    """
    if not parts:
        return ""
    texts = []
    for part in parts:
        if part is None or _part_field(part, "type") != "text":
            continue
        text = _part_field(part, "text")
        if isinstance(text, str):
            texts.append(text)
    return "\n".join(texts)


def find_promise(text: str) -> Optional[str]:
    """Return the trimmed body of the first complete promise marker."""
    start = text.find(PROMISE_OPEN)
    if start == -1:
        return None
    body_start = start + len(PROMISE_OPEN)
    end = text.find(PROMISE_CLOSE, body_start)
    if end == -1:
        return None
    return text[body_start:end].strip()


def find_completion(text: str) -> Optional[bool]:
    """Return the boolean of the first well-formed completion marker."""
    pos = text.find(COMPLETE_OPEN)
    while pos != -1:
        body_start = pos + len(COMPLETE_OPEN)
        if text.startswith("true" + COMPLETE_CLOSE, body_start):
            return True
        if text.startswith("false" + COMPLETE_CLOSE, body_start):
            return False
        pos = text.find(COMPLETE_OPEN, pos + 1)
    return None


def parse_signals(text: str) -> Signals:
    """Scan text for both marker kinds."""
    if not text:
        return Signals()
    return Signals(promise=find_promise(text), complete=find_completion(text))
