from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from unittest import mock

import requests

from ralph_loop.controller import LoopController
from ralph_loop.logging_config import HostLogHandler, setup_logging


def _record(message: str, level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("ralph_loop.controller", level, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_host_handler_posts_structured_record() -> None:
    session = mock.Mock()
    handler = HostLogHandler("http://host/log", timeout=2, session=session)

    handler.emit(_record("Max iterations (2) reached. Stopping loop.", service="ralph-loop"))

    session.post.assert_called_once_with(
        "http://host/log",
        json={"service": "ralph-loop", "level": "info", "message": "Max iterations (2) reached. Stopping loop."},
        timeout=2,
    )


def test_host_handler_defaults_service_tag() -> None:
    handler = HostLogHandler("http://host/log", session=mock.Mock())

    payload = handler.build_payload(_record("hello", level=logging.WARNING))

    assert payload == {"service": "ralph-loop", "level": "warning", "message": "hello"}


def test_host_handler_swallows_delivery_errors() -> None:
    session = mock.Mock()
    session.post.side_effect = requests.ConnectionError("host is down")
    handler = HostLogHandler("http://host/log", session=session)

    with mock.patch.object(handler, "handleError") as handle_error:
        handler.emit(_record("hello"))

    handle_error.assert_called_once()


def test_failing_host_log_never_aborts_a_transition(workspace: Path, monkeypatch) -> None:
    monkeypatch.setattr(logging, "raiseExceptions", False)
    session = mock.Mock()
    session.post.side_effect = requests.ConnectionError("host is down")
    handler = HostLogHandler("http://host/log", session=session)
    parent = logging.getLogger("ralph_loop")
    parent.addHandler(handler)
    parent.setLevel(logging.INFO)
    try:
        controller = LoopController(workspace)
        controller.init("task", promise="done", max_iterations=2)
        assert controller.on_idle() is not None
        assert controller.on_idle() is None
    finally:
        parent.removeHandler(handler)

    assert session.post.call_count >= 3
    assert controller.status() is None


def test_setup_logging_installs_handlers_once(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "ralph.log"

    setup_logging(level="DEBUG", log_file=str(log_file), host_log_url="http://host/log")
    setup_logging(level="DEBUG", log_file=str(log_file), host_log_url="http://host/log")

    parent = logging.getLogger("ralph_loop")
    kinds = [type(handler) for handler in parent.handlers]
    assert kinds.count(logging.StreamHandler) == 1
    assert kinds.count(logging.handlers.RotatingFileHandler) == 1
    assert kinds.count(HostLogHandler) == 1
    assert parent.level == logging.DEBUG
    assert parent.propagate is False
    assert log_file.parent.is_dir()


def test_setup_logging_console_only_by_default() -> None:
    setup_logging()

    handlers = logging.getLogger("ralph_loop").handlers
    assert len(handlers) == 1
    assert logging.getLogger("ralph_loop").level == logging.INFO
