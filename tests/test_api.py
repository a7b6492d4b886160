from __future__ import annotations

import logging
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from ralph_loop.api.app import create_app
from ralph_loop.config import RalphConfig
from ralph_loop.controller import LoopController
from ralph_loop.errors import PersistenceFailure
from ralph_loop.logging_config import HostLogHandler
from ralph_loop.state import StateStore


@pytest.fixture
def client(workspace: Path) -> TestClient:
    return TestClient(create_app(workspace))


def _text(text: str) -> dict:
    return {"type": "text", "text": text}


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_status_without_loop(client: TestClient) -> None:
    assert client.get("/status").json() == {"active": False}


def test_full_loop_over_http(client: TestClient) -> None:
    init = client.post("/tools/ralph-init", json={"task": "Fix failing test suite", "maxIterations": 2})
    assert init.status_code == 200
    assert init.json()["success"] is True

    assert client.post("/events/idle").json() == {"inject": None}

    message = client.post(
        "/events/message",
        json={"parts": [_text("<ralph-promise>all tests pass</ralph-promise>"), {"type": "tool"}]},
    )
    assert message.json() == {"promise_established": "all tests pass", "complete": None, "loop_ended": False}

    inject = client.post("/events/idle").json()["inject"]
    assert "1/2" in inject
    assert "all tests pass" in inject
    assert client.get("/status").json()["iteration"] == 2

    assert client.post("/events/idle").json() == {"inject": None}
    assert client.get("/status").json() == {"active": False}


def test_generic_event_endpoint(client: TestClient) -> None:
    client.post("/tools/ralph-init", json={"task": "t", "promise": "done"})

    idle = client.post("/events", json={"type": "session.idle"})
    assert idle.json()["inject"] is not None

    done = client.post(
        "/events",
        json={"type": "message.updated", "message": {"parts": [_text("<ralph-complete>true</ralph-complete>")]}},
    )
    assert done.json() == {"inject": None}
    assert client.get("/status").json() == {"active": False}


def test_tool_failure_is_not_an_http_error(client: TestClient) -> None:
    response = client.post("/tools/ralph-promise", json={"promise": "x"})

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert "No active Ralph Loop" in response.json()["error"]


def test_tool_without_body(client: TestClient) -> None:
    response = client.post("/tools/ralph-status")

    assert response.json() == {
        "success": True,
        "output": "No active Ralph Loop.",
        "metadata": {"active": False},
    }


def test_unknown_tool_is_404(client: TestClient) -> None:
    assert client.post("/tools/ralph-restart", json={}).status_code == 404


def test_tool_schemas(client: TestClient) -> None:
    openai = client.get("/tools").json()
    anthropic = client.get("/tools", params={"format": "anthropic"}).json()

    assert len(openai) == 5
    assert {schema["name"] for schema in anthropic} == {
        "ralph-init", "ralph-promise", "ralph-complete", "ralph-status", "ralph-cancel",
    }
    assert client.get("/tools", params={"format": "xml"}).status_code == 400


class _ReadOnlyStore(StateStore):
    def save(self, workspace, state) -> None:
        raise PersistenceFailure("disk is read-only")


def test_persistence_failure_is_500(workspace: Path) -> None:
    LoopController(workspace).init("t", promise="done", max_iterations=0)
    controller = LoopController(workspace, store=_ReadOnlyStore())
    client = TestClient(create_app(workspace, controller=controller))

    response = client.post("/events/idle")

    assert response.status_code == 500
    assert "read-only" in response.json()["detail"]
    assert LoopController(workspace).status().iteration == 1


def test_factory_installs_host_log_relay(workspace: Path) -> None:
    config = RalphConfig()
    config.logging.host_log_url = "http://host.invalid/log"

    create_app(workspace, config=config)

    handlers = logging.getLogger("ralph_loop").handlers
    assert any(isinstance(handler, HostLogHandler) for handler in handlers)
