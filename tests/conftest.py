from pathlib import Path

import pytest

from ralph_loop.config import RalphConfig
from ralph_loop.controller import LoopController
from ralph_loop.logging_config import reset_logging
from ralph_loop.state import StateStore


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "repo"
    ws.mkdir()
    return ws


@pytest.fixture
def store() -> StateStore:
    return StateStore()


@pytest.fixture
def controller(workspace: Path, store: StateStore) -> LoopController:
    return LoopController(workspace, store=store, config=RalphConfig())
