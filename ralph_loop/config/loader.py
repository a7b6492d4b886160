"""
CONFIG_LOADER
=============

Configuration for the Ralph Loop controller.

Handles:
- Loop defaults (iteration budget, state file location)
- Logging settings (level, log file, host log relay)
- Hook server settings (host, port)

Config is read from ``<workspace>/.opencode/ralph-loop.config.json`` when
present. Every key is optional. Environment variables override the file:

- ``RALPH_LOOP_LOG_LEVEL``    → logging.level
- ``RALPH_LOOP_HOST_LOG_URL`` → logging.host_log_url

Usage:
    from ralph_loop.config import load_config

    config = load_config("/path/to/workspace")
    print(config.default_max_iterations)
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "ralph-loop.config.json"

ENV_LOG_LEVEL = "RALPH_LOOP_LOG_LEVEL"
ENV_HOST_LOG_URL = "RALPH_LOOP_HOST_LOG_URL"


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    log_file: Optional[str] = None  # None = console only
    host_log_url: Optional[str] = None  # Host endpoint that receives log records
    host_log_timeout: float = 5.0

    def to_dict(self) -> Dict:
        return {
            "level": self.level,
            "log_file": self.log_file,
            "host_log_url": self.host_log_url,
            "host_log_timeout": self.host_log_timeout,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "LoggingConfig":
        return cls(
            level=data.get("level", "INFO"),
            log_file=data.get("log_file"),
            host_log_url=data.get("host_log_url"),
            host_log_timeout=data.get("host_log_timeout", 5.0),
        )


@dataclass
class ServerConfig:
    """Hook server settings."""
    host: str = "localhost"
    port: int = 8432

    def to_dict(self) -> Dict:
        return {"host": self.host, "port": self.port}

    @classmethod
    def from_dict(cls, data: Dict) -> "ServerConfig":
        return cls(
            host=data.get("host", "localhost"),
            port=data.get("port", 8432),
        )


@dataclass
class RalphConfig:
    """Top-level configuration."""
    default_max_iterations: int = 100
    state_dir: str = ".opencode"
    state_file_name: str = "ralph-loop.state.json"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> Dict:
        return {
            "default_max_iterations": self.default_max_iterations,
            "state_dir": self.state_dir,
            "state_file_name": self.state_file_name,
            "logging": self.logging.to_dict(),
            "server": self.server.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "RalphConfig":
        default_max = data.get("default_max_iterations", 100)
        if not isinstance(default_max, int) or isinstance(default_max, bool) or default_max < 0:
            raise ValueError("default_max_iterations must be a non-negative integer")
        return cls(
            default_max_iterations=default_max,
            state_dir=data.get("state_dir", ".opencode"),
            state_file_name=data.get("state_file_name", "ralph-loop.state.json"),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
            server=ServerConfig.from_dict(data.get("server", {})),
        )


# ============================================================================
# LOADING
# ============================================================================

def get_config_path(workspace: Union[str, Path], state_dir: str = ".opencode") -> Path:
    """Get the config file path for a workspace."""
    return Path(workspace) / state_dir / CONFIG_FILE_NAME


def _apply_env_overrides(config: RalphConfig) -> RalphConfig:
    level = os.environ.get(ENV_LOG_LEVEL)
    if level:
        config.logging.level = level
    host_log_url = os.environ.get(ENV_HOST_LOG_URL)
    if host_log_url:
        config.logging.host_log_url = host_log_url
    return config


def load_config(workspace: Optional[Union[str, Path]] = None) -> RalphConfig:
    """
    Load configuration for a workspace.

    A missing file gives defaults. An unreadable or invalid file is logged
    and also gives defaults, so a bad config never blocks the loop.
    """
    config = RalphConfig()
    if workspace is not None:
        config_path = get_config_path(workspace)
        if config_path.exists():
            try:
                data = json.loads(config_path.read_text(encoding="utf-8"))
                if not isinstance(data, dict):
                    raise ValueError("config must be a JSON object")
                config = RalphConfig.from_dict(data)
            except (json.JSONDecodeError, OSError, ValueError) as e:
                logger.warning(f"Ignoring invalid config at {config_path}: {e}")
                config = RalphConfig()
    return _apply_env_overrides(config)


def save_config(workspace: Union[str, Path], config: RalphConfig) -> Path:
    """Write configuration to the workspace config file."""
    config_path = get_config_path(workspace, config.state_dir)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
    return config_path
