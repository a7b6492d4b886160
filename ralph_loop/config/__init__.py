"""
Configuration management for the Ralph Loop controller.
"""

from .loader import (
    CONFIG_FILE_NAME,
    LoggingConfig,
    RalphConfig,
    ServerConfig,
    get_config_path,
    load_config,
    save_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "LoggingConfig",
    "RalphConfig",
    "ServerConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
