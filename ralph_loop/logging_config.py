"""
Centralized logging configuration for the Ralph Loop controller.

Configures the ``ralph_loop`` parent logger so every child logger
(ralph_loop.controller, ralph_loop.state, …) inherits handlers and level
automatically.

Besides the console and optional file handlers, ``HostLogHandler`` relays
each record to the host agent runtime's log endpoint as
``{"service": ..., "level": ..., "message": ...}``. Relay failures are
reported through ``logging``'s own error hook and never reach the caller, so
a dead log endpoint cannot abort a loop transition.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

import requests

DEFAULT_SERVICE = "ralph-loop"

_logging_configured = False


class HostLogHandler(logging.Handler):
    """POST log records to a host log endpoint."""

    def __init__(self, url: str, timeout: float = 5.0, service: str = DEFAULT_SERVICE,
                 session: Optional[requests.Session] = None):
        super().__init__()
        self.url = url
        self.timeout = timeout
        self.service = service
        self.session = session or requests.Session()

    def build_payload(self, record: logging.LogRecord) -> dict:
        return {
            "service": getattr(record, "service", self.service),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
        }

    def emit(self, record: logging.LogRecord) -> None:
        try:
            response = self.session.post(self.url, json=self.build_payload(record), timeout=self.timeout)
            response.raise_for_status()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.session.close()
        super().close()


def setup_logging(level: str = "INFO", log_file: Optional[str] = None,
                  host_log_url: Optional[str] = None, host_log_timeout: float = 5.0) -> None:
    """Configure Ralph Loop logging.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to a rotating log file, or None for console only.
        host_log_url: Host log endpoint to relay records to, or None.
        host_log_timeout: Seconds to wait on the host log endpoint.
    """
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    parent_logger = logging.getLogger("ralph_loop")
    parent_logger.setLevel(numeric_level)
    parent_logger.propagate = False

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # -- Console handler (always on) --
    console = logging.StreamHandler()
    console.setLevel(numeric_level)
    console.setFormatter(fmt)
    parent_logger.addHandler(console)

    # -- File handler --
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(fmt)
        parent_logger.addHandler(file_handler)

    # -- Host relay --
    if host_log_url:
        host_handler = HostLogHandler(host_log_url, timeout=host_log_timeout)
        host_handler.setLevel(numeric_level)
        parent_logger.addHandler(host_handler)


def setup_logging_from_config(config) -> None:
    """Configure logging from a RalphConfig."""
    setup_logging(
        level=config.logging.level,
        log_file=config.logging.log_file,
        host_log_url=config.logging.host_log_url,
        host_log_timeout=config.logging.host_log_timeout,
    )


def reset_logging() -> None:
    """Remove handlers installed by setup_logging so it can run again."""
    global _logging_configured
    parent_logger = logging.getLogger("ralph_loop")
    for handler in list(parent_logger.handlers):
        parent_logger.removeHandler(handler)
        handler.close()
    parent_logger.propagate = True
    parent_logger.setLevel(logging.NOTSET)
    _logging_configured = False
