"""
Logging setup for the culture-connect service.

Modules log through ``logging.getLogger(__name__)``. Multi-step flows (one
introductions request, one housing dialogue turn) use ``get_logger`` so every
line carries the run id and component:

    run_log = get_logger(__name__, run_id=uuid.uuid4().hex, component="introductions")
    run_log.info("Scoring 4 candidates")
    # -> [run:1f0c9a2b] [introductions] Scoring 4 candidates
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

from src.common.config import Config

# Chatty third-party loggers held at WARNING unless debugging
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")

JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
SIMPLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class RunLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes messages with run id and component."""

    def __init__(self, logger: logging.Logger, run_id: Optional[str] = None, component: Optional[str] = None):
        super().__init__(logger, {"run_id": run_id, "component": component})
        self.run_id = run_id
        self.component = component

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        prefix = []
        if self.run_id:
            prefix.append(f"[run:{self.run_id[:8]}]")
        if self.component:
            prefix.append(f"[{self.component}]")
        if prefix:
            msg = f"{' '.join(prefix)} {msg}"
        return msg, kwargs


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger once at process start.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        format: "simple" for humans, "json" for log aggregators
    """
    log_level = logging.DEBUG if Config.DEBUG_MODE else getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format == "json":
        handler.setFormatter(logging.Formatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    if log_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, run_id: Optional[str] = None, component: Optional[str] = None) -> RunLogger:
    """Run-scoped logger for ``name``."""
    return RunLogger(logging.getLogger(name), run_id=run_id, component=component)
