"""
Logging setup for the assistant.

Every request gets a short request id; log lines written while handling it
carry "[req:<id>]" and, once a stage is bound, "[<stage>]" so one question
can be followed from routing through resolution or escalation:

    2025-03-10 09:14:02 [INFO] src.services.assistant_service: [req:3f9a1c2e] [router] Route: general

DEBUG_MODE=true (or the CLI --debug flag) turns on DEBUG for request loggers.
"""

import logging
import os
import sys
from typing import Any, MutableMapping, Optional, Tuple

_GLOBAL_DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "firecrawl")

SIMPLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'


def set_global_debug_mode(enabled: bool) -> None:
    global _GLOBAL_DEBUG_MODE
    _GLOBAL_DEBUG_MODE = enabled


def is_debug_mode() -> bool:
    return _GLOBAL_DEBUG_MODE


class AssistantLogger(logging.LoggerAdapter):
    """
    LoggerAdapter that prefixes messages with request id and stage.

    bind() returns a new adapter for the same request with a different
    stage, so callers never mutate a shared logger.
    """

    def __init__(
        self,
        logger: logging.Logger,
        request_id: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(logger, {"request_id": request_id, "stage": stage})

    @property
    def request_id(self) -> Optional[str]:
        return self.extra.get("request_id")

    @property
    def stage(self) -> Optional[str]:
        return self.extra.get("stage")

    def bind(self, stage: str) -> "AssistantLogger":
        return AssistantLogger(self.logger, request_id=self.request_id, stage=stage)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        prefix = []
        if self.request_id:
            prefix.append(f"[req:{self.request_id[:8]}]")
        if self.stage:
            prefix.append(f"[{self.stage}]")
        if prefix:
            msg = f"{' '.join(prefix)} {msg}"
        return msg, kwargs


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger to write to stdout.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        format: "simple" or "json"
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

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

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))


def get_logger(
    name: str,
    request_id: Optional[str] = None,
    stage: Optional[str] = None,
    debug_mode: Optional[bool] = None,
) -> AssistantLogger:
    """
    Get a request-scoped logger.

    Args:
        name: Logger name (usually __name__)
        request_id: Request identifier for correlation
        stage: Optional stage name ("router", "resolver", "escalation")
        debug_mode: Force DEBUG on/off for this logger; None uses the global flag
    """
    logger = logging.getLogger(name)
    if debug_mode if debug_mode is not None else is_debug_mode():
        logger.setLevel(logging.DEBUG)
    return AssistantLogger(logger, request_id=request_id, stage=stage)
