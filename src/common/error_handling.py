"""
Centralized error handling for the assistant.

Defines the error taxonomy shared by ingestion, resolution and escalation,
plus helpers for logging failures consistently:

- IngestionError: one knowledge source failed to load (non-fatal, skipped)
- CollaboratorError: a completion/search call failed (network, timeout,
  malformed response)

Unresolved names and partial matches are normal outcomes, not errors.
"""

import logging
from typing import Any, Callable, Optional, TypeVar

# Type variable for generic return types
T = TypeVar("T")


class AssistantError(Exception):
    """Base exception for assistant errors."""
    pass


class IngestionError(AssistantError):
    """Raised when a single knowledge source cannot be loaded."""

    def __init__(self, source_id: str, message: str):
        self.source_id = source_id
        super().__init__(f"{source_id}: {message}")


class CollaboratorError(AssistantError):
    """Raised when an outbound collaborator (completion, search) fails."""

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}")


def log_on_exception(
    logger: logging.Logger,
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
):
    """
    Context manager for logging exceptions without swallowing them silently.

    Usage:
        with log_on_exception(logger, "grounded completion", level=logging.ERROR):
            client.complete(context, history)

    Args:
        logger: Logger instance to use
        operation: Operation description for the log message
        level: Log level (default: WARNING)
        include_traceback: Whether to include stack trace in log
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None:
                logger.log(
                    level,
                    f"[{operation}] Failed: {exc_val}",
                    exc_info=include_traceback,
                )
            # Return False to not suppress the exception
            return False

    return ExceptionLogger()


def safe_execute(
    func: Callable[..., T],
    *args,
    operation_name: str = "operation",
    logger: Optional[logging.Logger] = None,
    fallback: Any = None,
    critical: bool = False,
    **kwargs,
) -> T:
    """
    Execute a function safely with error handling and logging.

    Used at boundaries where one failing item must not abort the whole
    sequence (e.g. a single unreadable document during corpus build).

    Args:
        func: Function to execute
        *args: Positional arguments for func
        operation_name: Name for logging
        logger: Logger instance (uses module logger if None)
        fallback: Value to return on failure
        critical: If True, log at ERROR level with traceback
        **kwargs: Keyword arguments for func

    Returns:
        Function result or fallback value on error

    Usage:
        text = safe_execute(
            source.read,
            source_id,
            operation_name=f"ingest {source_id}",
            logger=logger,
            fallback=None,
        )
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    try:
        return func(*args, **kwargs)
    except Exception as e:
        log_level = logging.ERROR if critical else logging.WARNING
        logger.log(
            log_level,
            f"[{operation_name}] Failed: {e}",
            exc_info=critical,
        )
        return fallback
