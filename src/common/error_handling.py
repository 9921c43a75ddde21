"""
Centralized error handling for the culture-connect service.

Collaborator failures (taste graph, LLM, directory, transport) are recovered
locally with an empty result or a fallback value and logged; they never
surface past the scoring boundary. These helpers keep that policy uniform.
"""

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

# Type variable for generic return types
T = TypeVar("T")


class CollaboratorError(Exception):
    """Base class for failures of an external collaborator."""


class QlooApiError(CollaboratorError):
    """Raised when the taste-graph API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TextGenerationError(CollaboratorError):
    """Raised when the LLM returns an error or an empty completion."""


class TransportError(CollaboratorError):
    """Raised when the messaging transport rejects a call."""


class DirectoryError(CollaboratorError):
    """Raised when the employee directory lookup fails."""


def fallback_on_error(
    operation_name: str,
    fallback_value: Any = None,
    critical: bool = False,
):
    """
    Decorator for async collaborator calls with consistent error handling.

    Logs at WARNING (or ERROR with stack trace when critical) and returns
    fallback_value instead of raising. A callable fallback is invoked to
    produce a fresh value per failure (e.g. ``list``).

    Usage:
        @fallback_on_error("Qloo tag search", fallback_value=list)
        async def _search_tags(self, keyword: str) -> List[Tag]:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            logger = logging.getLogger(func.__module__)
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                log_level = logging.ERROR if critical else logging.WARNING
                logger.log(
                    log_level,
                    f"[{operation_name}] ✗ Failed: {e}",
                    exc_info=critical,
                )
                return fallback_value() if callable(fallback_value) else fallback_value

        return wrapper

    return decorator


async def safe_execute_async(
    func: Callable[..., Awaitable[T]],
    *args,
    operation_name: str = "operation",
    logger: Optional[logging.Logger] = None,
    fallback: T = None,
    critical: bool = False,
    **kwargs,
) -> T:
    """
    Await a coroutine function safely with error handling and logging.

    This is an alternative to the decorator for one-off operations.

    Usage:
        history = await safe_execute_async(
            self.store.get,
            key,
            operation_name="history read",
            logger=self.logger,
            fallback=None,
        )
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    try:
        return await func(*args, **kwargs)
    except Exception as e:
        log_level = logging.ERROR if critical else logging.WARNING
        logger.log(
            log_level,
            f"[{operation_name}] Failed: {e}",
            exc_info=critical,
        )
        return fallback
