"""Retry helpers with exponential backoff for transient store failures."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, Optional, ParamSpec, Tuple, Type, TypeVar

from labor_insights.domain.exceptions import StoreUnavailableError

P = ParamSpec("P")
R = TypeVar("R")

_logger = logging.getLogger(__name__)


def retry(
    *,
    attempts: int = 3,
    delay: float = 0.1,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (StoreUnavailableError,),
    sleep: Callable[[float], None] = time.sleep,
    logger: Optional[logging.Logger] = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Retry decorator with exponential backoff.

    The final failure is re-raised unchanged so callers still see the
    original error type.
    """

    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    log = logger or _logger

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            current_delay = delay
            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    if attempt == attempts - 1:
                        raise
                    log.warning(
                        "retrying_after_failure",
                        extra={
                            "function": getattr(func, "__name__", repr(func)),
                            "attempt": attempt + 1,
                            "delay": current_delay,
                            "error": str(exc),
                        },
                    )
                    sleep(current_delay)
                    current_delay *= backoff
            raise RuntimeError("retry failed")  # pragma: no cover - unreachable

        return wrapper

    return decorator
