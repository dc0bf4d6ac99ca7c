"""Retry logic for network-dependent subprocess calls (``op``, ``git pull``)."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import ParamSpec, TypeVar

logger = logging.getLogger(__name__)

_P = ParamSpec("_P")
_R = TypeVar("_R")


def retry(
    attempts: int = 3,
    delay: float = 0.5,
    backoff: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (OSError,),
) -> Callable[[Callable[_P, _R]], Callable[_P, _R]]:
    """Decorator: retry *func* on transient failures with exponential backoff.

    Only exceptions listed in *exceptions* are retried; anything else
    propagates immediately. After the last attempt the final exception is
    re-raised unchanged.

    Example::

        @retry(attempts=3, delay=0.5, exceptions=(SecretUnavailable,))
        def lookup(name: str) -> str: ...
    """
    attempts = max(1, attempts)

    def decorator(func: Callable[_P, _R]) -> Callable[_P, _R]:
        @functools.wraps(func)
        def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
            current_delay = delay
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    if attempt >= attempts:
                        logger.debug(
                            "%s failed after %d attempts: %s",
                            func.__name__,
                            attempts,
                            exc,
                        )
                        raise
                    logger.debug(
                        "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                        func.__name__,
                        attempt,
                        attempts,
                        current_delay,
                        exc,
                    )
                    if current_delay > 0:
                        time.sleep(current_delay)
                    current_delay *= backoff
            msg = f"Unexpected exit from retry loop: {func.__name__}"
            raise RuntimeError(msg)

        return wrapper

    return decorator
