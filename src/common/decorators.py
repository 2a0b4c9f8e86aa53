"""
Error Handling Decorators

Decorators shared by the registry modules. Both log through the logger of
the module that owns the decorated function, so messages keep their
origin (e.g. ``miniapps.catalog``).
"""

from __future__ import annotations

import inspect
import functools
import logging
import time
from typing import Type, Callable, Any, Optional


def _owner_logger(func: Callable) -> logging.Logger:
    return logging.getLogger(func.__module__)


def handle_errors(
    *exception_types: Type[Exception],
    default: Any = None,
    log_level: int = logging.ERROR,
    reraise: bool = False,
    message: Optional[str] = None,
):
    """
    Log the given exception types and return a fallback instead.

    Args:
        exception_types: Exception types to catch (default: Exception)
        default: Value returned on error; called if it is callable, so
            mutable fallbacks like ``list`` are fresh each time
        log_level: Logging level for the caught error
        reraise: Re-raise after logging
        message: Log message prefix (default: "<function> failed")

    Example:
        @handle_errors(KeyError, ValueError, log_level=logging.WARNING)
        def parse_entry(data):
            ...
    """
    if not exception_types:
        exception_types = (Exception,)

    def decorator(func: Callable) -> Callable:
        log = _owner_logger(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except exception_types as e:
                prefix = message or f"{func.__name__} failed"
                log.log(log_level, f"{prefix}: {e}", exc_info=log_level >= logging.ERROR)
                if reraise:
                    raise
                return default() if callable(default) else default
        return wrapper
    return decorator


def timed(func: Optional[Callable] = None, *, slow: Optional[float] = None):
    """
    Log how long a call took, at DEBUG, or at WARNING past ``slow`` seconds.

    Works on plain and ``async`` functions, with or without arguments:

        @timed
        def reload(self, network): ...

        @timed(slow=2.0)
        async def resolve(self, url, network): ...
    """
    def decorator(fn: Callable) -> Callable:
        log = _owner_logger(fn)

        def report(start: float) -> None:
            elapsed = time.perf_counter() - start
            level = logging.WARNING if slow is not None and elapsed > slow else logging.DEBUG
            log.log(level, f"{fn.__name__} completed in {elapsed:.3f}s")

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    return await fn(*args, **kwargs)
                finally:
                    report(start)
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                report(start)
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
