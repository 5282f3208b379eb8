"""
Centralized error handling for gateway calls.

One decorator for every data-access operation. Failures are logged and
re-raised so each caller decides what a failure means: the access guard
fails closed, the web layer maps errors to HTTP responses.
"""

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


def gateway_operation(
    operation_name: str,
    component: str = "gateway",
    critical: bool = False,
    log_success: bool = False,
):
    """
    Log the outcome of an async gateway call under a readable name.

    Failures are logged at WARNING (ERROR with traceback when critical) and
    the original exception is re-raised unchanged. Successes are logged at
    INFO only when log_success is set.

    Args:
        operation_name: Name used in the log line, e.g. "profile lookup"
        component: Tag prepended to the operation name
        critical: Log failures at ERROR with exc_info
        log_success: Log completion at INFO

    Usage:
        @gateway_operation("profile lookup")
        async def get_profile(self, user_id: str) -> Profile:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            logger = logging.getLogger(func.__module__)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                log_level = logging.ERROR if critical else logging.WARNING
                logger.log(
                    log_level,
                    f"[{component}] [{operation_name}] Failed: {type(e).__name__}: {e}",
                    exc_info=critical,
                )
                raise
            if log_success:
                logger.info(f"[{component}] [{operation_name}] Completed")
            return result

        return wrapper

    return decorator
