"""Reconnect backoff built on Tenacity."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import TransportFailure


def reconnect_retrying(
    *,
    max_attempts: int,
    base_delay: float,
    max_delay: float,
    sleep: Callable[[float], Awaitable[Any]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> AsyncRetrying:
    """Build the retry controller used around one connection attempt.

    Only ``TransportFailure`` is retried. The delay starts at ``base_delay``
    and doubles after every failed attempt, capped at ``max_delay``. After
    ``max_attempts`` attempts the last failure is re-raised unchanged.

    Args:
        max_attempts: Total number of attempts, the first one included.
        base_delay: Delay in seconds after the first failure.
        max_delay: Upper bound of a single delay in seconds.
        sleep: Awaitable sleep used between attempts; lets callers make the
            wait interruptible.
        before_sleep: Hook invoked with the retry state before each wait.

    Returns:
        An ``AsyncRetrying`` usable with ``async for attempt in ...``.
    """
    kwargs: dict[str, Any] = {}
    if before_sleep is not None:
        kwargs["before_sleep"] = before_sleep
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, min=base_delay, max=max_delay),
        retry=retry_if_exception_type(TransportFailure),
        sleep=sleep or asyncio.sleep,
        reraise=True,
        **kwargs,
    )
