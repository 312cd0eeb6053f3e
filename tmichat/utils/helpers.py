"""Small shared helpers."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any


async def invoke_callback(handler: Callable[..., Any], *args: Any) -> Any:
    """Invoke ``handler`` with ``args``, awaiting the result when it is awaitable.

    User callbacks may be plain functions or coroutine functions; both are
    accepted everywhere a callback is registered.
    """
    if inspect.iscoroutinefunction(handler):
        return await handler(*args)
    result = handler(*args)
    if inspect.isawaitable(result):
        return await result
    return result
