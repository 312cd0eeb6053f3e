import asyncio

import pytest

from tmichat.errors import TmiError, TransportFailure
from tmichat.utils.helpers import invoke_callback


@pytest.mark.asyncio
async def test_invoke_sync_callback():
    assert await invoke_callback(lambda a, b: a + b, 1, 2) == 3


@pytest.mark.asyncio
async def test_invoke_coroutine_function():
    async def handler(value):
        await asyncio.sleep(0)
        return value * 2

    assert await invoke_callback(handler, 4) == 8


@pytest.mark.asyncio
async def test_invoke_callable_returning_awaitable():
    async def inner():
        return "done"

    assert await invoke_callback(lambda: inner()) == "done"


@pytest.mark.asyncio
async def test_invoke_propagates_errors():
    def handler():
        raise KeyError("x")

    with pytest.raises(KeyError):
        await invoke_callback(handler)


def test_error_data_is_copied():
    data = {"url": "wss://x"}
    error = TransportFailure("down", data=data)
    data["url"] = "changed"
    assert error.data == {"url": "wss://x"}
    assert isinstance(error, TmiError)
    assert TmiError("plain").data == {}
