"""Bidirectional text-frame transports.

Minimal contract consumed by ``ChatClient``:
    connect(url) -> handle
    send(handle, frame) -> None            (raises TransportFailure)
    receive(handle) -> AsyncIterator[str]  (in order; ends on a clean close,
                                            raises TransportFailure otherwise)
    close(handle) -> None                  (never raises)

Library specific errors are wrapped into ``TransportFailure`` so the reconnect
policy only has to know about one exception type.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import aiohttp
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..constants import TRANSPORT_OPEN_TIMEOUT
from ..errors import TransportFailure
from ..logs.logger import logger


class Transport(ABC):
    """Abstract message-stream transport."""

    @abstractmethod
    async def connect(self, url: str) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def send(self, handle: Any, frame: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def receive(self, handle: Any) -> AsyncIterator[str]:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def close(self, handle: Any) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class WebSocketTransport(Transport):
    """Default transport backed by the ``websockets`` client."""

    def __init__(self, open_timeout: float = TRANSPORT_OPEN_TIMEOUT) -> None:
        self.open_timeout = open_timeout

    async def connect(self, url: str) -> Any:
        try:
            ws = await websockets.connect(url, open_timeout=self.open_timeout)
        except (OSError, TimeoutError, WebSocketException) as e:
            logger.log_event(
                "transport", "open_failed", level=logging.WARNING, url=url, error=str(e)
            )
            raise TransportFailure(
                f"WebSocket connection failed: {str(e)}", data={"url": url}
            ) from e
        logger.log_event("transport", "open", level=logging.DEBUG, url=url)
        return ws

    async def send(self, handle: Any, frame: str) -> None:
        try:
            await handle.send(frame)
        except (OSError, ConnectionClosed) as e:
            raise TransportFailure(f"WebSocket send failed: {str(e)}") from e

    async def receive(self, handle: Any) -> AsyncIterator[str]:
        try:
            async for frame in handle:
                yield frame.decode("utf-8") if isinstance(frame, bytes) else frame
        except (OSError, ConnectionClosed) as e:
            raise TransportFailure(f"WebSocket receive failed: {str(e)}") from e

    async def close(self, handle: Any) -> None:
        try:
            await handle.close()
        except (OSError, WebSocketException) as e:
            logger.log_event(
                "transport", "close_error", level=logging.WARNING, error=str(e)
            )
            return
        logger.log_event("transport", "closed", level=logging.DEBUG)


@dataclass
class _AiohttpHandle:
    ws: aiohttp.ClientWebSocketResponse
    session: aiohttp.ClientSession
    owns_session: bool


class AiohttpTransport(Transport):
    """Transport backed by ``aiohttp``; reuses ``session`` when one is given."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        open_timeout: float = TRANSPORT_OPEN_TIMEOUT,
    ) -> None:
        self.session = session
        self.open_timeout = open_timeout

    async def connect(self, url: str) -> _AiohttpHandle:
        owns_session = self.session is None
        session = self.session or aiohttp.ClientSession()
        try:
            ws = await asyncio.wait_for(session.ws_connect(url), self.open_timeout)
        except (aiohttp.ClientError, OSError, TimeoutError) as e:
            if owns_session:
                await session.close()
            logger.log_event(
                "transport", "open_failed", level=logging.WARNING, url=url, error=str(e)
            )
            raise TransportFailure(
                f"WebSocket connection failed: {str(e)}", data={"url": url}
            ) from e
        logger.log_event("transport", "open", level=logging.DEBUG, url=url)
        return _AiohttpHandle(ws=ws, session=session, owns_session=owns_session)

    async def send(self, handle: _AiohttpHandle, frame: str) -> None:
        if handle.ws.closed:
            raise TransportFailure("WebSocket send failed: connection closed")
        try:
            await handle.ws.send_str(frame)
        except (aiohttp.ClientError, OSError) as e:
            raise TransportFailure(f"WebSocket send failed: {str(e)}") from e

    async def receive(self, handle: _AiohttpHandle) -> AsyncIterator[str]:
        try:
            async for msg in handle.ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    yield msg.data
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    yield msg.data.decode("utf-8")
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise TransportFailure(
                        f"WebSocket receive failed: {handle.ws.exception()}"
                    )
        except (aiohttp.ClientError, OSError) as e:
            raise TransportFailure(f"WebSocket receive failed: {str(e)}") from e

    async def close(self, handle: _AiohttpHandle) -> None:
        try:
            await handle.ws.close()
        except (aiohttp.ClientError, OSError) as e:
            logger.log_event(
                "transport", "close_error", level=logging.WARNING, error=str(e)
            )
        finally:
            if handle.owns_session:
                await handle.session.close()
        logger.log_event("transport", "closed", level=logging.DEBUG)
