"""Chat client driving one transport connection through its lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from enum import Enum, auto
from typing import Any

from tenacity import RetryCallState

from ..config.model import ConnectionConfig
from ..constants import AUTH_FAILURE_NOTICES
from ..errors import CredentialsRejected, TransportFailure
from ..irc.frames import join_frame, nick_frame, pass_frame, privmsg_frame
from ..irc.heartbeat import is_keepalive_ping, pong_for
from ..irc.models import ChatEvent, EventType
from ..irc.parser import can_parse, parse
from ..logs.logger import logger
from ..utils.helpers import invoke_callback
from ..utils.retry import reconnect_retrying
from .session import ChannelSet, ChatSession, ConnectSession
from .transport import Transport, WebSocketTransport

ConnectHandler = Callable[[ConnectSession], Any]
MessageHandler = Callable[[ChatSession, ChatEvent], Any]
StreamTransform = Callable[[ChatSession, AsyncIterator[ChatEvent]], Any]
_Consumer = Callable[[Any, ChatSession], Any]


class ClientState(Enum):
    IDLE = auto()
    CONNECTING = auto()
    AUTHENTICATING = auto()
    JOINING_CHANNELS = auto()
    STREAMING = auto()
    RECONNECTING = auto()
    CLOSED = auto()


class _StreamLost(Exception):
    """A stable STREAMING connection failed; starts a fresh retry budget."""

    def __init__(self, cause: TransportFailure) -> None:
        super().__init__(str(cause))
        self.cause = cause


class ChatClient:  # pylint: disable=too-many-instance-attributes
    """Client owning one chat connection.

    The lifecycle is ``IDLE → CONNECTING → AUTHENTICATING → JOINING_CHANNELS →
    STREAMING``; transport failures move to ``RECONNECTING`` and back to
    ``CONNECTING`` with capped exponential backoff. ``CLOSED`` is terminal and
    reached after a stop request, retry exhaustion or a non-retryable error.

    Failed attempts are counted across connections. A drop only starts a
    fresh budget when the stream had stayed up for ``stable_stream_window``
    seconds; shorter streams count as failed attempts, so a server that keeps
    accepting and dropping the connection exhausts the budget.

    Channel membership persists across reconnects: the client rejoins the
    live channel set, which sessions mutate through ``join``/``leave``.

    Args:
        config: Immutable connection configuration.
        transport: Transport to use; a ``WebSocketTransport`` by default.
        on_connect: Default connect-time callback, given a ``ConnectSession``.
        on_message: Default message callback(s), each given
            ``(session, event)``. Sync and async callables are accepted.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        transport: Transport | None = None,
        *,
        on_connect: ConnectHandler | None = None,
        on_message: MessageHandler | Iterable[MessageHandler] | None = None,
    ) -> None:
        self.config = config
        self.transport = transport or WebSocketTransport()
        self.channels = ChannelSet(config.initial_channels)
        self.state = ClientState.IDLE
        self._on_connect = on_connect
        if on_message is None:
            self._on_message: list[MessageHandler] = []
        elif callable(on_message):
            self._on_message = [on_message]
        else:
            self._on_message = list(on_message)
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._stop_event = asyncio.Event()
        self._running = False
        self._lines_received = 0
        self._auth_sent_at = 0.0
        self._streaming_since = 0.0
        self._stream_closed = False

    @property
    def username(self) -> str:
        return self.config.username

    @property
    def is_running(self) -> bool:
        return self._running

    def set_connect_handler(self, handler: ConnectHandler | None) -> None:
        self._on_connect = handler

    def add_message_handler(self, handler: MessageHandler) -> None:
        self._on_message.append(handler)

    def publish(self, text: str) -> None:
        """Queue ``text`` for every joined channel, independent of incoming traffic."""
        self._outbox.put_nowait(text)

    def stop(self) -> None:
        """Request the client to stop; a running lifecycle ends promptly."""
        logger.log_event(
            "client", "stop_requested", level=logging.DEBUG, user=self.username
        )
        self._stop_event.set()
        if not self._running:
            self._set_state(ClientState.CLOSED)

    async def connect(
        self,
        on_connect: ConnectHandler | None = None,
        on_message: MessageHandler | None = None,
    ) -> None:
        """Run the lifecycle, invoking message callbacks per incoming event.

        ``on_connect``/``on_message`` replace the callbacks given at
        construction for this run. Returns after ``stop()``; raises the last
        ``TransportFailure`` after retry exhaustion and ``CredentialsRejected``
        when the server refused the login.
        """
        handlers = [on_message] if on_message is not None else list(self._on_message)

        async def consume(handle: Any, session: ChatSession) -> None:
            async for event in self._events(handle, session):
                await self._dispatch(handlers, session, event)

        await self._run(on_connect or self._on_connect, consume)

    async def receive(
        self,
        on_connect: ConnectHandler | None = None,
        transform: StreamTransform | None = None,
    ) -> None:
        """Run the lifecycle handing the whole event stream to ``transform``.

        ``transform(session, events)`` may return an async iterable, which is
        drained, or an awaitable. Session actions are flushed after every
        event pulled from ``events`` and once more when the transform ends.
        A transform that finishes while the connection is still open ends
        the lifecycle; it is not treated as a dropped connection.
        """

        async def consume(handle: Any, session: ChatSession) -> None:
            events = self._events(handle, session)
            result = transform(session, events) if transform else events
            if hasattr(result, "__aiter__"):
                async for _ in result:
                    await self._flush(handle, session)
            elif result is not None:
                await result
            await self._flush(handle, session)

        await self._run(on_connect or self._on_connect, consume)

    def _set_state(self, new_state: ClientState) -> None:
        if self.state != new_state:
            logger.log_event(
                "client",
                "state_change",
                level=logging.DEBUG,
                user=self.username,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    async def _run(
        self, on_connect: ConnectHandler | None, consume: _Consumer
    ) -> None:
        if self.state is ClientState.CLOSED:
            raise RuntimeError("client is closed")
        if self._running:
            raise RuntimeError("client is already running")
        self._running = True
        try:
            while True:
                try:
                    async for attempt in reconnect_retrying(
                        max_attempts=self.config.max_reconnect_attempts,
                        base_delay=self.config.reconnect_base_delay,
                        max_delay=self.config.reconnect_max_delay,
                        sleep=self._sleep,
                        before_sleep=self._before_retry,
                    ):
                        with attempt:
                            await self._run_once(on_connect, consume)
                    return
                except _StreamLost as e:
                    logger.log_event(
                        "client",
                        "stream_lost",
                        level=logging.WARNING,
                        user=self.username,
                        error=str(e),
                    )
                    self._set_state(ClientState.RECONNECTING)
                    await self._sleep(self.config.reconnect_base_delay)
        except TransportFailure as e:
            logger.log_event(
                "client",
                "retries_exhausted",
                level=logging.ERROR,
                user=self.username,
                attempts=self.config.max_reconnect_attempts,
                error=str(e),
            )
            raise
        except CredentialsRejected as e:
            logger.log_event(
                "client",
                "credentials_rejected",
                level=logging.ERROR,
                user=self.username,
                reason=str(e),
            )
            raise
        finally:
            self._running = False
            self._set_state(ClientState.CLOSED)
            logger.log_event("client", "closed", user=self.username)

    async def _run_once(
        self, on_connect: ConnectHandler | None, consume: _Consumer
    ) -> None:
        if self._stop_event.is_set():
            return
        self._auth_sent_at = 0.0
        self._lines_received = 0
        self._stream_closed = False
        self._set_state(ClientState.CONNECTING)
        logger.log_event(
            "client", "connect_start", user=self.username, url=self.config.url
        )
        handle = await self.transport.connect(self.config.url)
        streamed = False
        try:
            await self._authenticate(handle)
            await self._join_channels(handle)
            connect_session = ConnectSession(self.channels, username=self.username)
            if on_connect is not None:
                await invoke_callback(on_connect, connect_session)
            await self._flush(handle, connect_session)
            self._set_state(ClientState.STREAMING)
            streamed = True
            self._streaming_since = asyncio.get_running_loop().time()
            logger.log_event(
                "client", "streaming", user=self.username, channels=len(self.channels)
            )
            session = ChatSession(self.channels, username=self.username)
            await self._stream(handle, session, consume)
        except TransportFailure as e:
            self._check_early_close(e)
            if streamed and self._was_stable():
                raise _StreamLost(e) from e
            raise
        finally:
            await self.transport.close(handle)

    async def _authenticate(self, handle: Any) -> None:
        self._set_state(ClientState.AUTHENTICATING)
        await self._send(handle, pass_frame(self.config.password))
        await self._send(handle, nick_frame(self.config.username))
        self._auth_sent_at = asyncio.get_running_loop().time()
        self._lines_received = 0
        logger.log_event("client", "auth_sent", level=logging.DEBUG, user=self.username)
        for capability in self.config.capabilities:
            await self._send(handle, capability.frame)
        if self.config.capabilities:
            logger.log_event(
                "client",
                "capabilities_requested",
                level=logging.DEBUG,
                user=self.username,
                capabilities=",".join(c.value for c in self.config.capabilities),
            )

    async def _join_channels(self, handle: Any) -> None:
        self._set_state(ClientState.JOINING_CHANNELS)
        channels = list(self.channels)
        for channel in channels:
            await self._send(handle, join_frame(channel))
        logger.log_event(
            "client",
            "join_sent",
            level=logging.DEBUG,
            user=self.username,
            count=len(channels),
        )

    def _check_early_close(self, error: TransportFailure) -> None:
        # Heuristic: no acknowledgement exists for PASS/NICK, so a close without
        # any traffic shortly after auth is read as rejected credentials.
        if self._lines_received:
            return
        elapsed = asyncio.get_running_loop().time() - self._auth_sent_at
        if self._auth_sent_at and elapsed < self.config.credentials_reject_window:
            raise CredentialsRejected(
                f"Connection closed {elapsed:.1f}s after authentication; "
                f"check credentials of {self.username}",
                data={"username": self.username, "elapsed": elapsed},
            ) from error

    async def _stream(
        self, handle: Any, session: ChatSession, consume: _Consumer
    ) -> None:
        """Run reader, publisher and stop watcher until the first one ends.

        A reader that returns before the transport closed means a stream
        transform finished on its own; that ends the lifecycle cleanly.
        """
        reader = asyncio.create_task(consume(handle, session))
        publisher = asyncio.create_task(self._publish_loop(handle))
        stopper = asyncio.create_task(self._stop_event.wait())
        tasks = (reader, publisher, stopper)
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        if stopper in done:
            return
        for task in (reader, publisher):
            if task in done and not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]
        if not self._stream_closed:
            logger.log_event("client", "transform_finished", user=self.username)
            self._stop_event.set()
            return
        raise TransportFailure("Connection closed by server")

    async def _events(
        self, handle: Any, session: ChatSession
    ) -> AsyncIterator[ChatEvent]:
        async for frame in self.transport.receive(handle):
            for raw_line in frame.split("\n"):
                line = raw_line.rstrip("\r")
                if not line:
                    continue
                self._lines_received += 1
                if is_keepalive_ping(line):
                    await self._send(handle, pong_for(line))
                    logger.log_event(
                        "client", "ping", level=logging.DEBUG, user=self.username
                    )
                    continue
                if not can_parse(line):
                    logger.log_event(
                        "client",
                        "line_dropped",
                        level=logging.DEBUG,
                        user=self.username,
                        line=line,
                    )
                    continue
                event = parse(line)
                self._inspect_control(event)
                if self._is_self_message(event):
                    logger.log_event(
                        "client",
                        "self_message_dropped",
                        level=logging.DEBUG,
                        user=self.username,
                        channel=event.channel,
                    )
                    continue
                yield event
                await self._flush(handle, session)
        self._stream_closed = True

    def _was_stable(self) -> bool:
        elapsed = asyncio.get_running_loop().time() - self._streaming_since
        return elapsed >= self.config.stable_stream_window

    def _inspect_control(self, event: ChatEvent) -> None:
        if event.type is EventType.NOTICE and event.text and event.text.startswith(
            AUTH_FAILURE_NOTICES
        ):
            raise CredentialsRejected(
                f"Server refused login of {self.username}: {event.text}",
                data={"username": self.username, "notice": event.text},
            )
        if event.type is EventType.RECONNECT:
            logger.log_event(
                "client", "server_reconnect", level=logging.WARNING, user=self.username
            )
            raise TransportFailure("Server requested reconnect")

    def _is_self_message(self, event: ChatEvent) -> bool:
        return (
            self.config.filter_self_messages
            and event.user is not None
            and event.user.lower() == self.username.lower()
        )

    async def _dispatch(
        self, handlers: list[MessageHandler], session: ChatSession, event: ChatEvent
    ) -> None:
        for handler in handlers:
            try:
                await invoke_callback(handler, session, event)
            except Exception as e:  # noqa: BLE001
                logger.log_event(
                    "client",
                    "message_handler_error",
                    level=logging.ERROR,
                    user=self.username,
                    channel=event.channel,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def _flush(self, handle: Any, session: ChatSession) -> None:
        frames = session.consume_actions()
        for frame in frames:
            await self._send(handle, frame)
        if frames:
            logger.log_event(
                "client",
                "actions_flushed",
                level=logging.DEBUG,
                user=self.username,
                count=len(frames),
            )

    async def _publish_loop(self, handle: Any) -> None:
        while True:
            text = await self._outbox.get()
            targets = list(self.channels)
            for channel in targets:
                await self._send(handle, privmsg_frame(channel, text))
            logger.log_event(
                "client",
                "published",
                level=logging.DEBUG,
                user=self.username,
                count=len(targets),
            )

    async def _send(self, handle: Any, frame: str) -> None:
        await self.transport.send(handle, frame)

    async def _sleep(self, delay: float) -> None:
        """Backoff wait that ends early when a stop is requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except TimeoutError:
            pass

    def _before_retry(self, retry_state: RetryCallState) -> None:
        self._set_state(ClientState.RECONNECTING)
        outcome = retry_state.outcome
        error = outcome.exception() if outcome is not None else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.log_event(
            "client",
            "retry_scheduled",
            level=logging.WARNING,
            user=self.username,
            attempt=retry_state.attempt_number,
            delay=delay,
            error=str(error),
        )
