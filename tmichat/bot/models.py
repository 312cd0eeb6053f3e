"""Bot variants managed by the ``BotRegistry``.

A bot is either a ``Bot`` (one callback per incoming event) or a
``PublishingBot`` (one callback transforming the whole event stream). The
registry picks the client entry point by matching on that variant.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from ..chat.client import ChatClient
from ..chat.session import ChatSession, ConnectSession
from ..irc.models import ChatEvent
from ..logs.logger import logger
from ..utils.helpers import invoke_callback


class BotBase(ABC):
    """Common descriptor of a named bot.

    Attributes:
        name: Unique key within a registry; a random UUID when omitted.
        channels: Channels joined on connect when the registry builds the client.
        auto_connect: Whether the registry connects the bot on start.
        client: Preassigned client; resolved from credentials when ``None``.
    """

    def __init__(
        self,
        name: str | None = None,
        channels: Iterable[str] = (),
        *,
        auto_connect: bool = True,
        client: ChatClient | None = None,
    ) -> None:
        self.name = name or str(uuid.uuid4())
        self.channels = tuple(channels)
        self.auto_connect = auto_connect
        self.client = client

    def initialize(self) -> None:
        """Hook run once when the bot is registered."""

    def on_connect(self, session: ConnectSession) -> Any:
        """Hook run after joining the initial channels, before streaming."""

    def before_shutdown(self) -> None:
        """Hook run when the registry stops the bot."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class Bot(BotBase):
    @abstractmethod
    def on_message(self, session: ChatSession, event: ChatEvent) -> Any:
        """Handle one incoming event; may be a coroutine function."""


class PublishingBot(BotBase):
    @abstractmethod
    def on_messages(
        self, session: ChatSession, events: AsyncIterator[ChatEvent]
    ) -> AsyncIterator[Any]:
        """Transform the event stream.

        The session's pending actions are flushed every time an item is
        yielded.
        """


class ReactiveBot(PublishingBot):
    """Stream consumer variant: ``on_messages`` is awaited until the stream ends."""

    @abstractmethod
    async def on_messages(  # type: ignore[override]
        self, session: ChatSession, events: AsyncIterator[ChatEvent]
    ) -> None:
        """Consume the event stream; actions are flushed after every event."""


class DefaultBot(Bot):
    """A ``Bot`` assembled from plain callables instead of a subclass."""

    def __init__(
        self,
        name: str | None = None,
        channels: Iterable[str] = (),
        *,
        auto_connect: bool = True,
        client: ChatClient | None = None,
        on_connect: Callable[[ConnectSession], Any] | None = None,
        on_message: Iterable[Callable[[ChatSession, ChatEvent], Any]] = (),
        initialize: Callable[[DefaultBot], Any] | None = None,
        before_shutdown: Callable[[DefaultBot], Any] | None = None,
    ) -> None:
        super().__init__(name, channels, auto_connect=auto_connect, client=client)
        self._on_connect = on_connect
        self._on_message = list(on_message)
        self._initialize = initialize
        self._before_shutdown = before_shutdown

    def add_message_handler(
        self, handler: Callable[[ChatSession, ChatEvent], Any]
    ) -> None:
        self._on_message.append(handler)

    def initialize(self) -> None:
        if self._initialize:
            self._initialize(self)

    async def on_connect(self, session: ConnectSession) -> None:
        if self._on_connect:
            await invoke_callback(self._on_connect, session)

    async def on_message(self, session: ChatSession, event: ChatEvent) -> None:
        """Run every handler; a failing handler is logged and skipped."""
        for handler in self._on_message:
            try:
                await invoke_callback(handler, session, event)
            except Exception as e:  # noqa: BLE001
                logger.log_event(
                    "bot",
                    "message_handler_error",
                    level=logging.ERROR,
                    user=session.username,
                    channel=event.channel,
                    bot=self.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def before_shutdown(self) -> None:
        if self._before_shutdown:
            self._before_shutdown(self)
