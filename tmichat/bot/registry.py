"""BotRegistry - resolves one client per bot and runs their connections."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from ..chat.client import ChatClient
from ..chat.session import ConnectSession
from ..chat.transport import Transport
from ..config.model import ConnectionConfig
from ..config.providers import ConnectionParametersProvider
from ..constants import DEFAULT_PROVIDER_KEY, TMI_URL
from ..errors import NoCredentialsProvider
from ..irc.capabilities import Capability
from ..utils.helpers import invoke_callback
from .models import Bot, BotBase, PublishingBot

B = TypeVar("B", bound=BotBase)


class BotRegistry:  # pylint: disable=too-many-instance-attributes
    """Registry of named bots, each running on its own ``ChatClient``.

    Clients are resolved at construction: a bot's preassigned client wins,
    otherwise the provider registered for the bot's name, otherwise the
    ``"*"`` default provider. A bot with none of these is a configuration
    error. Connections run as independent tasks; one bot failing or
    reconnecting never affects another.

    Constructing a registry connects nothing. Auto-connect bots are started
    by ``start()``, by ``await BotRegistry.create(...)`` or on entering
    ``async with``, since connection tasks need a running event loop.

    Attributes:
        bots: Bots keyed by name.
        clients: Resolved client per bot name; read-only after construction.
        tasks: Connection task per bot name, once started.
        failures: Last terminal error per bot name.

    Args:
        bots: Bots to register; names must be unique.
        providers: Connection parameters providers, keyed by their ``bot_name``.
        default_capabilities: Capabilities activated on connect for every bot
            without an entry in ``bot_capabilities``.
        bot_capabilities: Per-bot capability lists.
        transport: Transport given to clients built by the registry.
        url: Endpoint used for clients built by the registry.

    Raises:
        NoCredentialsProvider: If a bot has no client and no provider.
        ValueError: If two bots share a name.
    """

    def __init__(
        self,
        bots: Iterable[BotBase],
        providers: Iterable[ConnectionParametersProvider] = (),
        *,
        default_capabilities: Sequence[Capability | str] = (),
        bot_capabilities: Mapping[str, Sequence[Capability | str]] | None = None,
        transport: Transport | None = None,
        url: str = TMI_URL,
    ) -> None:
        self.bots: dict[str, BotBase] = {}
        for bot in bots:
            if bot.name in self.bots:
                raise ValueError(f"Duplicate bot name: {bot.name}")
            self.bots[bot.name] = bot
        self.default_capabilities = tuple(
            Capability.parse(c) for c in default_capabilities
        )
        self.bot_capabilities = {
            name: tuple(Capability.parse(c) for c in caps)
            for name, caps in (bot_capabilities or {}).items()
        }
        self.transport = transport
        self.url = url
        self.clients = self._resolve_clients(providers)
        self.tasks: dict[str, asyncio.Task[None]] = {}
        self.failures: dict[str, BaseException] = {}
        for bot in self.bots.values():
            bot.initialize()
            logging.debug(f"🤖 Bot registered: {bot.name} kind={type(bot).__name__}")

    @classmethod
    async def create(cls, *args: Any, **kwargs: Any) -> BotRegistry:
        """Construct a registry and start its auto-connect bots."""
        registry = cls(*args, **kwargs)
        registry.start()
        return registry

    async def __aenter__(self) -> BotRegistry:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def bot_names(self) -> list[str]:
        return list(self.bots)

    def start(self) -> list[asyncio.Task[None]]:
        """Start connections of every bot flagged ``auto_connect``."""
        auto = [bot.name for bot in self.bots.values() if bot.auto_connect]
        logging.info(f"▶️ Starting auto-connect bots (count={len(auto)})")
        return [task for name in auto if (task := self.connect(name)) is not None]

    def connect(self, name: str) -> asyncio.Task[None] | None:
        """Start the connection of bot ``name``.

        Returns:
            The running connection task, or ``None`` when no bot has that name.
        """
        bot = self.bots.get(name)
        if bot is None:
            logging.warning(
                f"❓ No bot named {name}; no connection has been established"
            )
            return None
        task = self.tasks.get(name)
        if task is not None and not task.done():
            logging.debug(f"↪️ Bot connection already running: {name}")
            return task
        task = asyncio.create_task(self._run_bot(bot), name=f"bot:{name}")
        self.tasks[name] = task
        logging.debug(f"🚀 Bot connection started: {name}")
        return task

    def connect_all(self) -> list[asyncio.Task[None]]:
        return [task for name in self.bots if (task := self.connect(name)) is not None]

    def is_connected(self, name: str) -> bool:
        task = self.tasks.get(name)
        return task is not None and not task.done()

    def get_bots_by_type(self, kind: type[B]) -> list[B]:
        """Bots whose runtime variant is ``kind`` or a subtype of it."""
        return [bot for bot in self.bots.values() if isinstance(bot, kind)]

    def capabilities_for(self, name: str) -> tuple[Capability, ...]:
        return self.bot_capabilities.get(name, self.default_capabilities)

    def stop(self, name: str) -> bool:
        """Ask bot ``name`` to stop; returns False for an unknown name."""
        bot = self.bots.get(name)
        if bot is None:
            logging.warning(f"❓ No bot named {name}; nothing to stop")
            return False
        try:
            bot.before_shutdown()
        except Exception as e:  # noqa: BLE001
            logging.warning(f"💥 before_shutdown failed for {name}: {str(e)}")
        client = self.clients[name]
        task = self.tasks.get(name)
        if task is not None and not task.done() and not client.is_running:
            # Started but not yet scheduled; the client never ran.
            task.cancel()
        client.stop()
        logging.info(f"🛑 Bot stopped: {name}")
        return True

    async def wait(self) -> None:
        """Wait until every started connection task has finished."""
        if self.tasks:
            await asyncio.gather(*self.tasks.values(), return_exceptions=True)

    async def close(self) -> None:
        logging.warning("🛑 Stopping all bots")
        for name in self.bots:
            self.stop(name)
        await self.wait()
        logging.info("👋 All bots stopped")

    async def _run_bot(self, bot: BotBase) -> None:
        client = self.clients[bot.name]
        capabilities = self.capabilities_for(bot.name)

        async def on_connect(session: ConnectSession) -> None:
            for capability in capabilities:
                capability.activate(session)
            await invoke_callback(bot.on_connect, session)

        try:
            match bot:
                case Bot():
                    await client.connect(on_connect, bot.on_message)
                case PublishingBot():
                    await client.receive(on_connect, bot.on_messages)
                case _:
                    raise TypeError(f"Unsupported bot variant: {type(bot).__name__}")
        except Exception as e:  # noqa: BLE001
            self.failures[bot.name] = e
            logging.error(
                f"💥 Bot {bot.name} failed: {type(e).__name__}: {str(e)}"
            )
            return
        logging.info(f"🏁 Bot connection finished: {bot.name}")

    def _resolve_clients(
        self, providers: Iterable[ConnectionParametersProvider]
    ) -> dict[str, ChatClient]:
        keyed = {provider.bot_name: provider for provider in providers}
        return {
            name: self._resolve_client(bot, keyed) for name, bot in self.bots.items()
        }

    def _resolve_client(
        self, bot: BotBase, providers: Mapping[str, ConnectionParametersProvider]
    ) -> ChatClient:
        if bot.client is not None:
            return bot.client
        provider = providers.get(bot.name) or providers.get(DEFAULT_PROVIDER_KEY)
        if provider is None:
            raise NoCredentialsProvider(
                f"no ConnectionParametersProvider found for bot with name {bot.name} "
                "and no default provider registered",
                data={"bot": bot.name},
            )
        parameters = provider.get_connection_parameters()
        config = ConnectionConfig(
            username=parameters.username,
            password=parameters.password,
            url=self.url,
            initial_channels=bot.channels,
        )
        return ChatClient(config, transport=self.transport)
