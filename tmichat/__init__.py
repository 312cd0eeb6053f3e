"""Client for the Twitch Messaging Interface (TMI) chat protocol."""

from .bot import Bot, BotBase, BotRegistry, DefaultBot, PublishingBot, ReactiveBot
from .chat import (
    ActionQueue,
    AiohttpTransport,
    ChannelSet,
    ChatClient,
    ChatSession,
    ClientState,
    ConnectSession,
    Transport,
    WebSocketTransport,
)
from .config import (
    ConnectionConfig,
    ConnectionParameters,
    ConnectionParametersProvider,
    EnvironmentConnectionParametersProvider,
    StaticConnectionParametersProvider,
    connection_config,
)
from .errors import (
    CredentialsRejected,
    MalformedMessage,
    NoCredentialsProvider,
    TmiError,
    TransportFailure,
)
from .irc import Capability, ChatEvent, EventType, can_parse, is_user_subscribed, parse

__all__ = [
    "ActionQueue",
    "AiohttpTransport",
    "Bot",
    "BotBase",
    "BotRegistry",
    "Capability",
    "ChannelSet",
    "ChatClient",
    "ChatEvent",
    "ChatSession",
    "ClientState",
    "ConnectSession",
    "ConnectionConfig",
    "ConnectionParameters",
    "ConnectionParametersProvider",
    "CredentialsRejected",
    "DefaultBot",
    "EnvironmentConnectionParametersProvider",
    "EventType",
    "MalformedMessage",
    "NoCredentialsProvider",
    "PublishingBot",
    "ReactiveBot",
    "StaticConnectionParametersProvider",
    "TmiError",
    "Transport",
    "TransportFailure",
    "WebSocketTransport",
    "can_parse",
    "connection_config",
    "is_user_subscribed",
    "parse",
]
