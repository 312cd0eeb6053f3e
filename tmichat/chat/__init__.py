"""Transport, session and client exports."""

from .client import ChatClient, ClientState
from .session import ActionQueue, ChannelSet, ChatSession, ConnectSession
from .transport import AiohttpTransport, Transport, WebSocketTransport

__all__ = [
    "ActionQueue",
    "AiohttpTransport",
    "ChannelSet",
    "ChatClient",
    "ChatSession",
    "ClientState",
    "ConnectSession",
    "Transport",
    "WebSocketTransport",
]
