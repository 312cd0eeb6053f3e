"""Typed representation of parsed chat lines."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TypeAlias

BadgeList: TypeAlias = tuple[tuple[str, str], ...]
TagValue: TypeAlias = str | BadgeList
Tags: TypeAlias = Mapping[str, TagValue]

_EMPTY_TAGS: Tags = MappingProxyType({})


class EventType(str, Enum):
    PRIVMSG = "PRIVMSG"
    JOIN = "JOIN"
    PART = "PART"
    NOTICE = "NOTICE"
    PING = "PING"
    PONG = "PONG"
    CLEARCHAT = "CLEARCHAT"
    CLEARMSG = "CLEARMSG"
    USERSTATE = "USERSTATE"
    GLOBALUSERSTATE = "GLOBALUSERSTATE"
    ROOMSTATE = "ROOMSTATE"
    USERNOTICE = "USERNOTICE"
    HOSTTARGET = "HOSTTARGET"
    WHISPER = "WHISPER"
    RECONNECT = "RECONNECT"
    CAP = "CAP"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_command(cls, command: str) -> EventType:
        try:
            return cls(command.upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ChatEvent:
    """One parsed incoming line.

    ``channel`` is stored without its leading ``#``. ``user`` is the nick part
    of the prefix and is ``None`` for server-originated lines. ``raw_command``
    keeps the verb as received, which is the only way to tell apart the
    different ``UNKNOWN`` commands (numerics included).
    """

    type: EventType
    raw_command: str
    raw_prefix: str | None = None
    channel: str | None = None
    user: str | None = None
    text: str | None = None
    tags: Tags = field(default_factory=lambda: _EMPTY_TAGS)
    params: tuple[str, ...] = ()

    def tag(self, key: str) -> TagValue | None:
        return self.tags.get(key)

    @property
    def badges(self) -> BadgeList:
        value = self.tags.get("badges")
        return value if isinstance(value, tuple) else ()
