"""User-facing session surface.

Callbacks never touch the transport. Every session operation appends a frame
to the session's ``ActionQueue``; the owning client drains the queue and sends
the frames after each callback round.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator

from ..irc.capabilities import Capability
from ..irc.frames import join_frame, normalize_channel, part_frame, privmsg_frame
from ..logs.logger import logger


class ActionQueue:
    """Ordered buffer of pending outgoing frames."""

    def __init__(self) -> None:
        self._frames: list[str] = []
        self._lock = threading.Lock()

    def append(self, frame: str) -> None:
        with self._lock:
            self._frames.append(frame)

    def drain(self) -> list[str]:
        """Atomically take every pending frame, leaving the queue empty."""
        with self._lock:
            frames, self._frames = self._frames, []
        return frames

    def __len__(self) -> int:
        return len(self._frames)

    def __bool__(self) -> bool:
        return bool(self._frames)


class ChannelSet:
    """Ordered set of joined channel names, each stored with a leading ``#``.

    Membership tests accept names with or without the ``#``.
    """

    def __init__(self, channels: Iterable[str] = ()) -> None:
        self._channels: dict[str, None] = {}
        for channel in channels:
            self.add(channel)

    def add(self, channel: str) -> bool:
        name = normalize_channel(channel)
        if name in self._channels:
            return False
        self._channels[name] = None
        return True

    def discard(self, channel: str) -> bool:
        name = normalize_channel(channel)
        if name not in self._channels:
            return False
        del self._channels[name]
        return True

    def __contains__(self, channel: object) -> bool:
        return isinstance(channel, str) and normalize_channel(channel) in self._channels

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._channels))

    def __len__(self) -> int:
        return len(self._channels)

    def __repr__(self) -> str:
        return f"ChannelSet({list(self._channels)!r})"


class ChatSession:
    """Command surface handed to message callbacks.

    Args:
        channels: The joined-channel set shared with the owning client.
        actions: The queue the owning client flushes; a fresh one by default.
        username: Authenticated user, used only for log context.
    """

    def __init__(
        self,
        channels: ChannelSet,
        actions: ActionQueue | None = None,
        username: str | None = None,
    ) -> None:
        self.channels = channels
        self.actions = actions if actions is not None else ActionQueue()
        self.username = username

    @property
    def joined_channels(self) -> list[str]:
        return list(self.channels)

    def say(self, channel: str, text: str) -> None:
        self.actions.append(privmsg_frame(channel, text))

    def join(self, *channels: str) -> None:
        for channel in channels:
            if self.channels.add(channel):
                self.actions.append(join_frame(channel))
            else:
                logger.log_event(
                    "session",
                    "join_skipped",
                    level=logging.DEBUG,
                    user=self.username,
                    target=channel.lstrip("#"),
                )

    def leave(self, *channels: str) -> None:
        for channel in channels:
            if self.channels.discard(channel):
                self.actions.append(part_frame(channel))
            else:
                logger.log_event(
                    "session",
                    "leave_skipped",
                    level=logging.DEBUG,
                    user=self.username,
                    target=channel.lstrip("#"),
                )

    def clear_chat(self, channel: str) -> None:
        self.say(channel, "/clear")

    def emote_only(self, channel: str) -> None:
        self.say(channel, "/emoteonly")

    def emote_only_off(self, channel: str) -> None:
        self.say(channel, "/emoteonlyoff")

    def followers_only(self, channel: str) -> None:
        self.say(channel, "/followers")

    def followers_only_off(self, channel: str) -> None:
        self.say(channel, "/followersoff")

    def slow(self, channel: str) -> None:
        self.say(channel, "/slow")

    def slow_off(self, channel: str) -> None:
        self.say(channel, "/slowoff")

    def subscribers(self, channel: str) -> None:
        self.say(channel, "/subscribers")

    def subscribers_off(self, channel: str) -> None:
        self.say(channel, "/subscribersoff")

    def marker(self, channel: str, description: str) -> None:
        self.say(channel, f"/marker {description}".rstrip())

    def has_actions(self) -> bool:
        return bool(self.actions)

    def consume_actions(self) -> list[str]:
        return self.actions.drain()


class ConnectSession(ChatSession):
    """Session handed to connect-time callbacks; adds capability negotiation."""

    def request_capabilities(self, *capabilities: Capability | str) -> None:
        for capability in capabilities:
            self.actions.append(Capability.parse(capability).frame)

    def tag_capabilities(self) -> None:
        self.request_capabilities(Capability.TAGS)

    def command_capabilities(self) -> None:
        self.request_capabilities(Capability.COMMANDS)

    def membership_capabilities(self) -> None:
        self.request_capabilities(Capability.MEMBERSHIP)
