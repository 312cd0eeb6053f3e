"""Chat line parsing.

A parseable line has the shape::

    [@<tags> ]:<prefix> <COMMAND>[ <params...>][ :<trailing>]

Command-only lines without a prefix (the bare ``PING`` keep-alive) are not
parseable here; see ``heartbeat``.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType

from ..errors import MalformedMessage
from ..logs.logger import logger
from .models import BadgeList, ChatEvent, EventType, TagValue, Tags

_LINE_RE = re.compile(
    r"^(?:@(?P<tags>\S*) +)?"
    r":(?P<prefix>\S+) +"
    r"(?P<command>[A-Z]+|\d{3})"
    r"(?P<rest>(?: .*)?)$"
)
_BADGE_LIST_RE = re.compile(r"^[^,/\s]+/\d+(?:,[^,/\s]+/\d+)*$")
_TAG_ESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}


def can_parse(line: str) -> bool:
    return _LINE_RE.match(line.rstrip("\r\n")) is not None


def parse(line: str) -> ChatEvent:
    """Parse ``line`` into a ``ChatEvent``.

    Raises:
        MalformedMessage: If ``can_parse(line)`` is False.
    """
    stripped = line.rstrip("\r\n")
    match = _LINE_RE.match(stripped)
    if match is None:
        logger.log_event("parser", "malformed", level=logging.ERROR, line=stripped)
        raise MalformedMessage(f"Cannot parse line: {stripped!r}", data={"line": line})

    raw_tags = match.group("tags")
    prefix = match.group("prefix")
    command = match.group("command")
    rest = match.group("rest")

    text: str | None = None
    if rest.startswith(" :"):
        middle, text = "", rest[2:]
    elif " :" in rest:
        middle, text = rest.split(" :", 1)
    else:
        middle = rest
    params = tuple(middle.split())

    channel = next((p[1:] for p in params if p.startswith("#")), None)
    user = prefix.split("!", 1)[0] if "!" in prefix else None

    return ChatEvent(
        type=EventType.from_command(command),
        raw_command=command,
        raw_prefix=prefix,
        channel=channel,
        user=user,
        text=text,
        tags=parse_tags(raw_tags) if raw_tags else MappingProxyType({}),
        params=params,
    )


def parse_tags(raw_tags: str) -> Tags:
    """Parse the ``key=value;...`` tag segment (without its ``@``)."""
    tags: dict[str, TagValue] = {}
    for tag in raw_tags.split(";"):
        if not tag:
            continue
        if "=" in tag:
            key, value = tag.split("=", 1)
        else:
            key, value = tag, ""
        tags[key] = _decode_tag_value(_unescape(value))
    return MappingProxyType(tags)


def _decode_tag_value(value: str) -> TagValue:
    if _BADGE_LIST_RE.match(value):
        return tuple(
            (name, number)
            for name, number in (token.split("/", 1) for token in value.split(","))
        )
    return value


def _unescape(value: str) -> str:
    if "\\" not in value:
        return value
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        # Unknown escapes drop the backslash; a trailing backslash is dropped.
        out.append(_TAG_ESCAPES.get(nxt, nxt))
    return "".join(out)


def is_user_subscribed(event: ChatEvent) -> bool:
    """True if the author carries a positive subscriber badge or ``subscriber=1``."""
    badges: BadgeList = event.badges
    for name, number in badges:
        if name == "subscriber" and int(number) > 0:
            return True
    return event.tags.get("subscriber") == "1"
