"""Wire-level protocol support: event model, parser, frames, capabilities."""

from .capabilities import Capability
from .frames import normalize_channel
from .heartbeat import is_keepalive_ping, pong_for
from .models import BadgeList, ChatEvent, EventType, TagValue, Tags
from .parser import can_parse, is_user_subscribed, parse, parse_tags

__all__ = [
    "BadgeList",
    "Capability",
    "ChatEvent",
    "EventType",
    "TagValue",
    "Tags",
    "can_parse",
    "is_keepalive_ping",
    "is_user_subscribed",
    "normalize_channel",
    "parse",
    "parse_tags",
    "pong_for",
]
