"""Keep-alive handling for bare server PINGs.

A keep-alive is a command-only line (no tags, no prefix) such as
``PING :tmi.twitch.tv``. It is answered straight away and never reaches the
message parser.
"""

from __future__ import annotations

from .frames import pong_frame


def is_keepalive_ping(line: str) -> bool:
    return line == "PING" or line.startswith("PING ")


def pong_for(line: str) -> str:
    """Build the PONG echoing the trailing payload of a keep-alive ``line``."""
    payload = line[4:].strip()
    if payload.startswith(":"):
        payload = payload[1:]
    return pong_frame(payload or None)
