"""Builders for the outgoing plain-text wire frames."""

from __future__ import annotations


def normalize_channel(channel: str) -> str:
    """Return ``channel`` with exactly one leading ``#``, case untouched."""
    name = channel.strip()
    return name if name.startswith("#") else f"#{name}"


def pass_frame(password: str) -> str:
    return f"PASS {password}"


def nick_frame(username: str) -> str:
    return f"NICK {username}"


def cap_req_frame(capability: str) -> str:
    return f"CAP REQ :{capability}"


def join_frame(channel: str) -> str:
    return f"JOIN {normalize_channel(channel)}"


def part_frame(channel: str) -> str:
    return f"PART {normalize_channel(channel)}"


def privmsg_frame(channel: str, text: str) -> str:
    return f"PRIVMSG {normalize_channel(channel)} :{text}"


def pong_frame(payload: str | None = None) -> str:
    return f"PONG :{payload}" if payload else "PONG"
