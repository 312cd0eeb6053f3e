"""Opt-in protocol capabilities negotiated at connect time."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from .frames import cap_req_frame

if TYPE_CHECKING:  # pragma: no cover
    from ..chat.session import ConnectSession


class Capability(str, Enum):
    TAGS = "twitch.tv/tags"
    COMMANDS = "twitch.tv/commands"
    MEMBERSHIP = "twitch.tv/membership"

    @property
    def frame(self) -> str:
        return cap_req_frame(self.value)

    def activate(self, session: ConnectSession) -> None:
        """Connect-time action requesting this capability on ``session``."""
        session.request_capabilities(self)

    @classmethod
    def parse(cls, raw: str | Capability) -> Capability:
        """Accept an enum member, its value or its (case-insensitive) name."""
        if isinstance(raw, cls):
            return raw
        text = str(raw).strip()
        try:
            return cls(text)
        except ValueError:
            pass
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"Unknown capability: {raw!r}") from None
