from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..constants import (
    CREDENTIALS_REJECT_WINDOW,
    RECONNECT_BASE_DELAY,
    RECONNECT_MAX_ATTEMPTS,
    RECONNECT_MAX_DELAY,
    STABLE_STREAM_WINDOW,
    TMI_CLIENT_PASSWORD_KEY,
    TMI_CLIENT_USERNAME_KEY,
    TMI_URL,
)
from ..irc.capabilities import Capability


def _normalize_channels(channels: Any) -> tuple[str, ...]:
    """Strip whitespace and a leading '#', drop empties, de-duplicate keeping order."""
    if isinstance(channels, str):
        channels = [channels]
    if not isinstance(channels, list | tuple):
        raise ValueError("channels must be a list")
    validated: list[str] = []
    for c in channels:
        if isinstance(c, str):
            stripped = c.strip().lstrip("#")
            if stripped:
                validated.append(stripped)
    return tuple(dict.fromkeys(validated))


class ConnectionParameters(BaseModel):
    """Credentials used to authenticate one connection."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)


class ConnectionConfig(BaseModel):
    """Immutable configuration of one ``ChatClient``.

    Attributes:
        username: Login name sent with ``NICK``.
        password: OAuth token sent with ``PASS`` (``oauth:...``).
        url: Chat endpoint, defaults to the secure Twitch WebSocket endpoint.
        initial_channels: Channels joined right after authenticating.
        filter_self_messages: Drop events authored by ``username``.
        capabilities: Capabilities requested after authenticating.
        username_property: Environment key read when ``username`` is missing.
        password_property: Environment key read when ``password`` is missing.
        max_reconnect_attempts: Attempts per outage before giving up.
        reconnect_base_delay: First backoff delay in seconds, doubled per attempt.
        reconnect_max_delay: Upper bound of a single backoff delay.
        stable_stream_window: Seconds a stream must stay up before its loss
            starts a fresh reconnect budget; shorter streams count as failed
            attempts.
        credentials_reject_window: Seconds after auth during which a silent
            close is reported as rejected credentials; 0 disables the check.
    """

    model_config = ConfigDict(frozen=True)

    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)
    url: str = TMI_URL
    initial_channels: tuple[str, ...] = ()
    filter_self_messages: bool = False
    capabilities: tuple[Capability, ...] = ()
    username_property: str = TMI_CLIENT_USERNAME_KEY
    password_property: str = TMI_CLIENT_PASSWORD_KEY
    max_reconnect_attempts: int = Field(default=RECONNECT_MAX_ATTEMPTS, ge=1)
    reconnect_base_delay: float = Field(default=RECONNECT_BASE_DELAY, ge=0)
    reconnect_max_delay: float = Field(default=RECONNECT_MAX_DELAY, ge=0)
    stable_stream_window: float = Field(default=STABLE_STREAM_WINDOW, ge=0)
    credentials_reject_window: float = Field(default=CREDENTIALS_REJECT_WINDOW, ge=0)

    @field_validator("initial_channels", mode="before")
    @classmethod
    def validate_channels(cls, v: Any) -> tuple[str, ...]:
        return _normalize_channels(v)

    @field_validator("capabilities", mode="before")
    @classmethod
    def validate_capabilities(cls, v: Any) -> tuple[Capability, ...]:
        if isinstance(v, str | Capability):
            v = [v]
        return tuple(dict.fromkeys(Capability.parse(c) for c in v))

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("url must be a ws:// or wss:// endpoint")
        return v

    @model_validator(mode="after")
    def validate_delays(self) -> ConnectionConfig:
        if self.reconnect_max_delay < self.reconnect_base_delay:
            raise ValueError("reconnect_max_delay must be >= reconnect_base_delay")
        return self


def connection_config(**fields: Any) -> ConnectionConfig:
    """Build a ``ConnectionConfig``, filling missing credentials from the environment.

    ``username`` and ``password`` fall back to the environment variables named
    by ``username_property`` / ``password_property`` (``TMI_CLIENT_USERNAME``
    and ``TMI_CLIENT_PASSWORD`` unless overridden).

    Raises:
        pydantic.ValidationError: If a credential is still missing or any
            field is invalid.
    """
    data = dict(fields)
    username_key = data.get("username_property") or TMI_CLIENT_USERNAME_KEY
    password_key = data.get("password_property") or TMI_CLIENT_PASSWORD_KEY
    if not data.get("username"):
        data["username"] = os.environ.get(username_key, "")
    if not data.get("password"):
        data["password"] = os.environ.get(password_key, "")
    return ConnectionConfig(**data)
