"""Connection parameter providers used by the bot registry."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod

from ..constants import (
    DEFAULT_PROVIDER_KEY,
    TMI_CLIENT_PASSWORD_KEY,
    TMI_CLIENT_USERNAME_KEY,
)
from .model import ConnectionParameters


class ConnectionParametersProvider(ABC):
    """Resolves credentials for the bot named ``bot_name``.

    A provider registered under ``"*"`` is the default for every bot without a
    dedicated provider.
    """

    def __init__(self, bot_name: str = DEFAULT_PROVIDER_KEY) -> None:
        self.bot_name = bot_name

    @abstractmethod
    def get_connection_parameters(self) -> ConnectionParameters:  # pragma: no cover - interface
        raise NotImplementedError


class StaticConnectionParametersProvider(ConnectionParametersProvider):
    def __init__(
        self, username: str, password: str, bot_name: str = DEFAULT_PROVIDER_KEY
    ) -> None:
        super().__init__(bot_name)
        self._parameters = ConnectionParameters(username=username, password=password)

    def get_connection_parameters(self) -> ConnectionParameters:
        return self._parameters


class EnvironmentConnectionParametersProvider(ConnectionParametersProvider):
    """Reads credentials from environment variables on every call."""

    def __init__(
        self,
        bot_name: str = DEFAULT_PROVIDER_KEY,
        username_property: str = TMI_CLIENT_USERNAME_KEY,
        password_property: str = TMI_CLIENT_PASSWORD_KEY,
    ) -> None:
        super().__init__(bot_name)
        self.username_property = username_property
        self.password_property = password_property

    def get_connection_parameters(self) -> ConnectionParameters:
        return ConnectionParameters(
            username=os.environ.get(self.username_property, ""),
            password=os.environ.get(self.password_property, ""),
        )
