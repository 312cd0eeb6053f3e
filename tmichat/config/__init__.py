"""Configuration models and credential providers."""

from .model import ConnectionConfig, ConnectionParameters, connection_config
from .providers import (
    ConnectionParametersProvider,
    EnvironmentConnectionParametersProvider,
    StaticConnectionParametersProvider,
)

__all__ = [
    "ConnectionConfig",
    "ConnectionParameters",
    "connection_config",
    "ConnectionParametersProvider",
    "EnvironmentConnectionParametersProvider",
    "StaticConnectionParametersProvider",
]
