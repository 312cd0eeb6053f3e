import os

import pytest

from tmichat.config.model import ConnectionConfig

# Keep console output terse regardless of the developer's shell settings.
os.environ.setdefault("DEBUG", "false")


@pytest.fixture
def make_config():
    """Factory for a ConnectionConfig with instant backoff."""

    def _make(**overrides) -> ConnectionConfig:
        fields = {
            "username": "botname",
            "password": "oauth:secret",
            "initial_channels": ("chan",),
            "reconnect_base_delay": 0.0,
            "reconnect_max_delay": 0.0,
        }
        fields.update(overrides)
        return ConnectionConfig(**fields)

    return _make
