"""
Configuration constants for the TMI chat client

This module contains all configurable constants used throughout the package.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Chat endpoint
TMI_URL = os.getenv("TMI_URL", "wss://irc-ws.chat.twitch.tv:443")

# Environment keys consulted when credentials are not given explicitly
TMI_CLIENT_USERNAME_KEY = os.getenv("TMI_CLIENT_USERNAME_KEY", "TMI_CLIENT_USERNAME")
TMI_CLIENT_PASSWORD_KEY = os.getenv("TMI_CLIENT_PASSWORD_KEY", "TMI_CLIENT_PASSWORD")

# Wildcard key of the default connection parameters provider
DEFAULT_PROVIDER_KEY = "*"

# Reconnection backoff
RECONNECT_MAX_ATTEMPTS = _get_env_int("RECONNECT_MAX_ATTEMPTS", 5)
RECONNECT_BASE_DELAY = _get_env_float(
    "RECONNECT_BASE_DELAY", 1.0
)  # Seconds before the first retry, doubled per attempt
RECONNECT_MAX_DELAY = _get_env_float("RECONNECT_MAX_DELAY", 60.0)

# Seconds a stream must stay up before a drop starts a fresh reconnect budget
STABLE_STREAM_WINDOW = _get_env_float("STABLE_STREAM_WINDOW", 60.0)

# Seconds after auth during which a silent close counts as rejected credentials
CREDENTIALS_REJECT_WINDOW = _get_env_float("CREDENTIALS_REJECT_WINDOW", 5.0)

# Transport
TRANSPORT_OPEN_TIMEOUT = _get_env_float("TRANSPORT_OPEN_TIMEOUT", 10.0)

# NOTICE texts sent by the server before closing an unauthenticated connection
AUTH_FAILURE_NOTICES = (
    "Login authentication failed",
    "Improperly formatted auth",
    "Login unsuccessful",
)
