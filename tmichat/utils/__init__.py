"""Utility package for the chat client.

Exposed functions:
    invoke_callback: Calls a sync or async user callback and awaits it if needed.
    reconnect_retrying: Builds the capped exponential backoff retry controller.
"""

from .helpers import invoke_callback
from .retry import reconnect_retrying

__all__ = ["invoke_callback", "reconnect_retrying"]
