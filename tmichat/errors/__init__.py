"""Error taxonomy of the chat client."""

from .internal import (
    CredentialsRejected,
    MalformedMessage,
    NoCredentialsProvider,
    TmiError,
    TransportFailure,
)

__all__ = [
    "TmiError",
    "MalformedMessage",
    "TransportFailure",
    "CredentialsRejected",
    "NoCredentialsProvider",
]
