"""Centralized error hierarchy.

These exceptions give semantic categories to the reconnect policy and to the
owners of a client. Raw transport library errors never reach the retry code;
transports wrap them into ``TransportFailure`` instead.

Classes:
  TmiError              – Base for all package errors.
  MalformedMessage      – A line reached the parser although it cannot be parsed.
  TransportFailure      – Connect/send/receive I/O error or closure (retried).
  CredentialsRejected   – Server most likely refused the credentials (not retried).
  NoCredentialsProvider – A bot has neither a client nor a parameters provider.
"""

from __future__ import annotations

from collections.abc import Mapping


class TmiError(Exception):
    """Base class for all package errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class MalformedMessage(TmiError):
    """Raised when ``parse`` is handed a line that ``can_parse`` rejects.

    Callers are expected to guard with ``can_parse``; seeing this error means
    a programming mistake rather than bad server input.
    """


class TransportFailure(TmiError):
    """Raised for transport level errors such as refused connections, resets
    or the server closing the stream.

    These are transient and trigger reconnection with backoff.
    """


class CredentialsRejected(TmiError):
    """Raised when the server most likely refused the supplied credentials.

    The protocol has no explicit acknowledgement for ``PASS``/``NICK``; this
    is inferred from a login-failure NOTICE or from the connection closing
    shortly after authentication without any traffic. Never retried.
    """


class NoCredentialsProvider(TmiError):
    """Raised when a bot has no preset client and no connection parameters
    provider is registered for its name nor as the ``"*"`` default.
    """


__all__ = [
    "TmiError",
    "MalformedMessage",
    "TransportFailure",
    "CredentialsRejected",
    "NoCredentialsProvider",
]
