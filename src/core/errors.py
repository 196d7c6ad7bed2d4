"""Error taxonomy of the client.

Why a single module:
- Adapters translate library exceptions (httpx, pydantic, OS) into these
  types at the seam, so services and the CLI never depend on I/O libraries.
- The CLI can report every failure with one `except HedgeError` branch.
"""

from __future__ import annotations


class HedgeError(Exception):
    """Base class for every error the client reports to the user."""


class ConfigurationError(HedgeError):
    """Unmapped site/rule, malformed local config or unusable environment."""


class TransportError(HedgeError):
    """Connection refused, DNS failure, timeout or any other network failure."""


class ProtocolError(HedgeError):
    """A non-2xx/3xx response decoded into the server's `{code, message}` body."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


ApiError = ProtocolError


class SerializationError(HedgeError):
    """A response body or persisted file that does not match its schema."""


class SessionTimeoutError(HedgeError, TimeoutError):
    """The session handshake did not complete within its polling budget."""


class ProcessError(HedgeError):
    """The server process could not be spawned or signalled on this host."""
