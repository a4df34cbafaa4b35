"""
Exception hierarchy for Playcast.

Protocol-level errors are local to a single connection and are handled in
the connection handler. Only ServerBindError is ever surfaced to the code
that started the server.
"""


class PlaycastError(Exception):
    """Base exception for all Playcast errors."""

    pass


class ConfigError(PlaycastError):
    """Configuration file could not be loaded or has invalid values."""

    pass


class ServerBindError(PlaycastError):
    """The listening socket could not be bound."""

    pass


class RequestError(PlaycastError):
    """A malformed or oversized HTTP request head was received."""

    pass


class HandshakeError(RequestError):
    """An upgrade request could not be completed (e.g. missing key)."""

    pass
