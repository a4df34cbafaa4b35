"""
Client connection management for Playcast.

This package tracks accepted sockets, both plain HTTP readers and upgraded
WebSocket subscribers.
"""

from playcast.clients.client import ClientConnection, ConnectionKind
from playcast.clients.registry import ConnectionRegistry

__all__ = [
    "ClientConnection",
    "ConnectionKind",
    "ConnectionRegistry",
]
