"""
Connection Registry - Central repository for open client connections.

The registry tracks plain HTTP connections and upgraded WebSocket
connections in two separate maps. Both share one identifier allocator, so
an identifier is unique across kinds.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator

from playcast.clients.client import ClientConnection, ConnectionKind

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Central registry for all open client connections.

    All mutations happen on the event loop thread and complete without
    awaiting, so entries are added and removed atomically with respect to
    other callbacks; no lock is needed.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._connections: dict[ConnectionKind, dict[int, ClientConnection]] = {
            ConnectionKind.PLAIN: {},
            ConnectionKind.UPGRADED: {},
        }
        self._ids = itertools.count()

    def next_id(self) -> int:
        """Allocate the next connection identifier. Never reused."""
        return next(self._ids)

    def register(self, kind: ConnectionKind, connection_id: int, connection: ClientConnection) -> None:
        """
        Register a connection under the given kind.

        Args:
            kind: Which map to insert into.
            connection_id: Identifier from next_id().
            connection: The connection to track.
        """
        connection.kind = kind
        self._connections[kind][connection_id] = connection
        logger.debug(
            "Connection registered: %d (%s, %s)",
            connection_id,
            kind.value,
            connection.remote_address,
        )

    def unregister(self, kind: ConnectionKind, connection_id: int) -> ClientConnection | None:
        """
        Remove a connection from the registry.

        Returns:
            The removed connection, or None if it was not registered.
        """
        connection = self._connections[kind].pop(connection_id, None)
        if connection is not None:
            logger.debug("Connection unregistered: %d (%s)", connection_id, kind.value)
        return connection

    def get(self, kind: ConnectionKind, connection_id: int) -> ClientConnection | None:
        """Look up a connection by kind and identifier."""
        return self._connections[kind].get(connection_id)

    def ids(self, kind: ConnectionKind) -> list[int]:
        """Get the identifiers registered under a kind."""
        return list(self._connections[kind])

    def count(self, kind: ConnectionKind) -> int:
        """Get the number of connections of a kind."""
        return len(self._connections[kind])

    def for_each_open(self, kind: ConnectionKind, fn: Callable[[ClientConnection], None]) -> int:
        """
        Apply a function to every registered connection of a kind.

        A failure for one connection is logged and does not stop delivery
        to the others.

        Returns:
            Number of connections for which fn completed without error.
        """
        delivered = 0
        for connection_id, connection in list(self._connections[kind].items()):
            try:
                fn(connection)
                delivered += 1
            except Exception as e:
                logger.warning("Error on %s connection %d: %s", kind.value, connection_id, e)
        return delivered

    async def close_all(self) -> None:
        """
        Close every connection of both kinds and clear the registry.

        This is called during server shutdown.
        """
        connections: list[ClientConnection] = []
        for kind_map in self._connections.values():
            connections.extend(kind_map.values())
            kind_map.clear()

        for connection in connections:
            try:
                await connection.close()
            except Exception as e:
                logger.warning("Error closing connection %d: %s", connection.id, e)

        logger.info("All connections closed (%d total)", len(connections))

    def __len__(self) -> int:
        """Return the number of open connections of both kinds."""
        return sum(len(kind_map) for kind_map in self._connections.values())

    def __contains__(self, connection_id: int) -> bool:
        """Check if an identifier is registered under either kind."""
        return any(connection_id in kind_map for kind_map in self._connections.values())

    def __iter__(self) -> Iterator[int]:
        """Iterate over registered identifiers of both kinds."""
        for kind_map in self._connections.values():
            yield from list(kind_map)

    def __bool__(self) -> bool:
        """A registry instance is always truthy, even when empty."""
        return True
