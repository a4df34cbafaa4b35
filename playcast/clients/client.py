"""
Client connection representation for Playcast.

A ClientConnection wraps the stream pair of one accepted socket. The same
object type is used for plain HTTP connections and for upgraded WebSocket
connections; the registry keeps them in separate maps by kind.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from asyncio import StreamReader, StreamWriter

logger = logging.getLogger(__name__)


class ConnectionKind(Enum):
    """Kinds of tracked connections."""

    PLAIN = "plain"
    UPGRADED = "upgraded"


class ClientConnection:
    """
    One accepted client stream.

    Writes are fire-and-forget: send() hands the bytes to the transport
    without waiting for the peer, so a slow client never blocks a
    broadcast.
    """

    def __init__(
        self,
        connection_id: int,
        reader: "StreamReader",
        writer: "StreamWriter",
        kind: ConnectionKind = ConnectionKind.PLAIN,
    ) -> None:
        self.id = connection_id
        self.kind = kind
        self._reader = reader
        self._writer = writer
        self._closed = False

        peername = writer.get_extra_info("peername")
        if peername:
            self._remote_ip, self._remote_port = peername[0], peername[1]
        else:
            self._remote_ip, self._remote_port = "unknown", 0

    @property
    def reader(self) -> "StreamReader":
        return self._reader

    @property
    def writer(self) -> "StreamWriter":
        return self._writer

    @property
    def remote_address(self) -> str:
        """Get the peer address as host:port."""
        return f"{self._remote_ip}:{self._remote_port}"

    @property
    def is_closed(self) -> bool:
        return self._closed or self._writer.is_closing()

    def send(self, data: bytes) -> None:
        """
        Queue bytes for delivery to the client.

        Raises:
            ConnectionError: If the connection is already closed.
        """
        if self.is_closed:
            raise ConnectionError(f"Connection {self.id} is closed")
        self._writer.write(data)

    async def flush(self) -> None:
        """Wait until the transport buffer has drained."""
        await self._writer.drain()

    async def close(self) -> None:
        """Close the underlying stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing connection %d (%s)", self.id, self.remote_address)

        try:
            self._writer.close()
            await self._writer.wait_closed()
        except (ConnectionError, OSError):
            pass  # Already disconnected

    def __repr__(self) -> str:
        return (
            f"ClientConnection(id={self.id!r}, kind={self.kind.value}, "
            f"remote={self.remote_address!r}, closed={self.is_closed})"
        )
