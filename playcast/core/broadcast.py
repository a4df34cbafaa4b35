"""
Broadcast of playback state to WebSocket subscribers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playcast.clients.client import ClientConnection, ConnectionKind
from playcast.protocol.frames import encode_text_frame

if TYPE_CHECKING:
    from playcast.context import ServerContext
    from playcast.core.playback import PlaybackInfo

logger = logging.getLogger(__name__)


def build_state_frame(info: "PlaybackInfo | None") -> bytes:
    """Encode the state message sent to subscribers."""
    return encode_text_frame({"playbackInfo": info.to_dict() if info is not None else None})


class BroadcastCoordinator:
    """
    Writes one state frame to every upgraded connection.

    The frame is encoded once per broadcast so every client receives
    byte-identical data. A failed write is logged by the registry and the
    client stays registered; it is removed when its stream reports EOF.
    """

    def __init__(self, context: "ServerContext") -> None:
        self._context = context

    def broadcast(self, info: "PlaybackInfo | None") -> int:
        """
        Send the playback info to all upgraded connections.

        Returns:
            Number of connections the frame was written to.
        """
        frame = build_state_frame(info)

        def _send(connection: ClientConnection) -> None:
            connection.send(frame)

        return self._context.registry.for_each_open(ConnectionKind.UPGRADED, _send)

    def send_current(self, connection: ClientConnection) -> None:
        """Send the current state to a single, newly upgraded connection."""
        connection.send(build_state_frame(self._context.last_playback_info))
