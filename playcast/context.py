"""
Shared server state.

Everything that is mutable and process-wide for one server lives in a
single ServerContext that is handed to each component at construction.
Components never keep module-level state of their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from playcast.clients.registry import ConnectionRegistry

if TYPE_CHECKING:
    from playcast.core.playback import PlaybackInfo


@dataclass
class ServerContext:
    """
    State owned by one PlaybackServer.

    Attributes:
        ready: True once the listening socket is bound. Broadcasts are
            suppressed until then.
        listening: True while a listening socket exists.
        last_playback_info: Most recent accepted playback info, if any.
        registry: Open plain and upgraded connections.
    """

    ready: bool = False
    listening: bool = False
    last_playback_info: PlaybackInfo | None = None
    registry: ConnectionRegistry = field(default_factory=ConnectionRegistry)
