"""
Core playback state and event handling for Playcast.
"""

from playcast.core.broadcast import BroadcastCoordinator, build_state_frame
from playcast.core.events import ElapsedTimeEvent, EventBus, TrackChangedEvent, event_bus
from playcast.core.playback import (
    ElapsedTimeThrottle,
    PlaybackInfo,
    PlaybackStateStore,
    normalize_for_display,
)

__all__ = [
    "BroadcastCoordinator",
    "ElapsedTimeEvent",
    "ElapsedTimeThrottle",
    "EventBus",
    "PlaybackInfo",
    "PlaybackStateStore",
    "TrackChangedEvent",
    "build_state_frame",
    "event_bus",
    "normalize_for_display",
]
