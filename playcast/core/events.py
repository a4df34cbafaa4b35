"""
Event Bus for Playcast.

This module provides a simple pub/sub event system for decoupled
communication between the host application and the server. The host
publishes playback events; the server subscribes while it is listening and
publishes client lifecycle events for observers.

Event types:
- playback.track_changed: A new track (or new metadata) is playing
- playback.elapsed_time: Periodic elapsed-time tick for the current track
- client.connected: A client connection was accepted or upgraded
- client.disconnected: A client connection was closed

Usage:
    from playcast.core.events import TrackChangedEvent, event_bus

    await event_bus.publish(
        TrackChangedEvent(info=PlaybackInfo(title="Song", artist="Band"))
    )
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine

from playcast.core.playback import PlaybackInfo

logger = logging.getLogger(__name__)

# Type alias for event handlers
EventHandler = Callable[["Event"], Coroutine[Any, Any, None]]


@dataclass
class Event:
    """Base class for all events."""

    event_type: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for JSON serialization."""
        return {"type": self.event_type}


@dataclass
class TrackChangedEvent(Event):
    """Fired by the host application when the playing track changes."""

    event_type: str = field(default="playback.track_changed", init=False)
    info: PlaybackInfo = field(default_factory=PlaybackInfo)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "info": self.info.to_dict(),
        }


@dataclass
class ElapsedTimeEvent(Event):
    """Fired by the host application as playback progresses."""

    event_type: str = field(default="playback.elapsed_time", init=False)
    seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "seconds": self.seconds,
        }


@dataclass
class ClientConnectedEvent(Event):
    """Fired when a client connection is accepted or upgraded."""

    event_type: str = field(default="client.connected", init=False)
    connection_id: int = -1
    kind: str = ""
    remote_address: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "connection_id": self.connection_id,
            "kind": self.kind,
            "remote_address": self.remote_address,
        }


@dataclass
class ClientDisconnectedEvent(Event):
    """Fired when a client connection is closed."""

    event_type: str = field(default="client.disconnected", init=False)
    connection_id: int = -1
    kind: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "connection_id": self.connection_id,
            "kind": self.kind,
        }


class EventBus:
    """
    Simple async pub/sub event bus.

    Supports:
    - Multiple handlers per event type
    - Wildcard subscriptions (e.g., "playback.*")
    - Error isolation (one handler failing doesn't affect others)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Event type to subscribe to. Use "*" suffix for wildcards.
            handler: Async function to call when event is published.
        """
        async with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            logger.debug("Subscribed to %s: %s", event_type, handler)

    async def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """
        Unsubscribe a handler from an event type.

        Returns True if handler was found and removed.
        """
        async with self._lock:
            if event_type in self._handlers:
                try:
                    self._handlers[event_type].remove(handler)
                    logger.debug("Unsubscribed from %s: %s", event_type, handler)
                    return True
                except ValueError:
                    pass
            return False

    async def publish(self, event: Event) -> int:
        """
        Publish an event to all subscribed handlers.

        Returns:
            Number of handlers that received the event.
        """
        event_type = event.event_type
        handlers_called = 0

        async with self._lock:
            matching_handlers: list[EventHandler] = []

            for pattern, handlers in self._handlers.items():
                if pattern == event_type or pattern == "*":
                    matching_handlers.extend(handlers)
                elif pattern.endswith(".*") and event_type.startswith(pattern[:-1]):
                    matching_handlers.extend(handlers)

        # Call handlers outside of lock
        for handler in matching_handlers:
            try:
                await handler(event)
                handlers_called += 1
            except Exception as e:
                logger.exception("Error in event handler for %s: %s", event_type, e)

        return handlers_called

    def publish_sync(self, event: Event) -> None:
        """
        Schedule event publication from synchronous code.

        Useful for host applications that report playback from plain
        callbacks running on the event loop thread.
        """
        try:
            loop = asyncio.get_running_loop()
            loop.create_task(self.publish(event))
        except RuntimeError:
            logger.warning("Cannot publish event %s: no running event loop", event.event_type)

    async def clear(self) -> None:
        """Remove all subscriptions."""
        async with self._lock:
            self._handlers.clear()


# Global event bus instance
event_bus = EventBus()
