"""
Playback state for Playcast.

This module holds the "now playing" record and the store that accepts
updates from the host application, keeps the latest value, and hands
display-ready copies to the broadcaster.

Update rules:
- Info with both an empty title and an empty artist means nothing is
  playing and is ignored entirely.
- Accepted info always becomes the current value, even before the server
  is ready, so it is served to the next reader or new client.
- Title and artist shorter than two characters are padded with an
  invisible filler so overlays don't collapse them as empty.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from playcast.context import ServerContext

logger = logging.getLogger(__name__)

# Hangul filler: renders as blank space but is not whitespace
FILLER_CHARACTER = "\u3164"

MIN_DISPLAY_LENGTH = 2

# Minimum spacing between accepted elapsed-time ticks
ELAPSED_TIME_INTERVAL_SECONDS = 5.0


@dataclass
class PlaybackInfo:
    """
    Information about the currently playing track.

    Only title, artist and elapsed time are interpreted. Everything else the
    host application sends (album, artwork URL, pause state, ...) is kept
    in `extra` and passed through unchanged.
    """

    title: str = ""
    artist: str = ""
    elapsed_seconds: float = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaybackInfo":
        """Build from the host application's camelCase dictionary."""
        extra = {k: v for k, v in data.items() if k not in ("title", "artist", "elapsedSeconds")}
        return cls(
            title=str(data.get("title") or ""),
            artist=str(data.get("artist") or ""),
            elapsed_seconds=data.get("elapsedSeconds") or 0,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for JSON serialization."""
        result = dict(self.extra)
        result["title"] = self.title
        result["artist"] = self.artist
        result["elapsedSeconds"] = self.elapsed_seconds
        return result

    @property
    def is_empty(self) -> bool:
        """True when there is nothing meaningful to display."""
        return not self.title and not self.artist


def _pad(value: str) -> str:
    if len(value) < MIN_DISPLAY_LENGTH:
        return value + FILLER_CHARACTER * (MIN_DISPLAY_LENGTH - len(value))
    return value


def normalize_for_display(info: PlaybackInfo) -> PlaybackInfo:
    """
    Return a copy with short title/artist padded to the minimum length.

    Each field is measured against its own length, so a two-character
    title does not stop a one-character artist from being padded.
    """
    return replace(info, title=_pad(info.title), artist=_pad(info.artist), extra=dict(info.extra))


class Broadcaster(Protocol):
    def broadcast(self, info: PlaybackInfo | None) -> int: ...


class ElapsedTimeThrottle:
    """
    Rate limiter for elapsed-time ticks.

    A tick is allowed when strictly more than `interval` seconds have
    passed since the last allowed tick. The window starts at creation, so
    ticks arriving right after startup are dropped.
    """

    def __init__(
        self,
        interval: float = ELAPSED_TIME_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._last_allowed = clock()

    def allow(self, now: float | None = None) -> bool:
        if now is None:
            now = self._clock()
        if now - self._last_allowed > self.interval:
            self._last_allowed = now
            return True
        return False


class PlaybackStateStore:
    """
    Holds the current playback info and triggers broadcasts.

    The store writes into the shared ServerContext, so the HTTP read path
    and newly connected clients always see the same value the broadcaster
    last sent.
    """

    def __init__(
        self,
        context: "ServerContext",
        broadcaster: Broadcaster,
        throttle: ElapsedTimeThrottle | None = None,
    ) -> None:
        self._context = context
        self._broadcaster = broadcaster
        self._throttle = throttle if throttle is not None else ElapsedTimeThrottle()

        # Last info delivered by a track-changed event; elapsed-time ticks
        # mutate this record
        self._last_track: PlaybackInfo | None = None

    @property
    def current(self) -> PlaybackInfo | None:
        """Get the current playback info, if any."""
        return self._context.last_playback_info

    def update(self, info: PlaybackInfo) -> bool:
        """
        Accept new playback info and broadcast it when the server is ready.

        Returns:
            True if a broadcast was issued.
        """
        if info.is_empty:
            logger.debug("Ignoring empty playback info")
            return False

        self._context.last_playback_info = info

        if not self._context.ready:
            logger.debug("Server not ready, stored playback info without broadcast")
            return False

        normalized = normalize_for_display(info)
        self._context.last_playback_info = normalized

        delivered = self._broadcaster.broadcast(normalized)
        logger.debug(
            "Broadcast playback info %r - %r to %d clients",
            normalized.artist,
            normalized.title,
            delivered,
        )
        return True

    def on_track_changed(self, info: PlaybackInfo) -> bool:
        """Handle a track change from the host application."""
        self._last_track = info
        return self.update(info)

    def on_elapsed_time(self, seconds: float, now: float | None = None) -> bool:
        """
        Handle an elapsed-time tick from the host application.

        Returns:
            True if the tick passed the rate limit and updated the last track.
        """
        if not self._throttle.allow(now):
            return False
        if self._last_track is None:
            return False

        self._last_track.elapsed_seconds = seconds
        self.update(self._last_track)
        return True
