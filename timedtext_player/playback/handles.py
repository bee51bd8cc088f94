"""Resource handle protocol: the opaque per-segment media player.

WHY: Decoding and buffering belong to the host (a browser media element,
a desktop player, a test fake). The controller only needs a small
play/pause/seek/readiness surface plus native events.

HOW: ResourceHandle is a typing.Protocol; anything with these members
works. ReadyState and NetworkState mirror the HTML media element
numbering so hosts can pass their values straight through.

RULES:
- Handles are never owned across Tracks; the controller detaches its
  listeners before a new Track is installed
- Listeners receive the event type string and must not raise
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Protocol, runtime_checkable


class ReadyState(IntEnum):
    """How much media a handle has buffered around its current time."""

    HAVE_NOTHING = 0
    HAVE_METADATA = 1
    HAVE_CURRENT_DATA = 2
    HAVE_FUTURE_DATA = 3
    HAVE_ENOUGH_DATA = 4


class NetworkState(IntEnum):
    """Fetch activity of a handle."""

    NETWORK_EMPTY = 0
    NETWORK_IDLE = 1
    NETWORK_LOADING = 2
    NETWORK_NO_SOURCE = 3


# Native events the controller listens for
PLAYBACK_EVENTS = ("timeupdate", "play", "pause", "seeking", "seeked")
READINESS_EVENTS = (
    "loadedmetadata", "loadeddata", "canplay", "canplaythrough",
    "waiting", "stalled", "progress",
)

HandleListener = Callable[[str], None]


@runtime_checkable
class ResourceHandle(Protocol):
    """One independently buffered media resource."""

    current_time: float
    paused: bool
    seeking: bool
    ready_state: int
    network_state: int
    muted: bool
    volume: float
    playback_rate: float
    loop: bool

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def load(self) -> None:
        ...

    def add_event_listener(self, event_type: str, listener: HandleListener) -> None:
        ...

    def remove_event_listener(self, event_type: str, listener: HandleListener) -> None:
        ...
