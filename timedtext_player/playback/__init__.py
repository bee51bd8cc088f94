"""Playback synchronization: one virtual player over many resource handles.

WHY: The host hands the controller one opaque handle per segment and
gets back a single play/pause/seek surface plus a playhead event stream.

HOW: controller.py holds the state machine; handles.py defines what a
handle must provide; scheduler.py, readiness.py, events.py and
fragment.py are the small pieces it is built from.
"""

from timedtext_player.playback.controller import HandleEntry, PlaybackController, PlaybackState
from timedtext_player.playback.events import PlayerEvent, PlayheadDetail
from timedtext_player.playback.handles import NetworkState, ReadyState, ResourceHandle
from timedtext_player.playback.scheduler import AsyncioScheduler, ManualScheduler

__all__ = [
    "AsyncioScheduler",
    "HandleEntry",
    "ManualScheduler",
    "NetworkState",
    "PlaybackController",
    "PlaybackState",
    "PlayerEvent",
    "PlayheadDetail",
    "ReadyState",
    "ResourceHandle",
]
