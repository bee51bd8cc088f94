"""Player events and the listener registry.

WHY: The host UI (transcript highlighting, caption overlay, controls)
subscribes to the controller the way it would to a single media
element. One registry keeps dispatch and error isolation in one place.

HOW: EventEmitter stores listeners per event type and calls them in
registration order with a PlayerEvent. A failing listener is logged and
the remaining listeners still run.

RULES:
- Listener exceptions never propagate into the controller
- Removing an unknown listener is a no-op
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from timedtext_player.core.ir import Clip, Item, TimedText

logger = logging.getLogger(__name__)

PLAYER_EVENTS = (
    "play", "pause", "ended", "timeupdate", "durationchange",
    "seeking", "seeked", "waiting", "canplay", "canplaythrough",
    "volumechange", "ratechange", "playhead",
)


@dataclass(frozen=True)
class PlayheadDetail:
    """Payload of the "playhead" event.

    Attributes:
        time: Virtual time of the playhead.
        offset: Virtual offset of the segment under it.
        clip: Segment child under the playhead.
        segment: Top-level clip under the playhead.
        timed_text: Token under (or just before) the playhead.
        pseudo: True for hover/preview playheads that do not move playback.
        counter: Sequence number of this playhead event.
    """

    time: float
    offset: float
    clip: Optional[Item]
    segment: Optional[Clip]
    timed_text: Optional[TimedText]
    pseudo: bool
    counter: int


@dataclass(frozen=True)
class PlayerEvent:
    type: str
    detail: Any = None


Listener = Callable[[PlayerEvent], None]


class EventEmitter:
    """Per-type listener registry."""

    def __init__(self) -> None:
        self._listeners = {}  # type: Dict[str, List[Listener]]

    def on(self, event_type: str, listener: Listener) -> None:
        if event_type not in PLAYER_EVENTS:
            logger.warning("Listening for unknown player event '%s'", event_type)
        self._listeners.setdefault(event_type, []).append(listener)

    def off(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event_type: str, detail: Any = None) -> None:
        event = PlayerEvent(type=event_type, detail=detail)
        for listener in list(self._listeners.get(event_type, [])):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener for '%s' failed", event_type)
