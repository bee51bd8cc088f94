"""Shared test fixtures for the timedtext_player test suite.

WHY: Compiler, index, formatter and controller tests all need the same
small transcripts and the same stand-in for a media resource. Keeping
them here keeps every test module on identical data.

HOW: segment() builds raw segment descriptor dicts with evenly spaced
word tokens. FakeHandle implements the ResourceHandle protocol and fires
its events synchronously, the way a media element would fire them on a
single event queue. ManualScheduler drives the progress tick.

RULES:
- FakeHandle fires "pause"/"play" only on an actual state change
- Setting FakeHandle.current_time fires seeking, timeupdate, seeked
- advance() moves a playing handle forward and fires timeupdate
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional

import pytest

from timedtext_player.core.compiler import compile_track
from timedtext_player.playback.controller import PlaybackController
from timedtext_player.playback.events import PLAYER_EVENTS
from timedtext_player.playback.handles import NetworkState, ReadyState
from timedtext_player.playback.scheduler import ManualScheduler


def segment(
    start: float,
    end: float,
    media: str = "talk.mp4",
    words: Optional[List[str]] = None,
    seg_id: str = "",
) -> Dict[str, Any]:
    """A segment descriptor with one child covering [start, end)."""
    words = words or ["Hello", "world."]
    step = (end - start) / len(words)
    tokens = [
        {"text": w, "start": start + i * step, "duration": step}
        for i, w in enumerate(words)
    ]
    return {
        "id": seg_id,
        "src": media,
        "start": start,
        "end": end,
        "children": [
            {"start": start, "end": end, "text": " ".join(words), "tokens": tokens},
        ],
    }


class FakeHandle:
    """In-memory resource handle with synchronous events."""

    def __init__(self, name: str, ready_state: int = ReadyState.HAVE_ENOUGH_DATA) -> None:
        self.name = name
        self._time = 0.0
        self.paused = True
        self.seeking = False
        self.ready_state = ready_state
        self.network_state = NetworkState.NETWORK_IDLE
        self.muted = False
        self.volume = 1.0
        self.playback_rate = 1.0
        self.loop = False
        self.load_calls = 0
        self._listeners = defaultdict(list)

    def __repr__(self) -> str:
        return "FakeHandle({!r})".format(self.name)

    @property
    def current_time(self) -> float:
        return self._time

    @current_time.setter
    def current_time(self, value: float) -> None:
        self.seeking = True
        self._time = value
        self.fire("seeking")
        self.seeking = False
        self.fire("timeupdate")
        self.fire("seeked")

    def play(self) -> None:
        if self.paused:
            self.paused = False
            self.fire("play")

    def pause(self) -> None:
        if not self.paused:
            self.paused = True
            self.fire("pause")

    def load(self) -> None:
        self.load_calls += 1

    def add_event_listener(self, event_type, listener) -> None:
        self._listeners[event_type].append(listener)

    def remove_event_listener(self, event_type, listener) -> None:
        if listener in self._listeners[event_type]:
            self._listeners[event_type].remove(listener)

    def listener_count(self) -> int:
        return sum(len(v) for v in self._listeners.values())

    def fire(self, event_type: str) -> None:
        for listener in list(self._listeners[event_type]):
            listener(event_type)

    def advance(self, seconds: float) -> None:
        """Simulate playback progress."""
        if not self.paused:
            self._time += seconds
            self.fire("timeupdate")

    def set_ready(self, ready_state: int, event_type: str = "canplay") -> None:
        self.ready_state = ready_state
        self.fire(event_type)


@pytest.fixture
def contiguous_segments():
    """Segment A [0,10) and B [10,16) on the same resource."""
    return [segment(0.0, 10.0, seg_id="A"), segment(10.0, 16.0, seg_id="B")]


@pytest.fixture
def gapped_segments():
    """Segment A [0,10) and B [12,18) on the same resource (2 s native gap)."""
    return [segment(0.0, 10.0, seg_id="A"), segment(12.0, 18.0, seg_id="B")]


@pytest.fixture
def three_segments():
    """Three segments on three resources: durations 10, 6 and 4."""
    return [
        segment(0.0, 10.0, media="a.mp4", seg_id="a",
                words=["First", "segment", "starts", "here."]),
        segment(5.0, 11.0, media="b.mp4", seg_id="b",
                words=["Second", "one", "follows."]),
        segment(0.0, 4.0, media="c.mp4", seg_id="c",
                words=["And", "the", "end."]),
    ]


@pytest.fixture
def three_track(three_segments):
    return compile_track(three_segments).track


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def handles():
    return [FakeHandle("a"), FakeHandle("b"), FakeHandle("c")]


@pytest.fixture
def player(three_track, handles, scheduler):
    """A controller with the three-segment track loaded and ready."""
    ctrl = PlaybackController(scheduler=scheduler)
    ctrl.load_track(three_track, handles)
    return ctrl


@pytest.fixture
def recorded(player):
    """List of event types the player emits (playhead excluded)."""
    events = []  # type: List[str]
    for event_type in PLAYER_EVENTS:
        if event_type not in ("timeupdate", "playhead"):
            player.on(event_type, lambda e: events.append(e.type))
    return events
