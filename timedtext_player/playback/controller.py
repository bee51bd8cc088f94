"""Playback synchronization controller: one virtual player over N handles.

WHY: A remixed transcript plays several independently buffered media
resources back to back. The host UI wants one media-element-like surface
(play, pause, current_time, duration, events) and one playhead to drive
word highlighting and captions, while at most one underlying handle
ever plays.

HOW: load_track() pairs each top-level clip of a compiled Track with a
ResourceHandle and subscribes to the handle's native events. Native
progress is mapped to logical time (native - start + offset). When a
handle reaches its clip end it is paused and the next one plays,
already pre-rolled to its own start. A synthetic tick at tick_hz keeps
the playhead moving between coarse native timeupdates. Readiness is
reduced over every handle (segment and nested) into
canplay / canplaythrough / waiting.

RULES:
- At most one segment handle plays at any time
- The tick is cancelled synchronously on pause, seek and teardown
- Progress from a paused, non-active handle is ignored (pre-roll)
- Every handler runs to completion; exceptions are logged with
  logger.exception and never escape the public surface
- The Track is read-only here; a new Track means load_track() again
"""

from __future__ import annotations

import enum
import functools
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from timedtext_player import config as _config
from timedtext_player.core.index import clip_at, virtual_time_of
from timedtext_player.core.ir import Clip, TimedText, Track
from timedtext_player.errors import NotReadyError
from timedtext_player.playback.events import EventEmitter, Listener, PlayheadDetail
from timedtext_player.playback.fragment import parse_time_fragment
from timedtext_player.playback.handles import (
    PLAYBACK_EVENTS,
    READINESS_EVENTS,
    ReadyState,
    ResourceHandle,
)
from timedtext_player.playback.readiness import (
    aggregate_network_state,
    aggregate_ready_state,
    any_seeking,
    can_play,
    can_play_through,
)
from timedtext_player.playback.scheduler import AsyncioScheduler, ScheduledTask, Scheduler

logger = logging.getLogger(__name__)


class PlaybackState(enum.Enum):
    IDLE = "idle"
    SEEKING = "seeking"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass(eq=False)
class HandleEntry:
    """A segment handle and the clip window it plays."""

    handle: ResourceHandle
    segment: Clip
    offset: float
    start: float
    end: float
    index: int

    def contains(self, native: float) -> bool:
        return self.start <= native < self.end

    def logical(self, native: float) -> float:
        return native - self.start + self.offset

    def native(self, logical: float) -> float:
        return logical - self.offset + self.start


def _guarded(method: Callable) -> Callable:
    """Log and swallow unexpected errors raised through the public surface."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception:
            logger.exception("PlaybackController.%s failed", method.__name__)
            return None

    return wrapper


class PlaybackController:
    """Drives N resource handles from one virtual playhead."""

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        tick_hz: float = _config.TICK_HZ,
        loop_back_guard: float = _config.LOOP_BACK_GUARD_S,
    ) -> None:
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.tick_hz = tick_hz
        self.loop_back_guard = loop_back_guard
        self.events = EventEmitter()

        self._track = None  # type: Optional[Track]
        self._entries = []  # type: List[HandleEntry]
        self._nested = []  # type: List[ResourceHandle]
        self._bindings = []  # type: List[Tuple[ResourceHandle, str, Callable[[str], None]]]
        self._counts = {}  # type: Dict[int, Counter]
        self._active = None  # type: Optional[HandleEntry]
        self._tick = None  # type: Optional[ScheduledTask]

        self._time = 0.0
        self._playing = False
        self.state = PlaybackState.IDLE
        self.buffering = False
        self._ready = False
        self._ready_through = False
        self._range_end = None  # type: Optional[float]
        self._pending_start = None  # type: Optional[float]
        self._playhead_counter = 0

        self._muted = False
        self._volume = 1.0
        self._playback_rate = 1.0
        self._loop = False

    # ------------------------------------------------------------------
    # Listener registry
    # ------------------------------------------------------------------

    def on(self, event_type: str, listener: Listener) -> None:
        self.events.on(event_type, listener)

    def off(self, event_type: str, listener: Listener) -> None:
        self.events.off(event_type, listener)

    # ------------------------------------------------------------------
    # Track installation and teardown
    # ------------------------------------------------------------------

    def load_track(
        self,
        track: Track,
        handles: Sequence[ResourceHandle],
        nested: Sequence[ResourceHandle] = (),
    ) -> None:
        """Install a Track with one handle per top-level clip.

        The previous registry is fully detached first. Nested handles
        count for readiness and property fan-out only.
        """
        self.detach()
        segments = track.segments
        if len(handles) != len(segments):
            logger.warning(
                "Track has %d segments but %d handles were given; extra items ignored",
                len(segments), len(handles),
            )

        self._track = track
        self._entries = [
            HandleEntry(
                handle=handle,
                segment=segment,
                offset=segment.offset,
                start=segment.source_range.start,
                end=segment.source_range.end,
                index=i,
            )
            for i, (segment, handle) in enumerate(zip(segments, handles))
        ]
        self._nested = list(nested)

        for entry in self._entries:
            for event_type in PLAYBACK_EVENTS + READINESS_EVENTS:
                self._bind(entry.handle, event_type, entry)
        for handle in self._nested:
            for event_type in READINESS_EVENTS:
                self._bind(handle, event_type, None)

        self._active = self._entries[0] if self._entries else None
        self._time = 0.0
        self._playing = False
        self.state = PlaybackState.IDLE
        self._ready = can_play(self._all_handles())
        self._ready_through = can_play_through(self._all_handles())
        self.buffering = not self._ready

        logger.info(
            "Loaded track: %d segment handles, %d nested, duration %.3fs",
            len(self._entries), len(self._nested), track.duration,
        )
        self.events.emit("durationchange", track.duration)
        if self._ready:
            self.events.emit("canplay")
        if self._ready_through:
            self.events.emit("canplaythrough")

    def detach(self) -> None:
        """Remove every native listener and cancel the tick."""
        self._cancel_tick()
        for handle, event_type, listener in self._bindings:
            handle.remove_event_listener(event_type, listener)
        self._bindings = []
        self._counts = {}
        self._entries = []
        self._nested = []
        self._active = None
        self._track = None
        self._playing = False
        self._range_end = None
        self._pending_start = None

    def _bind(self, handle: ResourceHandle, event_type: str, entry: Optional[HandleEntry]) -> None:
        listener = functools.partial(self._dispatch, handle, entry)
        handle.add_event_listener(event_type, listener)
        self._bindings.append((handle, event_type, listener))

    def _all_handles(self) -> List[ResourceHandle]:
        return [e.handle for e in self._entries] + self._nested

    # ------------------------------------------------------------------
    # Playback surface
    # ------------------------------------------------------------------

    @property
    def track(self) -> Optional[Track]:
        return self._track

    @property
    def duration(self) -> float:
        return self._track.duration if self._track is not None else 0.0

    @property
    def current_time(self) -> float:
        return self._time

    @current_time.setter
    def current_time(self, value: float) -> None:
        # An external seek ends any deep-link range
        self._range_end = None
        self._pending_start = None
        self.seek(value)

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def paused(self) -> bool:
        return not self._playing

    @property
    def seeking(self) -> bool:
        return self.state is PlaybackState.SEEKING

    @property
    def active_handle(self) -> Optional[ResourceHandle]:
        return self._active.handle if self._active is not None else None

    @property
    def ready_state(self) -> int:
        return aggregate_ready_state(self._all_handles())

    @property
    def network_state(self) -> int:
        return aggregate_network_state(self._all_handles())

    @_guarded
    def play(self) -> None:
        if not self._entries:
            logger.debug("play() with no handles; ignoring")
            return
        if self.duration > 0 and self.duration - self._time < self.loop_back_guard:
            self._seek(0.0)

        entry = self._resolve(self._time)
        target = entry[0] if entry is not None else self._active
        if target is None:
            return
        try:
            self._require_ready(target)
        except NotReadyError as e:
            logger.info("play() ignored: %s", e)
            self.buffering = True
            self.events.emit("waiting")
            return

        for other in self._entries:
            if other is not target and not other.handle.paused:
                other.handle.pause()
        self._active = target
        if not target.contains(target.handle.current_time):
            target.handle.current_time = target.native(self._time)
        target.handle.play()

    @_guarded
    def pause(self) -> None:
        self._cancel_tick()
        if self._active is None:
            logger.debug("pause() with no active handle; ignoring")
            return
        self._active.handle.pause()

    @_guarded
    def seek(self, virtual_time: float) -> None:
        self._seek(virtual_time)

    @_guarded
    def load(self) -> None:
        for handle in self._all_handles():
            handle.load()

    @_guarded
    def seek_to_token(self, segment: Clip, timed_text: TimedText) -> None:
        """Click-to-seek on a transcript token."""
        target = virtual_time_of(self._track, segment, timed_text.start)
        if target is None:
            logger.debug("seek_to_token(): segment not in the current track")
            return
        self.current_time = target

    @_guarded
    def set_range(self, start: Optional[float], end: Optional[float] = None) -> None:
        """Deep link: seek to start once playable and stop at end."""
        self._range_end = end
        if start is None:
            return
        if self._ready:
            self._seek(start)
        else:
            self._pending_start = start

    def set_fragment(self, fragment: str) -> bool:
        """Apply a media-fragment deep link such as "t=10,20"."""
        parsed = parse_time_fragment(fragment)
        if parsed is None:
            logger.debug("Ignoring unusable fragment %r", fragment)
            return False
        self.set_range(*parsed)
        return True

    @_guarded
    def playhead_at(self, virtual_time: float) -> None:
        """Dispatch a pseudo playhead (hover/preview) without seeking."""
        self._dispatch_playhead(virtual_time, pseudo=True)

    def event_counts(self, handle: ResourceHandle) -> Dict[str, int]:
        return dict(self._counts.get(id(handle), {}))

    # ------------------------------------------------------------------
    # Property fan-out
    # ------------------------------------------------------------------

    @property
    def muted(self) -> bool:
        return self._muted

    @muted.setter
    def muted(self, value: bool) -> None:
        self._muted = bool(value)
        self._fan_out("muted", self._muted)
        self.events.emit("volumechange", {"muted": self._muted, "volume": self._volume})

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = min(1.0, max(0.0, float(value)))
        self._fan_out("volume", self._volume)
        self.events.emit("volumechange", {"muted": self._muted, "volume": self._volume})

    @property
    def playback_rate(self) -> float:
        return self._playback_rate

    @playback_rate.setter
    def playback_rate(self, value: float) -> None:
        self._playback_rate = float(value)
        self._fan_out("playback_rate", self._playback_rate)
        self.events.emit("ratechange", self._playback_rate)

    @property
    def loop(self) -> bool:
        return self._loop

    @loop.setter
    def loop(self, value: bool) -> None:
        self._loop = bool(value)
        self._fan_out("loop", self._loop)

    def _fan_out(self, name: str, value: Any) -> None:
        for handle in self._all_handles():
            setattr(handle, name, value)

    # ------------------------------------------------------------------
    # Seeking
    # ------------------------------------------------------------------

    def _resolve(self, virtual_time: float) -> Optional[Tuple[HandleEntry, float]]:
        """Entry and logical time for a seek target, skipping top-level gaps."""
        hit = clip_at(self._track, virtual_time)
        if hit and hit.segment_index < len(self._entries):
            return self._entries[hit.segment_index], virtual_time
        if self._track is None or not 0 <= virtual_time < self._track.duration:
            return None
        for entry in self._entries:
            if entry.offset > virtual_time:
                return entry, entry.offset
        return None

    def _seek(self, virtual_time: float) -> None:
        resolved = self._resolve(virtual_time)
        if resolved is None:
            logger.debug("seek(%.3f) outside the timeline; ignoring", virtual_time)
            return
        entry, time = resolved
        was_playing = self._playing
        previous_state = self.state

        self._cancel_tick()
        self.state = PlaybackState.SEEKING
        self.events.emit("seeking", time)

        if was_playing:
            for other in self._entries:
                if other is not entry and not other.handle.paused:
                    other.handle.pause()

        self._active = entry
        self._time = time
        entry.handle.current_time = entry.native(time)
        logger.debug("Seek to %.3f (segment %d, native %.3f)", time, entry.index, entry.native(time))

        if was_playing:
            self._playing = True
            if entry.handle.paused:
                entry.handle.play()
            self.state = PlaybackState.PLAYING
            self._schedule_tick()
        elif previous_state is PlaybackState.IDLE:
            self.state = PlaybackState.IDLE
        else:
            self.state = PlaybackState.PAUSED

        self.events.emit("seeked", time)
        self.events.emit("timeupdate", self._time)
        self._dispatch_playhead(self._time)

    # ------------------------------------------------------------------
    # Native event handling
    # ------------------------------------------------------------------

    def _dispatch(self, handle: ResourceHandle, entry: Optional[HandleEntry], event_type: str) -> None:
        self._counts.setdefault(id(handle), Counter())[event_type] += 1
        try:
            if event_type in READINESS_EVENTS:
                self._on_readiness(handle, entry, event_type)
            elif entry is None:
                return
            elif event_type == "timeupdate":
                self._on_timeupdate(entry)
            elif event_type == "play":
                self._on_play(entry)
            elif event_type == "pause":
                self._on_pause(entry)
            elif event_type == "seeked":
                self._on_seeked(entry)
        except Exception:
            logger.exception("Error handling native '%s' event", event_type)

    def _on_timeupdate(self, entry: HandleEntry) -> None:
        if self._playing and any_seeking(e.handle for e in self._entries):
            return
        if entry is not self._active and entry.handle.paused:
            return
        self._sync(entry)

    def _sync(self, entry: HandleEntry) -> None:
        """Map an entry's native time onto the virtual timeline."""
        native = entry.handle.current_time
        following = self._next_playable(entry)

        if native < entry.start:
            if not entry.handle.paused:
                entry.handle.pause()
            return

        if native < entry.end:
            logical = entry.logical(native)
            if self._range_end is not None and logical >= self._range_end:
                self._range_end = None
                self.pause()
                return
            self._time = logical
            if following is not None and following.handle.current_time != following.start:
                following.handle.current_time = following.start
            self.events.emit("timeupdate", self._time)
            self._dispatch_playhead(self._time)
            return

        # Reached the clip end: hand off to the next handle with duration
        if following is not None:
            self._active = following
            self._time = following.offset
            entry.handle.pause()
            if not following.contains(following.handle.current_time):
                following.handle.current_time = following.start
            # The seek above can re-enter _sync and move the hand-off on
            if self._active is following:
                following.handle.play()
        elif not entry.handle.paused:
            entry.handle.pause()
        else:
            self._finish()

    def _on_play(self, entry: HandleEntry) -> None:
        if not entry.contains(entry.handle.current_time):
            return
        was_playing = self._playing
        self._playing = True
        if self.state is PlaybackState.SEEKING:
            return
        self.state = PlaybackState.PLAYING
        if not was_playing:
            self.events.emit("play")
        self._schedule_tick()

    def _on_pause(self, entry: HandleEntry) -> None:
        if entry.handle.seeking or self.state is PlaybackState.SEEKING:
            return
        if self._next_playable(entry) is None:
            self._finish()
            return
        if entry.contains(entry.handle.current_time):
            self._playing = False
            self._cancel_tick()
            self.state = PlaybackState.PAUSED
            self.events.emit("pause")

    def _finish(self) -> None:
        if self.state is PlaybackState.ENDED:
            return
        self._playing = False
        self._cancel_tick()
        self.state = PlaybackState.ENDED
        self.events.emit("pause")
        self.events.emit("ended")

    def _on_seeked(self, entry: HandleEntry) -> None:
        if self.state is PlaybackState.SEEKING or entry is not self._active:
            return
        if self._playing and entry.handle.paused and entry.contains(entry.handle.current_time):
            entry.handle.play()
            self._schedule_tick()

    def _on_readiness(self, handle: ResourceHandle, entry: Optional[HandleEntry], event_type: str) -> None:
        if (
            event_type == "canplay"
            and entry is not None
            and self._counts[id(handle)]["canplay"] == 1
        ):
            handle.current_time = entry.start

        handles = self._all_handles()
        waiting = event_type in ("waiting", "stalled")
        ready = can_play(handles) and not waiting

        if ready:
            if not self._ready or self.buffering:
                self._ready = True
                self.buffering = False
                self.events.emit("canplay")
                if self._pending_start is not None:
                    start, self._pending_start = self._pending_start, None
                    self._seek(start)
            through = can_play_through(handles)
            if through and not self._ready_through:
                self.events.emit("canplaythrough")
            self._ready_through = through
        else:
            was_buffering = self.buffering
            self._ready = False
            self._ready_through = False
            self.buffering = True
            if waiting or not was_buffering:
                self.events.emit("waiting")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_playable(self, entry: HandleEntry) -> Optional[HandleEntry]:
        """First later entry with a non-empty native range, or None."""
        for candidate in self._entries[entry.index + 1:]:
            if candidate.end > candidate.start:
                return candidate
        return None

    def _require_ready(self, entry: HandleEntry) -> None:
        if entry.handle.ready_state < ReadyState.HAVE_FUTURE_DATA:
            raise NotReadyError(entry.handle.ready_state, ReadyState.HAVE_FUTURE_DATA)

    def _dispatch_playhead(self, virtual_time: float, pseudo: bool = False) -> None:
        hit = clip_at(self._track, virtual_time)
        self._playhead_counter += 1
        self.events.emit("playhead", PlayheadDetail(
            time=virtual_time,
            offset=hit.offset,
            clip=hit.clip,
            segment=hit.segment,
            timed_text=hit.timed_text,
            pseudo=pseudo,
            counter=self._playhead_counter,
        ))

    # ------------------------------------------------------------------
    # Synthetic tick
    # ------------------------------------------------------------------

    def _schedule_tick(self) -> None:
        if self._tick is not None or not self._playing or self.state is PlaybackState.SEEKING:
            return
        if self.tick_hz <= 0:
            return
        self._tick = self._scheduler.call_later(1.0 / self.tick_hz, self._on_tick)

    def _cancel_tick(self) -> None:
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None

    def _on_tick(self) -> None:
        self._tick = None
        try:
            if not self._playing or self._active is None:
                return
            if not any_seeking(e.handle for e in self._entries):
                self._sync(self._active)
        except Exception:
            logger.exception("Progress tick failed")
        self._schedule_tick()
