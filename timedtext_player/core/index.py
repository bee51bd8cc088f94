"""Timeline index: logarithmic lookups over a compiled Track.

WHY: The playhead moves 15+ times per second and every update needs the
segment, clip and token under it. A linear scan over a long transcript
at that rate is wasteful; the Track is sorted, so binary search works.

HOW: clip_at() does three nested binary searches: top-level items by
virtual window, then the segment's children and the clip's tokens by
native time. effects_at() and virtual_time_of() cover overlays and
click-to-seek.

RULES:
- All range tests are half-open [start, end)
- A miss returns EMPTY_HIT (falsy); lookups never raise
- A time in a top-level Gap is a miss (no resource plays there)
- Between words the nearest preceding token is returned
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TypeVar

from timedtext_player.config import CLICK_NUDGE_S, EFFECT_FADE_IN_S
from timedtext_player.core.ir import Clip, Effect, Item, TimedText, Track

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TimelineHit:
    """Result of a timeline lookup.

    Attributes:
        segment: The top-level clip containing the time.
        clip: The segment child (Clip or Gap) containing the native time.
        timed_text: Token under the time, or the nearest preceding one.
        offset: The segment's virtual offset.
        segment_index: Index of the segment in Track.segments.
        native_time: The time on the segment's own resource.
    """

    segment: Optional[Clip] = None
    clip: Optional[Item] = None
    timed_text: Optional[TimedText] = None
    offset: float = 0.0
    segment_index: int = -1
    native_time: float = 0.0

    def __bool__(self) -> bool:
        return self.segment is not None


EMPTY_HIT = TimelineHit()


@dataclass(frozen=True)
class ActiveEffect:
    """An effect overlay active at some virtual time."""

    effect: Effect
    segment: Clip
    start: float
    end: float
    progress: float
    fade_in: float


_POSITIONS = weakref.WeakKeyDictionary()  # type: weakref.WeakKeyDictionary


def _segment_positions(track: Track) -> List[int]:
    """Map each top-level item index to its index among the segments."""
    positions = _POSITIONS.get(track)
    if positions is None:
        positions = []
        count = 0
        for item in track.children:
            positions.append(count)
            if isinstance(item, Clip):
                count += 1
        _POSITIONS[track] = positions
    return positions


def _last_at_or_before(items: Sequence[T], time: float, start_of: Callable[[T], float]) -> int:
    """Index of the last item whose start <= time, or -1."""
    lo, hi = 0, len(items)
    while lo < hi:
        mid = (lo + hi) // 2
        if start_of(items[mid]) <= time:
            lo = mid + 1
        else:
            hi = mid
    return lo - 1


def clip_at(track: Optional[Track], virtual_time: float) -> TimelineHit:
    """Resolve a virtual time to (segment, clip, token).

    Returns:
        A TimelineHit, or EMPTY_HIT when the time is outside the Track,
        inside a top-level Gap, or the Track is missing.
    """
    if track is None or not track.children:
        return EMPTY_HIT

    idx = _last_at_or_before(track.children, virtual_time, lambda item: item.offset)
    if idx < 0:
        return EMPTY_HIT
    item = track.children[idx]
    if not item.offset <= virtual_time < item.offset + item.duration:
        return EMPTY_HIT
    if not isinstance(item, Clip):
        logger.debug("Virtual time %.3f falls in a top-level gap", virtual_time)
        return EMPTY_HIT

    segment = item
    native = virtual_time - segment.offset + segment.source_range.start
    segment_index = _segment_positions(track)[idx]

    clip = None  # type: Optional[Item]
    timed_text = None  # type: Optional[TimedText]
    c_idx = _last_at_or_before(segment.children, native, lambda c: c.source_range.start)
    if c_idx >= 0 and segment.children[c_idx].source_range.contains(native):
        clip = segment.children[c_idx]
        if isinstance(clip, Clip) and clip.timed_texts:
            t_idx = _last_at_or_before(clip.timed_texts, native, lambda t: t.start)
            if t_idx >= 0:
                timed_text = clip.timed_texts[t_idx]

    return TimelineHit(
        segment=segment,
        clip=clip,
        timed_text=timed_text,
        offset=segment.offset,
        segment_index=segment_index,
        native_time=native,
    )


def effects_at(track: Optional[Track], virtual_time: float) -> List[ActiveEffect]:
    """Effect overlays whose virtual window contains the time.

    An effect's virtual start is effect.start - segment.start + segment.offset.
    progress runs 0..1 across the effect; fade_in ramps linearly over the
    first EFFECT_FADE_IN_S seconds.
    """
    active = []  # type: List[ActiveEffect]
    if track is None:
        return active
    for segment in track.segments:
        for effect in segment.effects:
            start = effect.source_range.start - segment.source_range.start + segment.offset
            duration = effect.source_range.duration
            if not start <= virtual_time < start + duration:
                continue
            elapsed = virtual_time - start
            active.append(ActiveEffect(
                effect=effect,
                segment=segment,
                start=start,
                end=start + duration,
                progress=elapsed / duration,
                fade_in=min(1.0, elapsed / EFFECT_FADE_IN_S),
            ))
    return active


def virtual_time_of(track: Optional[Track], segment: Clip, native_time: float) -> Optional[float]:
    """Virtual time for a native time on a segment (click-to-seek target).

    A click at exactly the segment's start is nudged forward by
    CLICK_NUDGE_S so the lookup lands inside the segment rather than on
    the boundary shared with the previous one.
    """
    if track is None or not any(s is segment for s in track.segments):
        return None
    virtual = native_time - segment.source_range.start + segment.offset
    if native_time == segment.source_range.start:
        virtual += CLICK_NUDGE_S
    return virtual


def segment_offsets(track: Optional[Track]) -> List[float]:
    """Virtual offsets of the top-level clips, in timeline order."""
    if track is None:
        return []
    return [s.offset for s in track.segments]
