"""Compiled timeline dataclasses: ranges, tokens, clips, gaps, tracks.

WHY: The compiler turns loosely-shaped annotated markup into a structure
that both the timeline index and the playback controller can trust. A
small, well-typed hierarchy replaces ad-hoc shape tagging: a tagged
variant over Clip and Gap, plus a distinct TimedText record for tokens.

HOW: Dataclasses form the hierarchy:
  TimeRange: start/duration in seconds on some native clock
  MediaReference: locator of the underlying resource
  TimedText: one token (word/phrase) with its grouping metadata
  Effect: a timed overlay declared by a clip
  Clip / Gap: playable unit and placeholder; ``kind`` is the tag
  Cue: one caption display unit spanning several tokens
  Track: ordered top-level items plus total duration

RULES:
- All times are float seconds
- Clip, Gap and TimedText compare by identity (eq=False) so they can be
  used as dict keys and compared with ``is`` during playback
- ``offset`` is the virtual (logical-timeline) start; ``source_range``
  is native time on the item's own resource
- A Track is immutable once the compiler returns it
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional, Union

if TYPE_CHECKING:
    from timedtext_player.core.payloads import CaptionPayload


@dataclass(frozen=True)
class TimeRange:
    """A native time interval: ``[start, start + duration)``."""

    start: float = 0.0
    duration: float = 0.0

    @property
    def end(self) -> float:
        return self.start + self.duration

    def contains(self, time: float) -> bool:
        """Half-open containment test used by every lookup."""
        return self.start <= time < self.end


@dataclass(frozen=True)
class MediaReference:
    """Locator of the resource a clip plays from."""

    target: str = ""


@dataclass(eq=False)
class TimedText:
    """The smallest timed unit: one word or phrase of transcript.

    WHY: Word-level highlighting and karaoke captions need per-token
    timing; the caption heuristic needs per-token text metadata.

    RULES:
    - text / marked_range come from the descriptor and never change
    - char_offset: offset of the token in its clip's joined text
    - sentence_start / sentence_end / punctuation: set by annotation
    - caption_group and the break flags (pilcrow*, glue) are written
      only during the grouping pass
    """

    text: str
    marked_range: TimeRange = field(default_factory=TimeRange)
    char_offset: int = 0
    sentence_start: bool = False
    sentence_end: bool = False
    punctuation: bool = False
    caption_group: Optional[str] = None
    pilcrow: bool = False
    pilcrow0: bool = False
    pilcrow2: bool = False
    pilcrow3: bool = False
    glue: bool = False

    @property
    def start(self) -> float:
        return self.marked_range.start

    @property
    def end(self) -> float:
        return self.marked_range.end


@dataclass
class Effect:
    """A timed overlay. ``source_range`` is native time of the owning clip."""

    name: str
    source_range: TimeRange = field(default_factory=TimeRange)
    parameters: dict[str, Any] = field(default_factory=dict)
    id: str = ""


@dataclass(frozen=True)
class Cue:
    """One caption display unit.

    RULES:
    - start is the first token's start, end the last token's end
      (clamped so consecutive cues never overlap)
    - text is the rendered cue text, possibly with karaoke tags
    """

    start: float
    end: float
    text: str
    tokens: tuple = ()


@dataclass(eq=False)
class Clip:
    """A contiguous playable unit; top-level clips are "segments".

    WHY: A segment is one independently addressable resource plus its
    nested transcript structure (child clips, gaps, tokens, effects).

    RULES:
    - metadata is passed through verbatim from the descriptor
    - timed_texts is None for clips without transcript tokens
    - cues are the compiled captions of this clip (a segment collects
      the cues of all its children)
    - captions is the compiled caption payload, top-level clips only
    """

    source_range: TimeRange
    media_reference: MediaReference = field(default_factory=MediaReference)
    metadata: dict[str, Any] = field(default_factory=dict)
    children: List[Item] = field(default_factory=list)
    timed_texts: Optional[List[TimedText]] = None
    effects: List[Effect] = field(default_factory=list)
    offset: float = 0.0
    cues: List[Cue] = field(default_factory=list)
    captions: Optional[CaptionPayload] = None
    name: str = ""
    text: str = ""

    kind = "clip"

    @property
    def duration(self) -> float:
        return self.source_range.duration


@dataclass(eq=False)
class Gap:
    """Placeholder for a non-contiguous native interval between siblings."""

    source_range: TimeRange
    media_reference: MediaReference = field(default_factory=MediaReference)
    offset: float = 0.0

    kind = "gap"

    @property
    def duration(self) -> float:
        return self.source_range.duration


Item = Union[Clip, Gap]


@dataclass(eq=False)
class Track:
    """The compiled timeline: ordered top-level items and total duration.

    RULES:
    - children holds segments and any synthesized top-level gaps
    - duration == sum(child.duration for child in children)
    - child.offset == sum of the prior siblings' durations
    """

    children: List[Item] = field(default_factory=list)
    duration: float = 0.0

    @property
    def segments(self) -> List[Clip]:
        """Top-level clips only (gaps excluded), in timeline order."""
        return [c for c in self.children if isinstance(c, Clip)]
