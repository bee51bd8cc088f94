"""Timeline compiler: segment descriptors into a compiled Track.

WHY: The player needs one continuous virtual timeline over several
independently buffered resources, with captions already derived from
the transcript. Compiling once up front keeps every lookup during
playback a pure read of an immutable structure.

HOW: Per segment, every child descriptor becomes a Clip whose tokens are
grouped into caption cues (timedtext_player.captions). Gaps are
synthesized wherever adjacent siblings do not touch on the native axis:
among a segment's children, and between top-level segments that play
the same resource.
Virtual offsets are the running sum of sibling durations. When a
CaptionStore is supplied, each segment also gets a WebVTT payload.

RULES:
- Output depends only on input order; recompiling the same input gives
  the same durations, offsets and groupings
- Malformed timing never aborts a compile: the item gets a zero-length
  range anchored at the previous token's end (or its parent's start)
  and a warning is logged
- Overlapping siblings get no Gap; the overlap is logged
- Track.duration is the running sum of its children's durations
- A new compile fully replaces the previous Track; TimelineCompiler
  releases the superseded caption payloads
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from timedtext_player import config as _config
from timedtext_player.captions import group_into_cues, render_vtt
from timedtext_player.config import map_language
from timedtext_player.core.descriptors import (
    ChildDescriptor,
    SegmentDescriptor,
    TimedDescriptor,
    load_segments,
)
from timedtext_player.core.ir import (
    Clip,
    Effect,
    Gap,
    Item,
    MediaReference,
    TimedText,
    TimeRange,
    Track,
)
from timedtext_player.core.payloads import CaptionStore
from timedtext_player.errors import MalformedDescriptorError

logger = logging.getLogger(__name__)

# Native ranges closer than this are treated as touching
GAP_EPSILON = 1e-9

CaptionConfig = Union[str, Dict[str, Any], None]


@dataclass
class CompileResult:
    """Output of one compile pass."""

    track: Track
    duration: float


# ---------------------------------------------------------------------------
# Timing resolution
# ---------------------------------------------------------------------------


def _resolve_range(desc: TimedDescriptor, what: str, anchor: float) -> TimeRange:
    """Resolve a descriptor's range, or a zero-length range at anchor."""
    try:
        return desc.time_range(what)
    except MalformedDescriptorError as e:
        logger.warning("%s; using zero-length range at %.3fs", e, anchor)
        return TimeRange(start=anchor, duration=0.0)


def _build_tokens(child: ChildDescriptor, child_range: TimeRange, where: str) -> List[TimedText]:
    tokens = []  # type: List[TimedText]
    anchor = child_range.start
    for t_idx, tok in enumerate(child.tokens):
        rng = _resolve_range(tok, f"token {t_idx} of {where}", anchor)
        tokens.append(TimedText(text=tok.text.strip(), marked_range=rng))
        anchor = rng.end
    return tokens


# ---------------------------------------------------------------------------
# Gaps and offsets
# ---------------------------------------------------------------------------


def synthesize_gaps(
    items: Sequence[Clip],
    where: str = "track",
    same_media_only: bool = False,
) -> List[Item]:
    """Insert a Gap between adjacent clips whose native ranges do not touch.

    With same_media_only, only neighbours playing the same resource are
    compared; native times of different resources are unrelated.

    RULES:
    - Gap.start = end(i-1), Gap.duration = start(i) - end(i-1)
    - The Gap carries the preceding clip's media reference
    - Never before the first or after the last clip
    - Overlaps (start(i) < end(i-1)) produce no Gap
    """
    out = []  # type: List[Item]
    prev = None  # type: Optional[Clip]
    for item in items:
        comparable = prev is not None and (
            not same_media_only or prev.media_reference == item.media_reference
        )
        if comparable:
            prev_end = prev.source_range.end
            delta = item.source_range.start - prev_end
            if delta > GAP_EPSILON:
                out.append(Gap(
                    source_range=TimeRange(start=prev_end, duration=delta),
                    media_reference=prev.media_reference,
                ))
            elif delta < -GAP_EPSILON:
                logger.warning(
                    "Overlapping items in %s: %.3fs starts before previous end %.3fs",
                    where, item.source_range.start, prev_end,
                )
        out.append(item)
        prev = item
    return out


def assign_offsets(items: Sequence[Item], base: float = 0.0) -> float:
    """Set each item's virtual offset; return the running total duration."""
    total = 0.0
    for item in items:
        item.offset = base + total
        total += item.duration
    return total


# ---------------------------------------------------------------------------
# Segment compilation
# ---------------------------------------------------------------------------


def _compile_child(
    child: ChildDescriptor,
    c_idx: int,
    anchor: float,
    segment_media: MediaReference,
    where: str,
    captions: CaptionConfig,
) -> Clip:
    what = f"child {c_idx} of {where}"
    rng = _resolve_range(child, what, anchor)
    tokens = _build_tokens(child, rng, what)
    clip = Clip(
        source_range=rng,
        media_reference=MediaReference(child.media) if child.media else segment_media,
        metadata=dict(child.metadata),
        timed_texts=tokens or None,
        name=what,
        text=child.text.strip() or " ".join(t.text for t in tokens),
    )
    if tokens:
        clip.cues = group_into_cues(tokens, captions, clip_start=rng.start)
    return clip


def compile_segment(
    seg: SegmentDescriptor,
    s_idx: int,
    captions: CaptionConfig = None,
) -> Clip:
    """Compile one segment descriptor into a top-level Clip (offset unset)."""
    where = f"segment {s_idx}"
    rng = _resolve_range(seg, where, 0.0)
    media = MediaReference(seg.media)

    clips = []  # type: List[Clip]
    anchor = rng.start
    for c_idx, child in enumerate(seg.children):
        clip = _compile_child(child, c_idx, anchor, media, where, captions)
        clips.append(clip)
        anchor = clip.source_range.end

    effects = []  # type: List[Effect]
    for e_idx, eff in enumerate(seg.effects):
        effects.append(Effect(
            name=eff.name,
            source_range=_resolve_range(eff, f"effect {e_idx} of {where}", rng.start),
            parameters=dict(eff.parameters),
            id=eff.id,
        ))

    segment = Clip(
        source_range=rng,
        media_reference=media,
        metadata=dict(seg.metadata),
        children=synthesize_gaps(clips, where),
        effects=effects,
        name=seg.id or seg.media or where,
        text=" ".join(c.text for c in clips if c.text),
    )
    for clip in clips:
        segment.cues.extend(clip.cues)
    return segment


def _as_descriptors(segments: Iterable[Any]) -> List[SegmentDescriptor]:
    items = list(segments)
    if all(isinstance(s, SegmentDescriptor) for s in items):
        return items
    return load_segments(items)


def compile_track(
    segments: Iterable[Any],
    config: CaptionConfig = None,
    store: Optional[CaptionStore] = None,
    language: Optional[str] = None,
) -> CompileResult:
    """Compile ordered segment descriptors into a Track.

    Args:
        segments: SegmentDescriptor objects, or raw dicts validated on
            the way in.
        config: Caption preset name or config dict for the grouping pass.
        store: When given, each segment receives a WebVTT caption payload.
        language: Default caption language; a segment's own language wins.

    Returns:
        CompileResult with the Track and its total duration.
    """
    descriptors = _as_descriptors(segments)
    top = [compile_segment(seg, i, config) for i, seg in enumerate(descriptors)]

    children = synthesize_gaps(top, "track", same_media_only=True)
    duration = assign_offsets(children)

    for segment in top:
        if segment.children:
            first = segment.children[0]
            lead = first.source_range.start - segment.source_range.start
            assign_offsets(segment.children, segment.offset + lead)

    if store is not None:
        for segment, seg in zip(top, descriptors):
            lang = map_language(seg.language or language or _config.DEFAULT_LANGUAGE)
            segment.captions = store.create(render_vtt(segment.cues, lang), lang)

    track = Track(children=children, duration=duration)
    logger.info(
        "Compiled %d segments (%d gaps), duration %.3fs",
        len(top), len(children) - len(top), duration,
    )
    return CompileResult(track=track, duration=duration)


# ---------------------------------------------------------------------------
# Recompile driver
# ---------------------------------------------------------------------------


CompiledListener = Callable[[CompileResult], None]


class TimelineCompiler:
    """Owns the current Track and recompiles when the source changes.

    WHY: The host detects markup changes; the compiler only needs a hook
    to call. Each pass atomically replaces the Track and releases the
    caption payloads of the pass it supersedes.

    HOW: compile() builds a new CompileResult, swaps it in, releases the
    old payload URLs from the store and notifies on_compiled listeners.
    """

    def __init__(
        self,
        config: CaptionConfig = None,
        language: Optional[str] = None,
        store: Optional[CaptionStore] = None,
    ) -> None:
        self.config = config
        self.language = language
        self.store = store if store is not None else CaptionStore()
        self._result = None  # type: Optional[CompileResult]
        self._listeners = []  # type: List[CompiledListener]

    @property
    def result(self) -> Optional[CompileResult]:
        return self._result

    @property
    def track(self) -> Optional[Track]:
        return self._result.track if self._result is not None else None

    def on_compiled(self, listener: CompiledListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: CompiledListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def compile(self, segments: Iterable[Any]) -> CompileResult:
        result = compile_track(segments, self.config, self.store, self.language)
        previous = self._result
        self._result = result
        if previous is not None:
            self._release(previous.track)
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("on_compiled listener failed")
        return result

    def on_source_changed(self, segments: Iterable[Any]) -> CompileResult:
        """Host hook: the annotated source changed, recompile from scratch."""
        logger.debug("Source changed; recompiling")
        return self.compile(segments)

    def close(self) -> None:
        if self._result is not None:
            self._release(self._result.track)
        self._result = None
        self._listeners.clear()

    def _release(self, track: Track) -> None:
        self.store.release_all(
            s.captions.url for s in track.segments if s.captions is not None
        )
