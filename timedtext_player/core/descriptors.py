"""Pydantic models for the compiler's input: segment descriptors.

WHY: Annotated transcript markup reaches the compiler as an already
parsed, ordered list of segment descriptors (originally read off
``section[data-media-src]`` elements and their ``data-t`` / ``data-m``
attributes). Pydantic gives the input a documented schema while the
timing fields stay lenient: a single unparsable timestamp must not
reject the whole transcript.

HOW: Structural fields (lists, dicts, strings) are validated normally.
Timing fields accept anything and coerce unparsable values to None in a
``mode="before"`` validator; the compiler later resolves a TimeRange
and substitutes a zero-length range when nothing usable is left.

RULES:
- Timing may be {start, duration} seconds, {start, end} seconds, or
  {start_ms, duration_ms} / {start_ms, end_ms} milliseconds
- A "t" string "start,end" (the markup's data-t form) is accepted too
- metadata is opaque and passed through verbatim
- Unknown keys are ignored
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from timedtext_player.core.ir import TimeRange
from timedtext_player.errors import MalformedDescriptorError

logger = logging.getLogger(__name__)


def _lenient_float(value: Any) -> Optional[float]:
    """Coerce a timing value to float, or None when it is unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


class TimedDescriptor(BaseModel):
    """Base for every descriptor that carries native timing."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    start: Optional[float] = None
    duration: Optional[float] = None
    end: Optional[float] = None
    start_ms: Optional[float] = Field(default=None, alias="m")
    duration_ms: Optional[float] = Field(default=None, alias="d")
    end_ms: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _split_data_t(cls, data: Any) -> Any:
        # "t": "12.5,14.0" is the markup's start,end attribute form
        if isinstance(data, dict) and "t" in data and data.get("start") is None:
            raw = data.get("t")
            data = dict(data)
            if isinstance(raw, str) and "," in raw:
                first, _, second = raw.partition(",")
                data.setdefault("start", first)
                data.setdefault("end", second)
            else:
                data.setdefault("start", raw)
        return data

    @field_validator(
        "start", "duration", "end", "start_ms", "duration_ms", "end_ms",
        mode="before",
    )
    @classmethod
    def _coerce_time(cls, value: Any) -> Optional[float]:
        return _lenient_float(value)

    def time_range(self, what: str) -> TimeRange:
        """Resolve the descriptor's timing into a TimeRange.

        RULES:
        - Seconds take precedence over milliseconds
        - end-based forms become duration = end - start
        - Negative durations are malformed

        Raises:
            MalformedDescriptorError: If no start or no duration/end
                can be resolved.
        """
        start = self.start
        duration = self.duration
        end = self.end
        if start is None and self.start_ms is not None:
            start = self.start_ms / 1000.0
        if duration is None and self.duration_ms is not None:
            duration = self.duration_ms / 1000.0
        if end is None and self.end_ms is not None:
            end = self.end_ms / 1000.0

        if start is None:
            raise MalformedDescriptorError(what, "missing or unparsable start time")
        if duration is None:
            if end is None:
                raise MalformedDescriptorError(what, "missing duration and end time")
            duration = end - start
        if duration < 0:
            raise MalformedDescriptorError(
                what, "negative duration {:.3f}s".format(duration)
            )
        return TimeRange(start=start, duration=duration)


class TokenDescriptor(TimedDescriptor):
    """One transcript token (word/phrase) with its own timing."""

    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _text_to_str(cls, value: Any) -> str:
        return "" if value is None else str(value)


class EffectDescriptor(TimedDescriptor):
    """A timed overlay declared by a segment; times are segment-native."""

    name: str = ""
    id: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ChildDescriptor(TimedDescriptor):
    """A child clip: native range, display text, and ordered tokens."""

    text: str = ""
    media: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    tokens: List[TokenDescriptor] = Field(default_factory=list)


class SegmentDescriptor(TimedDescriptor):
    """A top-level segment: one addressable resource plus its transcript.

    RULES:
    - media is the resource locator (the markup's data-media-src)
    - language, when set, overrides the default caption language
    """

    id: str = ""
    media: str = Field(default="", alias="src")
    language: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    children: List[ChildDescriptor] = Field(default_factory=list)
    effects: List[EffectDescriptor] = Field(default_factory=list)


def load_segments(data: Any) -> List[SegmentDescriptor]:
    """Validate raw JSON-like data into an ordered list of descriptors.

    Accepts either a bare list of segments or ``{"segments": [...]}``.

    Raises:
        ValueError: If the overall structure is not a list of objects.
    """
    if isinstance(data, dict) and "segments" in data:
        data = data["segments"]
    if not isinstance(data, list):
        raise ValueError("Expected a list of segment descriptors")
    segments = [SegmentDescriptor.model_validate(item) for item in data]
    logger.debug("Loaded %d segment descriptors", len(segments))
    return segments


def load_segments_file(path: str | Path) -> List[SegmentDescriptor]:
    """Read a JSON file of segment descriptors."""
    with open(path, encoding="utf-8") as f:
        return load_segments(json.load(f))
