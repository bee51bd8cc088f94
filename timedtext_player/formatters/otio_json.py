"""OTIO-style timeline JSON formatter, validated against a bundled schema.

WHY: Other tools (editors, debugging UIs, test fixtures) need the
compiled timeline itself, not just its captions. An OpenTimelineIO-like
shape (Track.1 / Clip.1 / Gap.1 / TimedText.1) is familiar to anyone
who has handled editorial timelines.

HOW: The Track is walked recursively into plain dicts, then validated
with jsonschema against schemas/track.schema.json before serializing.
metadata is opaque, so json.dumps falls back to str() for values that
are not JSON-native.

RULES:
- Times are float seconds (no rational time)
- captions holds the payload URL, or null when compiled without a store
- Validate output against the schema before returning; raise on failure
- Output suffix: "-timeline.json"
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from timedtext_player.core.ir import Clip, Effect, Gap, Item, MediaReference, TimedText, TimeRange, Track
from timedtext_player.formatters.base import BaseFormatter, FormatterOutput

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "track.schema.json"

_CACHED_SCHEMA: dict[str, Any] | None = None


def get_schema() -> dict[str, Any]:
    """Load the track schema, cached after the first call."""
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


def _range(rng: TimeRange) -> dict[str, Any]:
    return {"OTIO_SCHEMA": "TimeRange.1", "start_time": rng.start, "duration": rng.duration}


def _media(ref: MediaReference) -> dict[str, Any]:
    return {"OTIO_SCHEMA": "ExternalReference.1", "target_url": ref.target}


def _timed_text(token: TimedText) -> dict[str, Any]:
    return {
        "OTIO_SCHEMA": "TimedText.1",
        "text": token.text,
        "marked_range": _range(token.marked_range),
        "metadata": {
            "char_offset": token.char_offset,
            "sentence_start": token.sentence_start,
            "sentence_end": token.sentence_end,
            "punctuation": token.punctuation,
            "caption_group": token.caption_group,
            "pilcrow": token.pilcrow,
            "pilcrow0": token.pilcrow0,
            "pilcrow2": token.pilcrow2,
            "pilcrow3": token.pilcrow3,
            "glue": token.glue,
        },
    }


def _effect(effect: Effect) -> dict[str, Any]:
    return {
        "OTIO_SCHEMA": "Effect.1",
        "name": effect.name,
        "id": effect.id,
        "source_range": _range(effect.source_range),
        "metadata": dict(effect.parameters),
    }


def item_to_dict(item: Item) -> dict[str, Any]:
    """Serialize a Clip or Gap (recursively) into a JSON-ready dict."""
    if isinstance(item, Gap):
        return {
            "OTIO_SCHEMA": "Gap.1",
            "offset": item.offset,
            "source_range": _range(item.source_range),
            "media_reference": _media(item.media_reference),
        }
    if not isinstance(item, Clip):
        raise TypeError("Cannot serialize {!r} as a timeline item".format(type(item).__name__))
    return {
        "OTIO_SCHEMA": "Clip.1",
        "name": item.name,
        "text": item.text,
        "offset": item.offset,
        "source_range": _range(item.source_range),
        "media_reference": _media(item.media_reference),
        "metadata": item.metadata,
        "captions": item.captions.url if item.captions is not None else None,
        "effects": [_effect(e) for e in item.effects],
        "cues": [{"start": c.start, "end": c.end, "text": c.text} for c in item.cues],
        "timed_texts": (
            [_timed_text(t) for t in item.timed_texts]
            if item.timed_texts is not None else None
        ),
        "children": [item_to_dict(c) for c in item.children],
    }


def track_to_dict(track: Track, name: str = "") -> dict[str, Any]:
    return {
        "OTIO_SCHEMA": "Track.1",
        "name": name,
        "duration": track.duration,
        "children": [item_to_dict(c) for c in track.children],
    }


class OTIOJSONFormatter(BaseFormatter):
    """Formatter that exports the compiled timeline as JSON."""

    def __init__(self, track_name: str = "") -> None:
        self.track_name = track_name

    @property
    def name(self) -> str:
        return "Timeline JSON"

    def format(self, track: Track) -> list[FormatterOutput]:
        """Serialize and validate the Track.

        Raises:
            jsonschema.ValidationError: If the generated JSON does not
                conform to the bundled track schema.
        """
        output = track_to_dict(track, self.track_name)
        # Round-trip through JSON so opaque metadata is validated as written
        content = json.dumps(output, indent=2, ensure_ascii=False, default=str)
        jsonschema.validate(instance=json.loads(content), schema=get_schema())

        return [
            FormatterOutput(
                suffix="-timeline.json",
                content=content,
                media_type="application/json",
            )
        ]
