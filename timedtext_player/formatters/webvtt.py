"""WebVTT caption formatter: one .vtt file per segment.

WHY: Each segment plays from its own resource, so each gets its own
caption track with cue times on that resource's native clock.

HOW: Uses the caption payload the compiler attached when there is one;
otherwise renders the segment's cues with render_vtt().

RULES:
- Suffixes are "-01.vtt", "-02.vtt", ... in timeline order
- Cue times are native to the segment's resource
- Media type: "text/vtt"
"""

from __future__ import annotations

from typing import List, Optional

from timedtext_player.captions import render_vtt
from timedtext_player.core.ir import Track
from timedtext_player.formatters.base import BaseFormatter, FormatterOutput


class WebVTTFormatter(BaseFormatter):
    """Per-segment WebVTT caption files."""

    def __init__(self, language: Optional[str] = None) -> None:
        self.language = language

    @property
    def name(self) -> str:
        return "WebVTT Captions"

    def format(self, track: Track) -> List[FormatterOutput]:
        outputs = []  # type: List[FormatterOutput]
        for i, segment in enumerate(track.segments, 1):
            if segment.captions is not None and self.language is None:
                content = segment.captions.text
            else:
                content = render_vtt(segment.cues, self.language)
            outputs.append(FormatterOutput(
                suffix="-{:02d}.vtt".format(i),
                content=content,
                media_type="text/vtt",
            ))
        return outputs
