"""Plain text transcript formatter with virtual timestamps.

WHY: Reviewers want the stitched transcript as readable text, with each
paragraph stamped at the point it appears on the continuous timeline
rather than on its source resource.

HOW: One paragraph per child clip, prefixed with "[HH:MM:SS.mmm]" at the
clip's virtual offset. Segments are separated by a blank line.

RULES:
- Gaps produce no text
- Timestamps are virtual, not native
- Output suffix: "-transcript.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import List

from timedtext_player.captions.vtt import seconds_to_vtt_time
from timedtext_player.core.ir import Clip, Track
from timedtext_player.formatters.base import BaseFormatter, FormatterOutput


def _segment_lines(segment: Clip) -> List[str]:
    lines = []  # type: List[str]
    for child in segment.children:
        if isinstance(child, Clip) and child.text:
            lines.append("[{}] {}".format(seconds_to_vtt_time(child.offset), child.text))
    if not lines and segment.text:
        lines.append("[{}] {}".format(seconds_to_vtt_time(segment.offset), segment.text))
    return lines


class PlainTextFormatter(BaseFormatter):
    """Formatter that produces a timestamped plain text transcript."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, track: Track) -> List[FormatterOutput]:
        blocks = []  # type: List[str]
        for segment in track.segments:
            lines = _segment_lines(segment)
            if lines:
                blocks.append("\n".join(lines))

        content = "\n\n".join(blocks)
        if content:
            content += "\n"

        return [
            FormatterOutput(
                suffix="-transcript.txt",
                content=content,
                media_type="text/plain",
            )
        ]
