"""WebVTT rendering for compiled caption cues.

WHY: Hosts attach the compiled captions to their media elements as a
WebVTT text track, so the cue list must serialize to a byte-exact
WebVTT document.

HOW: seconds_to_vtt_time() rounds to milliseconds and splits with
divmod; render_vtt() writes the header block followed by one numbered
block per cue.

RULES:
- Header: "WEBVTT", "Kind: captions", "Language: <tag>", blank line
- Cue block: 1-based number, "HH:MM:SS.mmm --> HH:MM:SS.mmm", text, blank
- Times are rounded to 3 decimals before formatting
- None, zero or negative times render as 00:00:00.000
"""

from typing import Iterable, Optional

from timedtext_player.config import map_language
from timedtext_player.core.ir import Cue


def seconds_to_vtt_time(seconds: Optional[float]) -> str:
    """Convert seconds to a WebVTT timestamp: HH:MM:SS.mmm"""
    if not seconds or seconds < 0:
        return "00:00:00.000"
    total_ms = int(round(round(seconds, 3) * 1000))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return "{:02d}:{:02d}:{:02d}.{:03d}".format(hours, minutes, secs, millis)


def karaoke_tag(seconds: Optional[float]) -> str:
    """Inline WebVTT timestamp tag placed before a token."""
    return "<{}>".format(seconds_to_vtt_time(seconds))


def render_vtt(cues: Iterable[Cue], language: Optional[str] = None) -> str:
    """Render cues as a complete WebVTT document.

    Args:
        cues: Cues in display order.
        language: ISO code or BCP-47 tag; mapped through map_language().

    Returns:
        The WebVTT file content, ending with a newline.
    """
    lines = ["WEBVTT", "Kind: captions", "Language: {}".format(map_language(language)), ""]

    for i, cue in enumerate(cues, 1):
        lines.append(str(i))
        lines.append("{} --> {}".format(seconds_to_vtt_time(cue.start), seconds_to_vtt_time(cue.end)))
        lines.append(cue.text)
        lines.append("")

    return "\n".join(lines) + "\n"
