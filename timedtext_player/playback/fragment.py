"""Media-fragment time parsing for deep links ("t=10,20").

RULES:
- Accepts "t=start,end", "t=start", "t=,end" and "#t=..." forms, and
  "npt:" prefixed values
- Values may be seconds ("12.5") or clock time ("1:02:03.5", "02:03")
- Returns None for anything unparsable
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

_CLOCK_RE = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")


def parse_clock(value: str) -> Optional[float]:
    """Parse seconds or [H:]MM:SS(.fff) into float seconds."""
    value = value.strip()
    if not value:
        return None
    m = _CLOCK_RE.match(value)
    if m:
        hours = int(m.group(1) or 0)
        return hours * 3600 + int(m.group(2)) * 60 + float(m.group(3))
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def parse_time_fragment(fragment: str) -> Optional[Tuple[Optional[float], Optional[float]]]:
    """Parse a media fragment into (start, end).

    Returns:
        (start, end) with either side None when omitted, or None when
        the fragment carries no usable t= value.
    """
    if not fragment:
        return None
    fragment = fragment.lstrip("#")
    for part in fragment.split("&"):
        key, _, value = part.partition("=")
        if key.strip() != "t":
            continue
        if value.startswith("npt:"):
            value = value[4:]
        first, sep, second = value.partition(",")
        start = parse_clock(first) if first.strip() else None
        end = parse_clock(second) if sep and second.strip() else None
        if start is None and end is None:
            return None
        if start is not None and end is not None and end < start:
            return None
        return start, end
    return None
