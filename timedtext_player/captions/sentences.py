"""Regex sentence segmentation over a clip's joined token text.

WHY: Caption breaks prefer sentence ends, so every token needs to know
whether it opens or closes a sentence. The token text alone is not
enough ("Dr." ends with a period but ends nothing).

HOW: Terminal punctuation runs (. ! ? …, plus closing quotes and
brackets) are candidate boundaries. A candidate counts when it is
followed by whitespace and the next word does not start lowercase, or
when it ends the text. Periods belonging to abbreviations and initials
are protected up front. Decimals never qualify because no whitespace
follows their period.

RULES:
- Spans are (start, end) character offsets into the input string
- Spans never include the whitespace between sentences
- Non-empty text always yields at least one span
"""

import re
from typing import List, Set, Tuple

ABBREVIATIONS = frozenset({
    "mr", "mrs", "ms", "dr", "prof", "sr", "jr", "st", "ltd", "inc",
    "vs", "etc", "al", "eg", "ie", "cf", "no", "vol", "pp", "ed",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "oct", "nov", "dec",
    "fig", "figs", "eq", "eqs", "sec", "ch", "pt", "para", "approx", "dept",
})

_TERMINAL_RE = re.compile(r"(?:\.{3}|[.!?…])+[\"'”’)\]]*")
_ABBREV_RE = re.compile(r"\b([A-Za-z]+)\.")
_INITIAL_RE = re.compile(r"\b[A-Z]\.(?=\s*[A-Z]\.)")
_OPENERS = "\"'“‘([¿¡"


def _protected_periods(text: str) -> Set[int]:
    """Indices of periods that belong to abbreviations or initials."""
    protected = set()
    for m in _ABBREV_RE.finditer(text):
        if m.group(1).lower() in ABBREVIATIONS:
            protected.add(m.end() - 1)
    for m in _INITIAL_RE.finditer(text):
        protected.add(m.end() - 1)
    return protected


def _next_word_char(text: str, pos: int) -> str:
    """First character after pos skipping whitespace and opening quotes."""
    while pos < len(text) and (text[pos].isspace() or text[pos] in _OPENERS):
        pos += 1
    return text[pos] if pos < len(text) else ""


def sentence_spans(text: str) -> List[Tuple[int, int]]:
    """Split text into sentence spans.

    Args:
        text: Joined token text of one clip.

    Returns:
        List of (start, end) offsets in text order.
    """
    spans = []  # type: List[Tuple[int, int]]
    if not text.strip():
        return spans

    protected = _protected_periods(text)
    start = len(text) - len(text.lstrip())

    for m in _TERMINAL_RE.finditer(text):
        end = m.end()
        if m.group() == "." and m.start() in protected:
            continue
        if end < len(text) and not text[end].isspace():
            continue
        follower = _next_word_char(text, end)
        if follower and follower.islower():
            continue
        if end > start:
            spans.append((start, end))
        start = end
        while start < len(text) and text[start].isspace():
            start += 1

    if start < len(text.rstrip()):
        spans.append((start, len(text.rstrip())))
    return spans
