"""Core caption logic: token annotation, the grouping sweep, cue assembly.

WHY: Auto-generated captions must break at readable places. The player
shows at most ~74 characters at once, prefers to break at sentence ends,
then at other punctuation, and avoids leaving a few widowed words at the
end of a clip.

HOW: The pipeline has three stages, all operating on one clip's tokens:
  1. annotate_tokens(): character offsets, sentence start/end flags,
     trailing-punctuation flags, and the sentence-start fix-up.
  2. sweep_groups(): left-to-right sweep that assigns caption_group ids
     and the break flags (pilcrow, pilcrow0, pilcrow2, pilcrow3).
  3. assemble_cues(): folds the groups into Cue objects, splitting a
     group whose threshold token lies past its chosen break.

RULES:
- ALL functions accept an explicit `config` dict; no global state
- Token text is never modified; only the derived metadata is written
- Every token ends up in exactly one cue, in input order
- Cue end >= cue start; consecutive cues never overlap
- annotate_tokens() resets derived metadata, so regrouping is repeatable
"""

import bisect
import logging
import re
from typing import Dict, List, Optional, Sequence

from timedtext_player.captions.sentences import sentence_spans
from timedtext_player.captions.vtt import karaoke_tag
from timedtext_player.core.ir import Cue, TimedText

logger = logging.getLogger(__name__)

# =============================================================================
# Annotation
# =============================================================================

PUNCT_RE = re.compile(r"[.,;:!?…\-–—]+[\"'”’)\]]*$")
SENT_PUNCT_RE = re.compile(r"[.!?…]+[\"'”’)\]]*$")


def joined_text(tokens: Sequence[TimedText]) -> str:
    """The clip text the sentence splitter sees: tokens joined by one space."""
    return " ".join(t.text for t in tokens)


def _reset(token: TimedText) -> None:
    token.char_offset = 0
    token.sentence_start = False
    token.sentence_end = False
    token.punctuation = False
    token.caption_group = None
    token.pilcrow = False
    token.pilcrow0 = False
    token.pilcrow2 = False
    token.pilcrow3 = False
    token.glue = False


def annotate_tokens(tokens: Sequence[TimedText]) -> None:
    """Write char_offset, sentence and punctuation flags onto each token."""
    text = joined_text(tokens)
    spans = sentence_spans(text)
    starts = [s for s, _ in spans]
    ends = [e for _, e in spans]

    offset = 0
    for token in tokens:
        _reset(token)
        token_end = offset + len(token.text)
        token.char_offset = offset
        # A span edge anywhere inside the token marks it
        if token.text:
            i = bisect.bisect_left(starts, offset)
            token.sentence_start = i < len(starts) and starts[i] < token_end
            j = bisect.bisect_right(ends, offset)
            token.sentence_end = j < len(ends) and ends[j] <= token_end
        token.punctuation = bool(PUNCT_RE.search(token.text))
        offset = token_end + 1

    for prev, token in zip(tokens, tokens[1:]):
        if token.sentence_start:
            prev.sentence_end = True


def is_hard_stop(token: TimedText) -> bool:
    """End of sentence with actual terminal punctuation."""
    return token.sentence_end and bool(SENT_PUNCT_RE.search(token.text))


# =============================================================================
# Grouping sweep
# =============================================================================


def _look_behind(tokens: Sequence[TimedText], trigger: int, floor: int, config: Dict) -> Optional[int]:
    """Most recent hard stop, else most recent punctuation, in the window."""
    lo = max(floor, trigger - config["look_behind"])
    window = range(trigger, lo - 1, -1)
    for j in window:
        if is_hard_stop(tokens[j]):
            return j
    for j in window:
        if tokens[j].punctuation:
            return j
    return None


def _look_ahead(tokens: Sequence[TimedText], trigger: int, config: Dict) -> Optional[int]:
    stop = min(len(tokens), trigger + 1 + config["look_ahead"])
    for j in range(trigger + 1, stop):
        if tokens[j].punctuation:
            return j
    return None


def _tail_break(tokens: Sequence[TimedText], tail_start: int) -> Optional[int]:
    """Last hard stop, else last punctuation, from tail_start to the end."""
    tail = range(len(tokens) - 1, tail_start - 1, -1)
    for j in tail:
        if is_hard_stop(tokens[j]):
            return j
    for j in tail:
        if tokens[j].punctuation:
            return j
    return None


def group_id(clip_start: float, last_break: int) -> str:
    """Caption group identifier: clip start plus the break's char index."""
    return "{:.3f}+{}".format(clip_start, last_break)


def sweep_groups(tokens: Sequence[TimedText], config: Dict, clip_start: float = 0.0) -> None:
    """Assign caption groups and break flags to annotated tokens.

    WHY: A greedy character count would cut mid-phrase. The sweep waits
    for the threshold and then looks around it for a better place.

    HOW: When the running character count since the last break reaches
    break_chars (or the last token is reached), the token there is the
    trigger (pilcrow0). The break goes to the most recent hard stop or
    punctuation within look_behind tokens, else to the trigger itself.
    Outside the widow window a fallback break may move forward up to
    look_ahead tokens onto punctuation (pilcrow2). Inside the widow
    window the last hard stop or punctuation of the tail wins
    (pilcrow3), so no short remainder is left behind.

    RULES:
    - The look-behind never crosses the previous break
    - Tokens are assigned a group once; later passes skip them
    - After a forward relocation the sweep resumes past the new break
    """
    n = len(tokens)
    break_chars = config["break_chars"]
    tail_start = n - config["widow_window"]
    last_break = 0
    floor = 0
    i = 0

    while i < n:
        token = tokens[i]
        is_last = i == n - 1
        if token.char_offset + len(token.text) - last_break < break_chars and not is_last:
            i += 1
            continue

        token.pilcrow0 = True
        if is_last:
            chosen = i
        else:
            chosen = _look_behind(tokens, i, floor, config)
            fallback = chosen is None
            if fallback:
                chosen = i
            if i < tail_start:
                if fallback:
                    ahead = _look_ahead(tokens, i, config)
                    if ahead is not None:
                        chosen = ahead
                        tokens[chosen].pilcrow2 = True
            else:
                tail = _tail_break(tokens, max(floor, tail_start))
                if tail is not None:
                    chosen = tail
                    tokens[chosen].pilcrow3 = True

        end_token = tokens[chosen]
        end_token.pilcrow = True
        last_break = end_token.char_offset + len(end_token.text) + 1
        gid = group_id(clip_start, last_break)
        upto = max(i, chosen)
        for j in range(floor, upto + 1):
            if tokens[j].caption_group is None:
                tokens[j].caption_group = gid
        floor = chosen + 1
        i = upto + 1


# =============================================================================
# Cue assembly
# =============================================================================


def _cue_text(tokens: Sequence[TimedText], karaoke: bool) -> str:
    if karaoke:
        return " ".join("{}{}".format(karaoke_tag(t.start), t.text) for t in tokens)
    return " ".join(t.text for t in tokens)


def assemble_cues(tokens: Sequence[TimedText], config: Dict) -> List[Cue]:
    """Fold grouped tokens into cues.

    Groups are visited in first-seen order. When a group's threshold
    token (pilcrow0) lies after its chosen break (pilcrow), the tokens
    after the break belong to the next caption: the last of them is
    marked glue and they are carried into the following group.

    RULES:
    - end = last token end, clamped to the next cue's start
    - end is never earlier than start
    """
    groups = {}  # type: Dict[str, List[TimedText]]
    for token in tokens:
        groups.setdefault(token.caption_group or "", []).append(token)

    units = []  # type: List[List[TimedText]]
    current = []  # type: List[TimedText]
    for members in groups.values():
        for token in members:
            current.append(token)
            if token.pilcrow:
                units.append(current)
                current = []
        if current:
            current[-1].glue = True
    if current:
        units.append(current)

    cues = []  # type: List[Cue]
    for k, unit in enumerate(units):
        start = unit[0].start
        end = max(t.end for t in unit)
        if k + 1 < len(units):
            end = min(end, units[k + 1][0].start)
        end = max(end, start)
        cues.append(Cue(
            start=start,
            end=end,
            text=_cue_text(unit, config.get("karaoke", False)),
            tokens=tuple(unit),
        ))
    return cues
