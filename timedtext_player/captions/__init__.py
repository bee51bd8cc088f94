"""Caption segmenter: tokens in, caption cues and WebVTT out.

WHY: The compiler, the formatters and tests all need the same caption
grouping. This package exposes it as one entry point instead of making
callers chain annotation, the sweep and assembly themselves.

HOW: group_into_cues() resolves the config (a preset name, a dict, or
the default preset), then runs annotate_tokens() -> sweep_groups() ->
assemble_cues(). render_vtt() turns the resulting cues into a WebVTT
document.

RULES:
- group_into_cues() is the public API for grouping tokens
- It writes derived metadata onto the tokens it is given
- Never mutate the preset constants; resolve_preset() copies
"""

from typing import Dict, List, Optional, Sequence, Union

from timedtext_player.captions.core import annotate_tokens, assemble_cues, sweep_groups
from timedtext_player.captions.presets import PRESET_DEFAULT, PRESET_KARAOKE, PRESETS, resolve_preset
from timedtext_player.captions.sentences import sentence_spans
from timedtext_player.captions.vtt import render_vtt, seconds_to_vtt_time
from timedtext_player.core.ir import Cue, TimedText

__all__ = [
    "group_into_cues",
    "render_vtt",
    "seconds_to_vtt_time",
    "sentence_spans",
    "resolve_preset",
    "PRESETS",
    "PRESET_DEFAULT",
    "PRESET_KARAOKE",
]


def group_into_cues(
    tokens: Sequence[TimedText],
    config: Union[str, Dict, None] = None,
    clip_start: float = 0.0,
) -> List[Cue]:
    """Group a clip's tokens into caption cues.

    Args:
        tokens: The clip's tokens in order.
        config: Preset name, full config dict, or None for "default".
            A partial dict is layered over the default preset.
        clip_start: Native start of the owning clip, used in group ids.

    Returns:
        Cues in display order; empty when there are no tokens.
    """
    if not tokens:
        return []
    if isinstance(config, str):
        cfg = resolve_preset(config)
    else:
        cfg = resolve_preset("default", config)

    annotate_tokens(tokens)
    sweep_groups(tokens, cfg, clip_start)
    return assemble_cues(tokens, cfg)
