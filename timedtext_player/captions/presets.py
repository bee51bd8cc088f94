"""Configuration presets for the caption grouping heuristic.

WHY: The break thresholds (74 characters, 5-token look-behind, 3-token
look-ahead, 5-token widow window) were picked empirically for one
player layout. Keeping them as named presets lets a host pick a
different layout without touching the sweep.

HOW: Each preset is a plain dict. Defaults come from config.py, so the
TIMEDTEXT_* environment variables tune the "default" preset. PRESETS
maps names to their dicts.

RULES:
- Presets are frozen constants; never mutate them at runtime
- resolve_preset() always returns a fresh copy
- "karaoke" is the default heuristic plus per-token timestamp tags
"""

import copy
from typing import Dict, Optional

from timedtext_player import config as _config

PRESET_DEFAULT: Dict = {
    "break_chars": _config.CAPTION_BREAK_CHARS,
    "look_behind": _config.CAPTION_LOOK_BEHIND,
    "look_ahead": _config.CAPTION_LOOK_AHEAD,
    "widow_window": _config.CAPTION_WIDOW_WINDOW,
    "karaoke": _config.CAPTION_KARAOKE,
}

PRESET_KARAOKE: Dict = dict(PRESET_DEFAULT, karaoke=True)

PRESETS: Dict[str, Dict] = {
    "default": PRESET_DEFAULT,
    "karaoke": PRESET_KARAOKE,
}


def resolve_preset(preset: str = "default", overrides: Optional[Dict] = None) -> Dict:
    """Return a copy of the named preset with optional overrides applied.

    Raises:
        ValueError: If the preset name is unknown.
    """
    if preset not in PRESETS:
        raise ValueError(
            "Unknown caption preset '{}'. Valid: {}".format(
                preset, ", ".join(sorted(PRESETS))
            )
        )
    cfg = copy.deepcopy(PRESETS[preset])
    if overrides:
        cfg.update({k: v for k, v in overrides.items() if v is not None})
    return cfg
