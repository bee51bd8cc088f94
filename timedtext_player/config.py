"""Configuration constants, language-tag mapping, and .env loading.

WHY: Caption break heuristics, tick rates and tolerance windows were
picked empirically. Keeping them as plain module-level values (with
environment overrides) makes them easy to tune without touching the
compiler or the controller.

HOW: python-dotenv loads the .env file on import. Every constant reads
an optional TIMEDTEXT_* environment variable and falls back to the
documented default.

RULES:
- Caption grouping defaults: 74 chars, 5-token look-behind, 3-token
  look-ahead, 5-token widow window
- Playback defaults: 15 Hz synthetic tick, 0.4 s loop-back guard
- LANGUAGE_MAP maps ISO 639-1 codes to the BCP-47 tags written into the
  WebVTT "Language:" header; unknown tags pass through normalized
- Never read os.environ elsewhere; import the constant from here
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Language tags for the WebVTT header
# ---------------------------------------------------------------------------

LANGUAGE_MAP: dict[str, str] = {
    "sv": "sv-SE",
    "en": "en-US",
    "da": "da-DK",
    "no": "nb-NO",
    "fi": "fi-FI",
    "de": "de-DE",
    "fr": "fr-FR",
    "es": "es-ES",
    "nl": "nl-NL",
    "it": "it-IT",
    "pt": "pt-BR",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "zh": "zh-Hans",
    "ar": "ar-SA",
    "ru": "ru-RU",
    "pl": "pl-PL",
    "tr": "tr-TR",
    "hi": "hi-IN",
}

UNDETERMINED_LANGUAGE = "und"
"""BCP-47 tag for an unknown language."""


def map_language(tag: str | None) -> str:
    """Map an ISO 639-1 code (or loose locale) to a BCP-47 tag.

    RULES:
    - Bare known codes map through LANGUAGE_MAP ("en" → "en-US")
    - Locale forms are normalized ("en_gb" → "en-GB")
    - Empty or None returns "und"
    """
    if not tag or not tag.strip():
        return UNDETERMINED_LANGUAGE
    tag = tag.strip().replace("_", "-")
    if tag.lower() in LANGUAGE_MAP:
        return LANGUAGE_MAP[tag.lower()]
    parts = tag.split("-")
    primary = parts[0].lower()
    rest = [p.upper() if len(p) == 2 else p for p in parts[1:]]
    return "-".join([primary] + rest)


# ---------------------------------------------------------------------------
# Caption grouping heuristic
# ---------------------------------------------------------------------------

DEFAULT_LANGUAGE = os.getenv("TIMEDTEXT_LANGUAGE", "en")
CAPTION_BREAK_CHARS = _env_int("TIMEDTEXT_BREAK_CHARS", 74)
CAPTION_LOOK_BEHIND = _env_int("TIMEDTEXT_LOOK_BEHIND", 5)
CAPTION_LOOK_AHEAD = _env_int("TIMEDTEXT_LOOK_AHEAD", 3)
CAPTION_WIDOW_WINDOW = _env_int("TIMEDTEXT_WIDOW_WINDOW", 5)
CAPTION_KARAOKE = _env_bool("TIMEDTEXT_KARAOKE", False)

# ---------------------------------------------------------------------------
# Playback synchronization
# ---------------------------------------------------------------------------

TICK_HZ = _env_float("TIMEDTEXT_TICK_HZ", 15.0)
LOOP_BACK_GUARD_S = _env_float("TIMEDTEXT_LOOP_BACK_GUARD", 0.4)
CLICK_NUDGE_S = 0.02
"""Forward nudge for click-to-seek on a token that starts its segment."""

EFFECT_FADE_IN_S = 2.0

LOG_LEVEL = os.getenv("TIMEDTEXT_LOG_LEVEL", "WARNING").upper()
