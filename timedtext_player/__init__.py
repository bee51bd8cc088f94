"""Timed-text player: one continuous timeline over many media resources.

WHY: Enhanced-transcript players (word-highlighted transcripts with
click-to-seek, auto-generated captions, timed overlays) stitch several
independently buffered media resources into what looks like one video.
The hard part is keeping a single virtual playhead, the caption cues, and
N underlying players in lock-step.

HOW: Three layers: compile (annotated segment descriptors into a Track
with caption cues), index (binary-search lookups over the Track), and
playback (a controller that drives opaque resource handles from the
virtual playhead). Each layer is independently testable.

RULES:
- The compiled Track is the stable contract between compiler and player
- The controller never mutates a Track; recompiling replaces it whole
- Adding an output format = one new formatter module, no core changes
"""

__version__ = "0.1.0"
