"""Output formatter registry.

WHY: The CLI needs a single lookup to find a formatter by name. Adding a
format means creating the formatter class, importing it here, and adding
one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["webvtt"]()``.

RULES:
- Keys are snake_case identifiers (used as CLI --formats values)
- Values are BaseFormatter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from timedtext_player.formatters.otio_json import OTIOJSONFormatter
from timedtext_player.formatters.plain_text import PlainTextFormatter
from timedtext_player.formatters.webvtt import WebVTTFormatter

if TYPE_CHECKING:
    from timedtext_player.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "webvtt": WebVTTFormatter,
    "otio_json": OTIOJSONFormatter,
    "plain_text": PlainTextFormatter,
}
