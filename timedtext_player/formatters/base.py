"""Abstract base formatter and output container.

WHY: Every output format reads the same compiled Track but writes
different file content. One base class keeps the CLI generic over
formats.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method. FormatterOutput bundles a file suffix with its content and MIME
type.

RULES:
- ``format()`` returns a list; per-segment formats return several items
- ``suffix`` starts with a hyphen, e.g. ``"-timeline.json"``
- The caller prepends the source filename stem
- Formatters never mutate the Track
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from timedtext_player.core.ir import Track


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-01.vtt"`` → ``"talk-01.vtt"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"text/vtt"``.
    """

    suffix: str
    content: str | bytes
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all output formatters.

    To add a new output format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'WebVTT Captions'."""

    @abstractmethod
    def format(self, track: Track) -> list[FormatterOutput]:
        """Convert a compiled Track into one or more output files."""
