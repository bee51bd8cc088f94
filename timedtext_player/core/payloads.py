"""Caption payload store: compiled WebVTT text addressable by URL.

WHY: Each top-level clip's captions are compiled into a WebVTT payload
the host attaches to its media element. A recompile supersedes those
payloads, so the store tracks what is live and releases the old set.

HOW: A dict keyed by an opaque "captions:<uuid>" URL. The compiler
creates one payload per top-level clip; TimelineCompiler releases the
previous pass's payloads when a new Track replaces it.

RULES:
- Releasing an unknown URL is a no-op
- URLs are never reused
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

URL_SCHEME = "captions"


@dataclass(frozen=True)
class CaptionPayload:
    """A compiled caption artifact for one segment."""

    url: str
    text: str
    language: str


class CaptionStore:
    """Owns every live caption payload."""

    def __init__(self) -> None:
        self._payloads: Dict[str, CaptionPayload] = {}

    def create(self, text: str, language: str) -> CaptionPayload:
        url = f"{URL_SCHEME}:{uuid.uuid4()}"
        payload = CaptionPayload(url=url, text=text, language=language)
        self._payloads[url] = payload
        return payload

    def get(self, url: str) -> Optional[CaptionPayload]:
        return self._payloads.get(url)

    def release(self, url: str) -> None:
        if self._payloads.pop(url, None) is not None:
            logger.debug("Released caption payload %s", url)

    def release_all(self, urls: Iterable[str]) -> None:
        for url in urls:
            self.release(url)

    def __len__(self) -> int:
        return len(self._payloads)

    def __contains__(self, url: object) -> bool:
        return url in self._payloads
