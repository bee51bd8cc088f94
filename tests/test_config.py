"""Unit tests for language mapping and the caption payload store."""

import pytest

from timedtext_player.config import map_language
from timedtext_player.core.payloads import CaptionStore


class TestMapLanguage:
    @pytest.mark.parametrize("tag, expected", [
        ("en", "en-US"),
        ("SV", "sv-SE"),
        ("en_gb", "en-GB"),
        ("zh-Hant", "zh-Hant"),
        ("xx", "xx"),
        ("", "und"),
        (None, "und"),
    ])
    def test_mapping(self, tag, expected):
        assert map_language(tag) == expected


class TestCaptionStore:
    def test_create_get_release(self):
        store = CaptionStore()
        payload = store.create("WEBVTT\n", "en-US")
        assert payload.url.startswith("captions:")
        assert store.get(payload.url) is payload
        store.release(payload.url)
        assert payload.url not in store
        assert store.get(payload.url) is None

    def test_urls_are_unique(self):
        store = CaptionStore()
        urls = {store.create("", "und").url for _ in range(20)}
        assert len(urls) == 20
        assert len(store) == 20

    def test_release_unknown_is_noop(self):
        store = CaptionStore()
        store.release("captions:missing")
        store.release_all(["a", "b"])
        assert len(store) == 0
