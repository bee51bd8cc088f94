"""Unit tests for timeline lookups (clip_at, effects_at, virtual_time_of).

WHY: Word highlighting and the controller's seek resolution both go
through clip_at(). A boundary off-by-one highlights the wrong word or
starts the wrong resource.

RULES:
- Range tests are half-open: a segment's end belongs to the next one
"""

import pytest

from conftest import segment
from timedtext_player.core.compiler import compile_track
from timedtext_player.core.index import (
    EMPTY_HIT,
    clip_at,
    effects_at,
    segment_offsets,
    virtual_time_of,
)


class TestClipAt:
    def test_contiguous_lookup_lands_in_second_segment(self, contiguous_segments):
        track = compile_track(contiguous_segments).track
        hit = clip_at(track, 12.0)
        assert hit.segment is track.segments[1]
        assert hit.segment_index == 1
        assert hit.native_time == pytest.approx(12.0)
        assert hit.offset == pytest.approx(10.0)

    def test_boundary_belongs_to_next_segment(self, three_track):
        assert clip_at(three_track, 10.0).segment is three_track.segments[1]
        assert clip_at(three_track, 9.999).segment is three_track.segments[0]

    def test_native_time_uses_segment_start(self, three_track):
        hit = clip_at(three_track, 11.0)
        # segment b starts at native 5 and sits at offset 10
        assert hit.native_time == pytest.approx(6.0)
        assert hit.clip is three_track.segments[1].children[0]

    def test_round_trip_for_every_child(self, three_track):
        for seg in three_track.segments:
            for child in seg.children:
                mid = child.offset + child.duration / 2
                hit = clip_at(three_track, mid)
                assert hit.segment is seg
                assert hit.clip is child

    def test_out_of_range_is_empty(self, three_track):
        assert clip_at(three_track, -0.1) is EMPTY_HIT
        assert clip_at(three_track, 20.0) is EMPTY_HIT
        assert clip_at(None, 1.0) is EMPTY_HIT
        assert not clip_at(three_track, 25.0)

    def test_top_level_gap_is_a_miss(self, gapped_segments):
        track = compile_track(gapped_segments).track
        assert not clip_at(track, 11.0)
        hit = clip_at(track, 12.0)
        assert hit.segment is track.segments[1]
        assert hit.segment_index == 1
        assert hit.native_time == pytest.approx(12.0)


class TestTokenLookup:
    def test_token_under_time(self, three_track):
        # segment a: 4 tokens of 2.5 s each
        hit = clip_at(three_track, 5.2)
        assert hit.timed_text.text == "starts"

    def test_between_words_returns_preceding_token(self):
        seg = {
            "src": "a.mp4", "start": 0, "end": 10,
            "children": [{
                "start": 0, "end": 10,
                "tokens": [
                    {"text": "Before", "start": 1, "end": 2},
                    {"text": "after.", "start": 6, "end": 7},
                ],
            }],
        }
        track = compile_track([seg]).track
        assert clip_at(track, 4.0).timed_text.text == "Before"
        assert clip_at(track, 0.5).timed_text is None
        assert clip_at(track, 0.5).clip is not None

    def test_hit_in_child_gap_has_no_token(self):
        seg = {"src": "a.mp4", "start": 0, "end": 6,
               "children": [{"start": 0, "end": 2, "text": "x"},
                            {"start": 4, "end": 6, "text": "y"}]}
        track = compile_track([seg]).track
        hit = clip_at(track, 3.0)
        assert hit.clip.kind == "gap"
        assert hit.timed_text is None


class TestEffects:
    def test_effect_window_and_progress(self):
        seg = segment(5.0, 15.0, media="b.mp4")
        seg["effects"] = [{"name": "lower-third", "start": 7, "duration": 4}]
        track = compile_track([segment(0.0, 10.0, media="a.mp4"), seg]).track

        # effect native [7, 11) on a segment at native 5, offset 10
        assert effects_at(track, 11.9) == []
        active = effects_at(track, 13.0)
        assert len(active) == 1
        assert active[0].start == pytest.approx(12.0)
        assert active[0].end == pytest.approx(16.0)
        assert active[0].progress == pytest.approx(0.25)
        assert active[0].fade_in == pytest.approx(0.5)
        assert effects_at(track, 16.0) == []

    def test_no_track(self):
        assert effects_at(None, 1.0) == []


class TestVirtualTimeOf:
    def test_click_inside_segment(self, three_track):
        seg = three_track.segments[1]
        assert virtual_time_of(three_track, seg, 7.0) == pytest.approx(12.0)

    def test_click_on_segment_start_is_nudged(self, three_track):
        seg = three_track.segments[1]
        target = virtual_time_of(three_track, seg, 5.0)
        assert target == pytest.approx(10.02)
        assert clip_at(three_track, target).segment is seg

    def test_unknown_segment(self, three_track, contiguous_segments):
        other = compile_track(contiguous_segments).track.segments[0]
        assert virtual_time_of(three_track, other, 1.0) is None

    def test_segment_offsets(self, gapped_segments):
        track = compile_track(gapped_segments).track
        assert segment_offsets(track) == [0.0, 12.0]
        assert segment_offsets(None) == []
