"""Unit tests for the timeline compiler.

WHY: Every virtual time the player reports is derived from the offsets
and gaps computed here. A wrong gap shifts every later segment.

HOW: Segment descriptors built with conftest.segment(), compiled with
compile_track() and checked against hand-computed offsets.

RULES:
- Track.duration == sum of top-level durations
- A Gap exists exactly where same-resource neighbours leave native time
  uncovered
"""

import logging

import pytest

from conftest import segment
from timedtext_player.core.compiler import (
    TimelineCompiler,
    assign_offsets,
    compile_track,
    synthesize_gaps,
)
from timedtext_player.core.index import clip_at
from timedtext_player.core.ir import Clip, Gap, MediaReference, TimeRange
from timedtext_player.core.payloads import CaptionStore


class TestTopLevelGaps:
    def test_contiguous_segments_have_no_gap(self, contiguous_segments):
        result = compile_track(contiguous_segments)
        track = result.track
        assert len(track.children) == 2
        assert not any(isinstance(c, Gap) for c in track.children)
        assert result.duration == pytest.approx(16.0)
        assert [c.offset for c in track.children] == [0.0, 10.0]

    def test_native_gap_becomes_gap_item(self, gapped_segments):
        track = compile_track(gapped_segments).track
        assert [c.kind for c in track.children] == ["clip", "gap", "clip"]
        gap = track.children[1]
        assert gap.source_range.start == pytest.approx(10.0)
        assert gap.duration == pytest.approx(2.0)
        assert gap.media_reference == MediaReference("talk.mp4")
        assert track.duration == pytest.approx(18.0)
        assert track.children[2].offset == pytest.approx(12.0)

    def test_different_resources_are_not_compared(self, three_segments):
        track = compile_track(three_segments).track
        assert all(isinstance(c, Clip) for c in track.children)
        assert [c.offset for c in track.children] == [0.0, 10.0, 16.0]
        assert track.duration == pytest.approx(20.0)

    def test_childless_segment_keeps_its_duration(self):
        segments = [
            segment(0.0, 10.0, media="a.mp4"),
            {"src": "x.mp4", "start": 0.0, "end": 5.0, "children": []},
            segment(0.0, 4.0, media="c.mp4"),
        ]
        track = compile_track(segments).track
        assert track.duration == pytest.approx(19.0)
        assert [c.offset for c in track.children] == [0.0, 10.0, 15.0]
        assert track.segments[1].children == []

        hit = clip_at(track, 12.0)
        assert hit.segment is track.segments[1]
        assert hit.native_time == pytest.approx(2.0)
        assert hit.clip is None
        assert hit.timed_text is None

    def test_overlap_logs_warning_and_adds_no_gap(self, caplog):
        segments = [segment(0.0, 10.0), segment(8.0, 12.0)]
        with caplog.at_level(logging.WARNING, logger="timedtext_player.core.compiler"):
            track = compile_track(segments).track
        assert len(track.children) == 2
        assert "Overlapping" in caplog.text
        assert track.duration == pytest.approx(14.0)


class TestChildGaps:
    def test_gap_between_children(self):
        seg = {
            "src": "a.mp4", "start": 0, "end": 8,
            "children": [
                {"start": 0, "end": 4, "text": "first"},
                {"start": 5, "end": 8, "text": "second"},
            ],
        }
        top = compile_track([seg]).track.segments[0]
        assert [c.kind for c in top.children] == ["clip", "gap", "clip"]
        assert top.children[1].source_range == TimeRange(start=4.0, duration=1.0)
        assert [c.offset for c in top.children] == [0.0, 4.0, 5.0]

    def test_child_offsets_follow_segment_offset(self, contiguous_segments):
        track = compile_track(contiguous_segments).track
        second = track.segments[1]
        assert second.children[0].offset == pytest.approx(10.0)

    def test_lead_in_before_first_child(self):
        seg = {"src": "a.mp4", "start": 0, "end": 10,
               "children": [{"start": 2, "end": 10, "text": "late"}]}
        top = compile_track([seg]).track.segments[0]
        assert top.children[0].offset == pytest.approx(2.0)

    def test_synthesize_gaps_property(self):
        clips = [
            Clip(source_range=TimeRange(0, 1)),
            Clip(source_range=TimeRange(1, 1)),
            Clip(source_range=TimeRange(3, 1)),
            Clip(source_range=TimeRange(3.5, 1)),
        ]
        items = synthesize_gaps(clips)
        kinds = [i.kind for i in items]
        assert kinds == ["clip", "clip", "gap", "clip", "clip"]
        total = assign_offsets(items)
        assert total == pytest.approx(sum(i.duration for i in items))


class TestChildContent:
    def test_tokens_become_timed_texts_with_cues(self, contiguous_segments):
        clip = compile_track(contiguous_segments).track.segments[0].children[0]
        assert [t.text for t in clip.timed_texts] == ["Hello", "world."]
        assert clip.cues[0].text == "Hello world."
        assert clip.timed_texts[0].caption_group == "0.000+13"

    def test_clip_without_tokens(self):
        seg = {"src": "a.mp4", "start": 0, "end": 2,
               "children": [{"start": 0, "end": 2, "text": "music"}]}
        clip = compile_track([seg]).track.segments[0].children[0]
        assert clip.timed_texts is None
        assert clip.cues == []
        assert clip.text == "music"

    def test_segment_collects_child_cues_and_metadata(self):
        seg = segment(0.0, 4.0, words=["One.", "Two."])
        seg["metadata"] = {"speaker": "S1"}
        seg["children"].append({"start": 4, "end": 6, "text": "Three.",
                                "tokens": [{"text": "Three.", "start": 4, "end": 6}]})
        seg["end"] = 6
        top = compile_track([seg]).track.segments[0]
        assert top.metadata == {"speaker": "S1"}
        assert [c.text for c in top.cues] == ["One. Two.", "Three."]

    def test_segment_name_falls_back_to_media(self):
        top = compile_track([segment(0, 1, media="x.mp4")]).track.segments[0]
        assert top.name == "x.mp4"

    def test_effects_are_compiled(self):
        seg = segment(0.0, 10.0)
        seg["effects"] = [{"name": "title", "start": 2, "duration": 3, "parameters": {"text": "Hi"}}]
        top = compile_track([seg]).track.segments[0]
        assert top.effects[0].name == "title"
        assert top.effects[0].source_range == TimeRange(2.0, 3.0)
        assert top.effects[0].parameters == {"text": "Hi"}


class TestMalformedRecovery:
    def test_malformed_token_gets_zero_length_range(self, caplog):
        seg = {
            "src": "a.mp4", "start": 0, "end": 3,
            "children": [{
                "start": 0, "end": 3,
                "tokens": [
                    {"text": "good", "start": 0, "end": 1},
                    {"text": "bad", "start": "??"},
                    {"text": "fine", "start": 2, "end": 3},
                ],
            }],
        }
        with caplog.at_level(logging.WARNING):
            clip = compile_track([seg]).track.segments[0].children[0]
        bad = clip.timed_texts[1]
        assert bad.marked_range == TimeRange(start=1.0, duration=0.0)
        assert "token 1 of child 0 of segment 0" in caplog.text

    def test_malformed_segment_does_not_abort(self):
        result = compile_track([{"src": "a.mp4"}, segment(0.0, 5.0, media="b.mp4")])
        first, second = result.track.segments
        assert first.duration == 0.0
        assert second.offset == 0.0
        assert result.duration == pytest.approx(5.0)

    def test_malformed_child_anchored_at_previous_child(self):
        seg = {"src": "a.mp4", "start": 0, "end": 4,
               "children": [{"start": 0, "end": 4, "text": "a"}, {"text": "b"}]}
        children = compile_track([seg]).track.segments[0].children
        assert children[1].source_range == TimeRange(start=4.0, duration=0.0)


class TestDeterminism:
    def test_recompile_gives_same_structure(self, three_segments):
        a = compile_track(three_segments).track
        b = compile_track(three_segments).track
        assert a.duration == b.duration
        assert [c.offset for c in a.children] == [c.offset for c in b.children]
        groups_a = [t.caption_group for s in a.segments for c in s.children for t in c.timed_texts]
        groups_b = [t.caption_group for s in b.segments for c in s.children for t in c.timed_texts]
        assert groups_a == groups_b

    def test_duration_is_sum_of_children(self, gapped_segments):
        track = compile_track(gapped_segments).track
        assert track.duration == sum(c.duration for c in track.children)


class TestCaptionPayloads:
    def test_store_receives_one_payload_per_segment(self, three_segments):
        store = CaptionStore()
        track = compile_track(three_segments, store=store, language="sv").track
        assert len(store) == 3
        for seg in track.segments:
            assert seg.captions.url in store
            assert seg.captions.language == "sv-SE"
            assert seg.captions.text.startswith("WEBVTT\nKind: captions\nLanguage: sv-SE\n")

    def test_segment_language_wins(self):
        seg = segment(0, 2)
        seg["language"] = "de"
        store = CaptionStore()
        top = compile_track([seg], store=store, language="en").track.segments[0]
        assert top.captions.language == "de-DE"

    def test_no_store_no_payload(self, contiguous_segments):
        track = compile_track(contiguous_segments).track
        assert all(s.captions is None for s in track.segments)


class TestTimelineCompiler:
    def test_recompile_releases_previous_payloads(self, three_segments):
        compiler = TimelineCompiler()
        first = compiler.compile(three_segments)
        old_urls = [s.captions.url for s in first.track.segments]

        second = compiler.on_source_changed(three_segments)
        assert compiler.track is second.track
        assert all(url not in compiler.store for url in old_urls)
        assert len(compiler.store) == 3

    def test_listeners_notified_and_isolated(self, contiguous_segments, caplog):
        compiler = TimelineCompiler()
        seen = []

        def broken(result):
            raise RuntimeError("boom")

        compiler.on_compiled(broken)
        compiler.on_compiled(seen.append)
        with caplog.at_level(logging.ERROR):
            result = compiler.compile(contiguous_segments)
        assert seen == [result]
        assert "on_compiled listener failed" in caplog.text

    def test_remove_listener(self, contiguous_segments):
        compiler = TimelineCompiler()
        seen = []
        compiler.on_compiled(seen.append)
        compiler.remove_listener(seen.append)
        compiler.compile(contiguous_segments)
        assert seen == []

    def test_close_releases_everything(self, contiguous_segments):
        compiler = TimelineCompiler()
        compiler.compile(contiguous_segments)
        compiler.close()
        assert len(compiler.store) == 0
        assert compiler.track is None
