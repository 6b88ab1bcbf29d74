import random

import pytest

from subburn.gap_filler import fill_silent_gaps, fill_transcription
from subburn.models import Segment, TranscriptionResult


def assert_covers(segments, duration):
    assert segments[0].start_time == 0.0
    assert segments[-1].end_time == duration
    for current, nxt in zip(segments, segments[1:]):
        assert current.end_time == nxt.start_time
    for seg in segments:
        assert seg.end_time > seg.start_time


def test_example_scenario():
    filled = fill_silent_gaps([Segment(2.0, 4.5, "hello")], 10.0)
    assert filled == [
        Segment(0.0, 2.0, ""),
        Segment(2.0, 4.5, "hello"),
        Segment(4.5, 10.0, ""),
    ]


def test_no_segments_is_one_blank():
    assert fill_silent_gaps([], 12.5) == [Segment(0.0, 12.5, "")]


def test_interior_gaps_keep_millisecond_precision():
    raw = [Segment(0.0, 1.234, "a"), Segment(1.789, 3.0, "b")]
    filled = fill_silent_gaps(raw, 3.0)
    assert filled[1] == Segment(1.234, 1.789, "")
    assert_covers(filled, 3.0)


def test_small_gaps_are_closed_not_filled():
    raw = [Segment(0.005, 1.0, "a"), Segment(1.004, 2.0, "b"), Segment(2.0, 9.995, "c")]
    filled = fill_silent_gaps(raw, 10.0)
    assert [s.text for s in filled] == ["a", "b", "c"]
    assert_covers(filled, 10.0)


def test_overlaps_and_unsorted_input_are_normalized():
    raw = [Segment(5.0, 7.0, "late"), Segment(1.0, 5.5, "early"), Segment(6.0, 6.5, "swallowed")]
    filled = fill_silent_gaps(raw, 8.0)
    assert [s.text for s in filled] == ["", "early", "late", ""]
    assert filled[2] == Segment(5.5, 7.0, "late")
    assert_covers(filled, 8.0)


def test_segments_past_the_end_are_clipped():
    filled = fill_silent_gaps([Segment(1.0, 12.0, "long"), Segment(13.0, 14.0, "beyond")], 10.0)
    assert filled == [Segment(0.0, 1.0, ""), Segment(1.0, 10.0, "long")]


def test_window_offset_is_applied_before_filling():
    raw = [Segment(0.5, 2.0, "inside window")]
    filled = fill_silent_gaps(raw, 60.0, time_offset=30.0)
    assert filled == [
        Segment(0.0, 30.5, ""),
        Segment(30.5, 32.0, "inside window"),
        Segment(32.0, 60.0, ""),
    ]


def test_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        fill_silent_gaps([], 0)


def test_random_inputs_always_cover_duration():
    rng = random.Random(42)
    for _ in range(300):
        duration = round(rng.uniform(0.5, 120.0), 3)
        raw = []
        for _ in range(rng.randint(0, 12)):
            start = round(rng.uniform(0, duration * 1.1), 3)
            end = round(start + rng.uniform(0.001, 10.0), 3)
            raw.append(Segment(start, end, "x"))
        filled = fill_silent_gaps(raw, duration)
        assert_covers(filled, duration)


def test_fill_transcription_keeps_text_and_language():
    result = TranscriptionResult(text="hello", segments=[Segment(2.0, 4.5, "hello")], language="en")
    filled = fill_transcription(result, 10.0)
    assert filled.text == "hello"
    assert filled.language == "en"
    assert filled.duration == 10.0
    assert len(filled.segments) == 3
    assert result.segments == [Segment(2.0, 4.5, "hello")]
