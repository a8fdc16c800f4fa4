import math

import pytest

from models import Timestamp
from timestamp_index import TimestampIndex, build_offsets

PARAGRAPHS = ["Hello world", "  spaced   out ", "", "x"]


def test_offsets_accumulate_without_separator():
    assert build_offsets(PARAGRAPHS) == [0, 11, 26, 26]
    assert build_offsets([]) == []


@pytest.mark.parametrize("paragraphs", [
    PARAGRAPHS,
    ["The cat sat.", "It was happy."],
    ["", "", "a"],
    ["one two three four five six seven"],
])
def test_offsets_are_monotonic(paragraphs):
    offsets = TimestampIndex.build(paragraphs, []).offsets
    for i in range(len(offsets) - 1):
        assert offsets[i] <= offsets[i + 1]
        assert offsets[i + 1] - offsets[i] >= len(paragraphs[i])


def test_word_ranges_are_inclusive_and_global():
    index = TimestampIndex.build(PARAGRAPHS, [])
    assert index.word_ranges[0] == ((0, 4), (6, 10))
    assert index.word_ranges[1] == ((13, 18), (22, 24))
    assert index.word_ranges[2] == ()
    assert index.word_ranges[3] == ((26, 26),)


def test_every_non_space_char_in_exactly_one_range():
    index = TimestampIndex.build(PARAGRAPHS, [])
    for p, para in enumerate(PARAGRAPHS):
        ranges = index.word_ranges[p]
        for local, ch in enumerate(para):
            g = index.offsets[p] + local
            hits = [r for r in ranges if r[0] <= g <= r[1]]
            assert len(hits) == (0 if ch.isspace() else 1)
        for (_, end), (start, _) in zip(ranges, ranges[1:]):
            assert end < start


def test_active_range_contains_every_in_range_index():
    paragraphs = ["The cat sat.", "It was happy.", "state-of-the-art tools"]
    index = TimestampIndex.build(paragraphs, [])
    for g in range(index.total_chars):
        p = index.paragraph_for_char(g)
        local = g - index.offsets[p]
        if paragraphs[p][local].isspace():
            assert index.active_range_for_char(g, p) is None
            continue
        start, end = index.active_range_for_char(g, p)
        assert start <= g <= end


def test_active_range_unknown_paragraph():
    index = TimestampIndex.build(["abc"], [])
    assert index.active_range_for_char(0, 5) is None
    assert index.active_range_for_char(0, -1) is None


def test_timestamp_gap_returns_not_found():
    index = TimestampIndex.build(["ab"], [Timestamp(0, 1, "a"), Timestamp(2, 3, "b")])
    assert index.active_timestamp_for_time(1.5) == -1
    assert index.active_timestamp_for_time(0.5) == 0
    assert index.active_timestamp_for_time(2.0) == 1
    assert index.active_timestamp_for_time(1.0) == 0
    assert index.active_timestamp_for_time(10) == -1


def test_no_timestamps_never_active():
    index = TimestampIndex.build(["ab"], [])
    assert index.active_timestamp_for_time(0.0) == -1


def test_estimate_position_spreads_duration_over_characters():
    index = TimestampIndex.build(["aaaa bbbb", "cccc"], [])
    assert index.total_chars == 13
    assert index.estimate_position(0.0, 13.0) == (0, 0)
    assert index.estimate_position(6.5, 13.0) == (0, 1)
    # whitespace maps to the preceding word
    assert index.estimate_position(4.5, 13.0) == (0, 0)
    assert index.estimate_position(12.9, 13.0) == (1, 0)
    assert index.estimate_position(100.0, 13.0) == (1, 0)


def test_estimate_position_without_duration():
    index = TimestampIndex.build(["abc"], [])
    assert index.estimate_position(1.0, 0.0) is None
    assert index.estimate_position(1.0, math.nan) is None
    assert TimestampIndex.build([], []).estimate_position(1.0, 10.0) is None
