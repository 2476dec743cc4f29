import pytest

from mdchunker.core.positions import ByteRange, LineRange, SourcePosition, SourceTracker


def test_line_of_counts_line_breaks_before_offset():
    tracker = SourceTracker("ab\ncd\nef")

    assert tracker.line_of(0) == 1
    assert tracker.line_of(2) == 1
    assert tracker.line_of(3) == 2
    assert tracker.line_of(7) == 3
    assert tracker.line_of(8) == 3


def test_crlf_and_lone_cr_are_single_breaks():
    tracker = SourceTracker("a\r\nb\rc\n")

    assert tracker.line_count == 4
    assert tracker.byte_of_line(1) == 3
    assert tracker.byte_of_line(2) == 5
    assert tracker.byte_of_line(99) == len(tracker)


def test_position_of_zero_length_span_has_no_lines():
    tracker = SourceTracker("hello")

    pos = tracker.position_of(2, 2)

    assert pos.lines is None
    assert pos.bytes == ByteRange(2, 2)


def test_position_of_span_at_end_without_trailing_newline():
    text = "one\ntwo"
    tracker = SourceTracker(text)

    pos = tracker.position_of(4, len(text))

    assert pos.lines == LineRange(2, 2)
    assert pos.bytes.end_byte == 7


def test_trailing_blank_lines_do_not_extend_end_line():
    tracker = SourceTracker("# Title\n\nBody\n")

    assert tracker.position_of(0, 9).lines == LineRange(1, 1)


def test_offsets_are_utf8_bytes():
    text = "café\nnaïve"
    tracker = SourceTracker(text)

    assert len(tracker) == len(text.encode("utf-8"))
    assert tracker.byte_of_line(1) == 6
    assert tracker.slice(6, len(tracker)) == "naïve"


def test_position_of_rejects_inverted_span():
    with pytest.raises(ValueError):
        SourceTracker("abc").position_of(2, 1)


def test_merge_takes_min_start_and_max_end():
    a = SourcePosition(LineRange(2, 3), ByteRange(10, 20))
    b = SourcePosition(None, ByteRange(20, 20))
    c = SourcePosition(LineRange(4, 6), ByteRange(20, 35))

    merged = SourcePosition.merge([a, b, c])

    assert merged == SourcePosition(LineRange(2, 6), ByteRange(10, 35))
