from datetime import datetime

import pytest

from pahsda.data_frame import DataFrame, FieldError


def make_frame(kind: bytes, payload: bytes = b"\x00", when=None) -> DataFrame:
    frame = DataFrame(when)
    frame.add_field(1, "Type", "T")
    frame.add_field(2, "Payload", "P")
    frame.update_field_value(1, kind)
    frame.update_field_value(2, payload)
    frame.set_sorting_indexes([1])
    return frame


def test_fields_are_listed_in_index_order():
    frame = DataFrame()
    frame.add_field(5, "Five", "5")
    frame.add_field(2, "Two", "2")
    frame.add_field(9, "Nine", "9")
    assert frame.field_indexes() == [2, 5, 9]
    assert len(frame) == 3


def test_names_and_abbreviations():
    frame = make_frame(b"\x01")
    assert frame.field_name(2) == "Payload"
    assert frame.field_abbrev(1) == "T"
    assert frame.field_name(42) == ""
    assert frame.field_abbrev(42) == ""


def test_duplicate_field_is_rejected():
    frame = make_frame(b"\x01")
    with pytest.raises(FieldError):
        frame.add_field(1, "Again", "A")
    assert frame.field_name(1) == "Type"


def test_value_for_unknown_field_is_rejected():
    frame = make_frame(b"\x01")
    with pytest.raises(FieldError):
        frame.update_field_value(7, b"\x00")


def test_missing_values_read_as_empty():
    frame = DataFrame()
    frame.add_field(1, "Type", "T")
    assert frame.raw_value(1) == b""
    assert frame.value_string(1) == ""
    assert frame.rich_string(1) == ""
    assert frame.raw_value(99) == b""


def test_value_string_is_hex():
    frame = make_frame(b"\x01", b"\xab\xcd")
    assert frame.raw_value(2) == b"\xab\xcd"
    assert frame.value_string(2) == "ab cd"


def test_field_accessor():
    frame = make_frame(b"\x01", b"\x02")
    assert frame.field(2).raw == b"\x02"
    with pytest.raises(FieldError):
        frame.field(3)
    empty = DataFrame()
    empty.add_field(1, "Type", "T")
    with pytest.raises(FieldError):
        empty.field(1)


def test_invalid_sorting_index_keeps_previous():
    frame = make_frame(b"\x01")
    with pytest.raises(FieldError):
        frame.set_sorting_indexes([1, 3])
    assert frame.sorting_indexes == [1]


def test_ordering_by_sorting_field():
    low = make_frame(b"\x01", b"\xff")
    high = make_frame(b"\x02", b"\x00")
    assert low < high
    assert low <= high
    assert high > low
    assert high >= low
    assert low != high
    assert not (high < low)


def test_equality_ignores_non_sorting_fields():
    first = make_frame(b"\x05", b"\x01")
    second = make_frame(b"\x05", b"\x02")
    assert first == second
    assert first <= second
    assert first >= second
    assert not (first < second)
    assert not (first > second)


def test_bytes_compare_as_signed():
    high_bit = make_frame(b"\x80")
    small = make_frame(b"\x01")
    assert high_bit < small


def test_comparison_uses_shorter_value():
    short = make_frame(b"\x01")
    long = make_frame(b"\x01\x09")
    assert short == long


def test_comparison_without_shared_sorting_field_fails():
    left = make_frame(b"\x01")
    right = DataFrame()
    right.add_field(2, "Payload", "P")
    right.update_field_value(2, b"\x00")
    with pytest.raises(FieldError):
        left.__lt__(right)
    with pytest.raises(FieldError):
        left.__eq__(right)
    assert left.raw_value(1) == b"\x01"
    assert right.field_indexes() == [2]


def test_sorted_frames():
    frames = [make_frame(bytes([k])) for k in (3, 1, 2)]
    assert [f.raw_value(1) for f in sorted(frames)] == [b"\x01", b"\x02", b"\x03"]


def test_str_lists_fields():
    frame = make_frame(b"\x01", b"\x0a")
    assert str(frame) == "Fields:   1 = Type = 01,   2 = Payload = 0a, "


def test_update_from_takes_values_and_timestamp():
    old = make_frame(b"\x01", b"\x00", datetime(2020, 1, 1))
    new = make_frame(b"\x01", b"\x07", datetime(2021, 6, 1))
    old.update_from(new)
    assert old.raw_value(2) == b"\x07"
    assert old.timestamp == new.timestamp


def test_highlighting_marks_changed_bytes():
    frame = make_frame(b"\x01", b"\x00\x00")
    frame.set_highlighting([2, 77], 3)
    assert frame.highlighted_fields == [2]
    assert frame.highlight_duration == 3
    frame.update_field_value(2, b"\x00\x05")
    assert frame.field(2).highlighted == {1: 3}
    assert "fdf3" in frame.rich_string(2)


def test_color_field_forces_style():
    frame = make_frame(b"\x01", b"\x02")
    frame.color_field(2, "#123456")
    assert "#123456" in frame.rich_string(2)
    assert "forcemode" in frame.rich_string(2)


def test_ascii_display():
    frame = make_frame(b"\x01", b"Hi")
    frame.set_field_display_ascii(2, True)
    assert frame.value_string(2) == "Hi"
    frame.set_field_display_ascii(2, False)
    assert frame.value_string(2) == b"Hi".hex(" ")