import pytest

from pahsda.helpers import bytes_to_hex_string, bytes_to_value


def test_hex_string_format():
    assert bytes_to_hex_string(b"\x01\xab\xff") == "01 ab ff"


def test_hex_string_empty():
    assert bytes_to_hex_string(b"") == ""


def test_hex_string_single_byte_has_no_separator():
    result = bytes_to_hex_string(b"\x7f")
    assert " " not in result
    assert bytes.fromhex(result) == b"\x7f"


@pytest.mark.parametrize("data", [b"", b"\x00", b"hello world", bytes(range(256))])
def test_hex_string_round_trip(data):
    assert bytes.fromhex(bytes_to_hex_string(data)) == data


def test_hex_string_accepts_bytearray():
    assert bytes_to_hex_string(bytearray(b"\x10\x20")) == bytes_to_hex_string(b"\x10\x20")


@pytest.mark.parametrize("value", [0, 1, 0x1234, 0xDEADBEEF, 0xFFFFFFFF])
def test_value_round_trip(value):
    assert bytes_to_value(value.to_bytes(4, "little")) == value


def test_value_empty_is_zero():
    assert bytes_to_value(b"") == 0


def test_value_short_input_is_zero_extended():
    assert bytes_to_value(b"\x01\x02") == bytes_to_value(b"\x01\x02\x00\x00")


def test_value_ignores_bytes_past_four():
    assert bytes_to_value(b"\x01\x02\x03\x04\x05\x06") == bytes_to_value(b"\x01\x02\x03\x04")