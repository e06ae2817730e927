import random

import pytest

from ob6control.protocol.sysex import escape_sysex, unescape_sysex


def test_escape_splits_high_then_low_nibble():
    assert escape_sysex(bytes([0xA5, 0x00, 0xFF])) == bytes([0x0A, 0x05, 0x00, 0x00, 0x0F, 0x0F])


def test_escape_output_is_twice_as_long_and_7bit_safe():
    data = bytes(range(256))
    escaped = escape_sysex(data)
    assert len(escaped) == 2 * len(data)
    assert all(b <= 0x0F for b in escaped)


def test_escape_empty():
    assert escape_sysex(b"") == b""


@pytest.mark.parametrize("length", [0, 1, 2, 7, 100, 1024])
def test_unescape_inverts_escape(length):
    rng = random.Random(length)
    data = bytes(rng.randrange(256) for _ in range(length))
    assert unescape_sysex(escape_sysex(data), len(data)) == data


def test_unescape_stops_at_expected_length():
    escaped = escape_sysex(b"\x01\x02\x03\x04")
    assert unescape_sysex(escaped, 2) == b"\x01\x02"


def test_unescape_truncated_input_returns_short_result():
    escaped = escape_sysex(b"\x10\x20\x30")
    assert unescape_sysex(escaped[:4], 3) == b"\x10\x20"


def test_unescape_ignores_dangling_odd_byte():
    assert unescape_sysex(bytes([0x01, 0x02, 0x03]), 2) == b"\x12"


def test_unescape_accepts_list_of_ints():
    assert unescape_sysex([0x07, 0x0F], 1) == b"\x7F"
