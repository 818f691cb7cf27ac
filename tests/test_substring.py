"""Tests for matching ASCII text inside a base64url window."""

import pytest

from constraints.base import ConstraintSystem
from constraints.substring import ascii_substring_in_b64
from primitives.encoding import b64_span, b64_window_capacity, b64url_encode, pad_bytes

PAYLOAD = b'{"iss":"https://oidc.example","aud":"test-aud","sub":"12345"}'
B64 = b64url_encode(PAYLOAD).encode()
ASCII_CAP = 12
WINDOW_CAP = b64_window_capacity(ASCII_CAP)
INDEX_BITS = 8


@pytest.fixture(scope="module")
def matcher():
    cs = ConstraintSystem()
    window = cs.input("window", WINDOW_CAP)
    b64_len = cs.input("b64_len")
    b64_index = cs.input("b64_index")
    ascii_bytes = cs.input("ascii", ASCII_CAP)
    ascii_len = cs.input("ascii_len")
    enabled = cs.input("enabled")
    offset_class = ascii_substring_in_b64(
        cs, window, b64_len, b64_index, ascii_bytes, ascii_len, INDEX_BITS, enabled
    )
    cs.expose("class", offset_class)
    return cs


def _assignment(offset: int, length: int, ascii: bytes = None, enabled: int = 1):
    index, count = b64_span(offset, length)
    ascii = PAYLOAD[offset:offset + length] if ascii is None else ascii
    return {
        "window": pad_bytes(B64[index:index + count], WINDOW_CAP),
        "b64_len": count,
        "b64_index": index,
        "ascii": pad_bytes(ascii, ASCII_CAP),
        "ascii_len": len(ascii),
        "enabled": enabled,
    }


class TestAsciiSubstring:
    """Alignment classes, tampering and disabled checks."""

    @pytest.mark.parametrize("offset", [0, 1, 2, 3, 29, 30, 31, 48])
    @pytest.mark.parametrize("length", [1, 5, 12])
    def test_matches(self, matcher, offset: int, length: int) -> None:
        """Every byte offset decodes in one of the three alignment classes."""
        witness = matcher.generate_witness(_assignment(offset, length))
        assert matcher.is_satisfied(witness)
        assert matcher.value(witness, "class") == b64_span(offset, length)[0] % 4

    def test_altered_byte_fails(self, matcher) -> None:
        text = bytearray(PAYLOAD[29:41])
        text[7] ^= 0x01
        witness = matcher.generate_witness(_assignment(29, 12, bytes(text)))
        assert not matcher.is_satisfied(witness)

    def test_off_by_one_index_fails(self, matcher) -> None:
        """Claiming the window starts one symbol later misaligns every bit."""
        assignment = _assignment(30, 8)
        assignment["b64_index"] += 1
        witness = matcher.generate_witness(assignment)
        assert not matcher.is_satisfied(witness)

    def test_class_three_fails(self, matcher) -> None:
        assignment = _assignment(3, 5)
        assert assignment["b64_index"] % 4 == 0
        assignment["b64_index"] += 3
        witness = matcher.generate_witness(assignment)
        assert not matcher.is_satisfied(witness)

    def test_short_window_fails(self, matcher) -> None:
        """The window must hold every bit of the text."""
        assignment = _assignment(31, 10)
        assignment["b64_len"] -= 1
        witness = matcher.generate_witness(assignment)
        assert not matcher.is_satisfied(witness)

    def test_disabled(self, matcher) -> None:
        """Disabled, an all-zero excerpt is accepted."""
        witness = matcher.generate_witness({
            "window": [0] * WINDOW_CAP,
            "b64_len": 0,
            "b64_index": 0,
            "ascii": [0] * ASCII_CAP,
            "ascii_len": 0,
            "enabled": 0,
        })
        assert matcher.is_satisfied(witness)
