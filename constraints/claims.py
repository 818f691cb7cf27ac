"""JSON member parsing for claim excerpts.

An excerpt is one member copied out of the payload together with the
character that ends it:

    "name"  :  value  }      or      "name":value,
    |     |  |  |    |  |
    0     |  |  |    |  length - 1
          |  |  value_index + value_len
          |  value_index
          colon_index
          name_len

Only the structure needed to pin the member down is checked: the name
comes first, the colon and the terminator are where declared, and the
three gaps hold JSON whitespace only. The value is not parsed.
"""

from typing import List, Sequence, Tuple

from primitives.encoding import JSON_WHITESPACE
from primitives.field import bit_width

from .base import LC, ConstraintSystem, LinearCombination, as_lc
from .base64 import base64url_decode_strict
from .indicators import (
    equals_constant_window,
    less_eq_than,
    less_than,
    num2bits_strict,
    select_at,
    threshold_vectors,
)
from .slicing import slice_bytes, slice_from_start

Window = List[LinearCombination]

QUOTE = ord('"')
COLON = ord(":")
COMMA = ord(",")
CLOSE_BRACE = ord("}")


def assert_whitespace_gap(
    cs: ConstraintSystem,
    data: Sequence[LC],
    start: LC,
    end: LC,
    max_len: int,
    enabled: LC = 1,
) -> None:
    """data[start:end] is at most max_len JSON whitespace characters."""
    gap_len = as_lc(end) - start
    with cs.scope("whitespace"):
        gap = slice_bytes(cs, data, start, gap_len, max_len, enabled, allow_empty=True)
        _, live = threshold_vectors(cs, gap_len, max_len, enabled)
        first, *rest = JSON_WHITESPACE
        for i, (ch, is_live) in enumerate(zip(gap, live)):
            acc = as_lc(ch) - first
            for w in rest[:-1]:
                acc = cs.mul(acc, as_lc(ch) - w)
            cs.constrain(cs.mul(is_live, acc), as_lc(ch) - rest[-1], 0, f"whitespace {i}")


def parse_extended_claim(
    cs: ConstraintSystem,
    ext: Sequence[LC],
    length: LC,
    name_len: LC,
    colon_index: LC,
    value_index: LC,
    value_len: LC,
    max_name_len: int,
    max_value_len: int,
    max_whitespace: int,
    enabled: LC = 1,
) -> Tuple[Window, Window]:
    """Split an excerpt into its name and value.

    Returns:
        (name, value): zero-padded windows; the name keeps its quotes and the
        value is exactly as written (quoted strings keep their quotes).
    """
    cap = len(ext)
    n = bit_width(2 * cap) + 1
    enabled = as_lc(enabled)
    with cs.scope("claim"):
        name = slice_from_start(cs, ext, name_len, max_name_len, enabled)
        value = slice_bytes(cs, ext, value_index, value_len, max_value_len, enabled)

        value_end = as_lc(value_index) + value_len
        cs.assert_true(less_eq_than(cs, name_len, colon_index, n), enabled, "name before colon")
        cs.assert_true(less_than(cs, colon_index, value_index, n), enabled, "colon before value")
        cs.assert_true(less_than(cs, value_end, length, n), enabled, "value before end")

        colon = select_at(cs, ext, colon_index, enabled)
        cs.assert_zero(colon - COLON, enabled, "colon")
        last = select_at(cs, ext, as_lc(length) - 1, enabled)
        cs.constrain(cs.mul(enabled, last - CLOSE_BRACE), last - COMMA, 0, "terminator")

        assert_whitespace_gap(cs, ext, name_len, colon_index, max_whitespace, enabled)
        assert_whitespace_gap(cs, ext, as_lc(colon_index) + 1, value_index, max_whitespace, enabled)
        assert_whitespace_gap(cs, ext, value_end, as_lc(length) - 1, max_whitespace, enabled)

        _, live = threshold_vectors(cs, length, cap, enabled)
        for i, (ch, is_live) in enumerate(zip(ext, live)):
            cs.assert_zero(ch, enabled - is_live, f"after end {i}")
    return name, value


def quote_remover(cs: ConstraintSystem, window: Sequence[LC], length: LC, enabled: LC = 1) -> Window:
    """window[1:length-1] after checking window[0] and window[length-1] are quotes."""
    with cs.scope("quotes"):
        cs.assert_zero(as_lc(window[0]) - QUOTE, enabled, "opening quote")
        closing = select_at(cs, window, as_lc(length) - 1, enabled)
        cs.assert_zero(closing - QUOTE, enabled, "closing quote")
        return slice_from_start(cs, window[1:], as_lc(length) - 2, len(window) - 2, enabled, allow_empty=True)


def nonce_symbols(nonce_bits: int) -> int:
    """Base64url characters in the encoding of a nonce_bits-bit nonce."""
    return -(-nonce_bits // 6)


def nonce_check(
    cs: ConstraintSystem,
    value: Sequence[LC],
    value_len: LC,
    expected: LC,
    nonce_bits: int = 160,
) -> None:
    """The quoted base64url value encodes the low nonce_bits bits of expected.

    The encoded bytes are big-endian, so decoded bit i (most significant
    first) is bit nonce_bits - 1 - i of expected; the padding bits of the
    last character are zero.
    """
    n_symbols = nonce_symbols(nonce_bits)
    if len(value) < n_symbols + 2:
        raise ValueError(f"Nonce window of {len(value)} cannot hold {n_symbols} quoted characters")
    with cs.scope("nonce"):
        cs.assert_equal(value_len, n_symbols + 2, "nonce length")
        inner = quote_remover(cs, value, value_len)
        decoded = base64url_decode_strict(cs, inner[:n_symbols])
        expected_bits = num2bits_strict(cs, expected)
        for i in range(nonce_bits):
            cs.assert_equal(decoded[i], expected_bits[nonce_bits - 1 - i], f"nonce bit {i}")
        for i in range(nonce_bits, len(decoded)):
            cs.assert_zero(decoded[i], tag=f"nonce padding bit {i}")


def email_verified_check(
    cs: ConstraintSystem,
    ev_name: Sequence[LC],
    ev_value: Sequence[LC],
    is_email: LC,
) -> None:
    """When is_email, the member is "email_verified" with value true or "true"."""
    with cs.scope("email_verified"):
        name_ok = equals_constant_window(cs, ev_name, b'"email_verified"')
        cs.assert_true(name_ok, is_email, "email_verified name")
        bare = equals_constant_window(cs, ev_value, b"true")
        quoted = equals_constant_window(cs, ev_value, b'"true"')
        cs.assert_true(bare + quoted, is_email, "email_verified value")
