"""Base64URL symbol lookup and decoding to bits.

The alphabet splits into five disjoint classes, each with a fixed offset
from the ASCII code:

    A-Z  (65..90)   -> code - 65
    a-z  (97..122)  -> code - 71
    0-9  (48..57)   -> code + 4
    '-'  (45)       -> 62
    '_'  (95)       -> 63

Decoded output is a flat bit list, six bits per symbol, most significant
bit first, which is the order the symbols concatenate into the byte stream.

Symbols must be bytes; callers range-check them (every window handled here
is sliced from the range-checked token buffer or is itself range-checked).
"""

from typing import List, Sequence, Tuple

from .base import LC, ConstraintSystem, LinearCombination, as_lc, lc_sum
from .indicators import greater_eq_than, is_equal, less_eq_than, num2bits, threshold_vectors

_RANGES = (
    (ord("A"), ord("Z"), -65),
    (ord("a"), ord("z"), -71),
    (ord("0"), ord("9"), 4),
)
_SINGLES = (
    (ord("-"), 62),
    (ord("_"), 63),
)


def base64url_lookup(cs: ConstraintSystem, symbol: LC) -> Tuple[LinearCombination, LinearCombination]:
    """(valid, value) for one symbol; value is 0 for symbols outside the alphabet."""
    symbol = as_lc(symbol)
    flags = []
    terms = []
    for lo, hi, shift in _RANGES:
        inside = cs.mul(greater_eq_than(cs, symbol, lo, 8), less_eq_than(cs, symbol, hi, 8))
        flags.append(inside)
        terms.append(cs.mul(inside, symbol + shift))
    for code, value in _SINGLES:
        hit = is_equal(cs, symbol, code)
        flags.append(hit)
        terms.append(hit * value)
    return lc_sum(flags), lc_sum(terms)


def _msb_bits(cs: ConstraintSystem, value: LC) -> List[LinearCombination]:
    return num2bits(cs, value, 6)[::-1]


def base64url_decode_strict(cs: ConstraintSystem, symbols: Sequence[LC]) -> List[LinearCombination]:
    """Bits of every symbol; every symbol must be in the alphabet."""
    bits = []
    with cs.scope("b64_strict"):
        for s in symbols:
            valid, value = base64url_lookup(cs, s)
            cs.assert_true(valid, tag="b64 symbol")
            bits.extend(_msb_bits(cs, value))
    return bits


def base64url_decode(
    cs: ConstraintSystem, symbols: Sequence[LC], length: LC, enabled: LC = 1
) -> List[LinearCombination]:
    """Bits of symbols[:length], zero beyond it.

    Only the symbols before length need to be in the alphabet. When
    enabled, the relation fails unless length <= len(symbols).
    """
    bits = []
    with cs.scope("b64_decode"):
        _, lt = threshold_vectors(cs, length, len(symbols), enabled)
        for s, live in zip(symbols, lt):
            valid, value = base64url_lookup(cs, s)
            cs.assert_true(valid, live, "b64 symbol")
            bits.extend(_msb_bits(cs, cs.mul(live, value)))
    return bits
