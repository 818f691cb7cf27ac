"""ASCII substring match against a base64url window.

A byte at offset o of the decoded payload starts at bit 8*o of the base64
bit stream. The window holding it starts at symbol floor(4*o/3), so the
byte sits 0, 2 or 4 bits into the window depending on whether that symbol
index is 0, 1 or 2 modulo 4. An index that is 3 modulo 4 never starts a
byte and is rejected.
"""

from typing import Sequence

from primitives.field import bit_width

from .base import LC, ConstraintSystem, LinearCombination, as_lc
from .base64 import base64url_decode
from .indicators import less_eq_than, mod_pow2, num2bits, one_hot, threshold_vectors


def ascii_substring_in_b64(
    cs: ConstraintSystem,
    b64_window: Sequence[LC],
    b64_len: LC,
    b64_index: LC,
    ascii_bytes: Sequence[LC],
    ascii_len: LC,
    index_bits: int,
    enabled: LC = 1,
) -> LinearCombination:
    """Check ascii_bytes[:ascii_len] is encoded in b64_window[:b64_len].

    Args:
        cs: Constraint system
        b64_window: Symbols sliced from the payload starting at b64_index
        b64_len: Number of live symbols in the window
        b64_index: Position of the window in the base64 payload; only its
            residue modulo 4 is used
        ascii_bytes: Candidate bytes (range-checked here)
        ascii_len: Number of live candidate bytes
        index_bits: Bit width b64_index is known to fit in
        enabled: Switch for the whole check

    Returns:
        The offset class b64_index mod 4 (0, 1 or 2 when enabled).
    """
    n_sym, n_ascii = len(b64_window), len(ascii_bytes)
    with cs.scope("b64_substring"):
        decoded = base64url_decode(cs, b64_window, b64_len, enabled)

        _, offset_class = mod_pow2(cs, b64_index, 2, max(1, index_bits - 2))
        shift_eq = one_hot(cs, offset_class, 3, enabled)
        _, live = threshold_vectors(cs, ascii_len, n_ascii, enabled)

        for j, byte in enumerate(ascii_bytes):
            ascii_bits = num2bits(cs, byte, 8)[::-1]
            for c in range(3):
                gate = cs.mul(live[j], shift_eq[c])
                for t, bit in enumerate(ascii_bits):
                    pos = 8 * j + t + 2 * c
                    if pos < len(decoded):
                        cs.constrain(gate, bit - decoded[pos], 0, "b64 bit")
                    else:
                        cs.assert_zero(gate, tag="b64 overrun")
                        break

        # 8 * ascii_len + 2 * class <= 6 * b64_len
        n = bit_width(max(8 * n_ascii + 4, 6 * n_sym)) + 1
        fits = less_eq_than(cs, 8 * as_lc(ascii_len) + 2 * offset_class, 6 * as_lc(b64_len), n)
        cs.assert_true(fits, enabled, "b64 length")
    return offset_class
