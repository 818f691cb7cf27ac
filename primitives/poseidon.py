"""
Poseidon hash over the BN254 scalar field.

Permutation with x^5 S-box, 8 full rounds and a width-dependent number of
partial rounds. Round constants and the Cauchy MDS matrix are derived from
the Grain LFSR seeded with (field=1, sbox=0, n=254, t, R_F, R_P), so every
width is reproducible from its parameters alone.

Also provides the byte/bit packing used to collapse strings and big
integers into a single field element.
"""

from functools import lru_cache
from typing import List, Sequence, Tuple

import numpy as np

from primitives.field import BN254_PRIME, FF

FULL_ROUNDS = 8

# Partial rounds for widths t = 2..17 (1..16 inputs)
PARTIAL_ROUNDS = [56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68]

MAX_INPUTS = 16
MAX_HASHER_INPUTS = 32

# Width of one packed word; 31 bytes always fit below the modulus
PACK_WIDTH = 248

_FIELD_BITS = 254


# --- Parameter Generation ---

class _Grain:
    """Grain LFSR in self-shrinking mode, as used for Poseidon parameters."""

    def __init__(self, t: int, r_f: int, r_p: int) -> None:
        seed = (
            format(1, "02b")
            + format(0, "04b")
            + format(_FIELD_BITS, "012b")
            + format(t, "012b")
            + format(r_f, "010b")
            + format(r_p, "010b")
            + "1" * 30
        )
        # bit i of the register is seed[i]; bit 0 is the oldest
        self._state = 0
        for i, c in enumerate(seed):
            if c == "1":
                self._state |= 1 << i
        for _ in range(160):
            self._clock()

    def _clock(self) -> int:
        s = self._state
        new_bit = ((s >> 62) ^ (s >> 51) ^ (s >> 38) ^ (s >> 23) ^ (s >> 13) ^ s) & 1
        self._state = (s >> 1) | (new_bit << 79)
        return new_bit

    def next_bit(self) -> int:
        while True:
            first = self._clock()
            second = self._clock()
            if first == 1:
                return second

    def random_int(self, n_bits: int) -> int:
        value = 0
        for _ in range(n_bits):
            value = (value << 1) | self.next_bit()
        return value

    def field_element(self) -> int:
        """Rejection-sampled element of [0, p)."""
        while True:
            value = self.random_int(_FIELD_BITS)
            if value < BN254_PRIME:
                return value


@lru_cache(maxsize=None)
def poseidon_params(t: int) -> Tuple[Tuple[int, ...], Tuple[Tuple[int, ...], ...], int]:
    """Round constants, MDS matrix and partial round count for width t.

    Returns:
        (round_constants, mds, n_partial) where round_constants is flat with
        t entries per round and mds is a t x t tuple of tuples.
    """
    if not 2 <= t <= MAX_INPUTS + 1:
        raise ValueError(f"Poseidon width must be in [2, {MAX_INPUTS + 1}], got {t}")
    n_partial = PARTIAL_ROUNDS[t - 2]
    grain = _Grain(t, FULL_ROUNDS, n_partial)

    constants = tuple(grain.field_element() for _ in range((FULL_ROUNDS + n_partial) * t))

    while True:
        samples = [grain.random_int(_FIELD_BITS) % BN254_PRIME for _ in range(2 * t)]
        if len(set(samples)) != 2 * t:
            continue
        xs = FF(samples[:t])
        ys = FF(samples[t:])
        sums = xs[:, np.newaxis] + ys[np.newaxis, :]
        if np.any(sums == 0):
            continue
        mds = sums ** -1
        break

    matrix = tuple(tuple(int(v) for v in row) for row in mds)
    return constants, matrix, n_partial


# --- Permutation ---

def _sbox(x: int) -> int:
    return pow(x, 5, BN254_PRIME)


def poseidon_permutation(state: Sequence[int]) -> List[int]:
    """Apply the full Poseidon permutation to a state of width t."""
    t = len(state)
    constants, mds, n_partial = poseidon_params(t)
    half_full = FULL_ROUNDS // 2
    state = [int(s) % BN254_PRIME for s in state]

    for r in range(FULL_ROUNDS + n_partial):
        state = [(s + constants[r * t + i]) % BN254_PRIME for i, s in enumerate(state)]
        if r < half_full or r >= half_full + n_partial:
            state = [_sbox(s) for s in state]
        else:
            state[0] = _sbox(state[0])
        state = [sum(m * s for m, s in zip(row, state)) % BN254_PRIME for row in mds]

    return state


def poseidon_hash(inputs: Sequence[int]) -> int:
    """Hash 1..16 field elements.

    The state is initialised to [0, *inputs] and the output is state[0]
    after the permutation.
    """
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise ValueError(f"Poseidon takes 1..{MAX_INPUTS} inputs, got {len(inputs)}")
    return poseidon_permutation([0, *inputs])[0]


def hasher(inputs: Sequence[int]) -> int:
    """Hash up to 32 inputs, splitting into two Poseidon calls above 16."""
    n = len(inputs)
    if n <= MAX_INPUTS:
        return poseidon_hash(inputs)
    if n <= MAX_HASHER_INPUTS:
        first = poseidon_hash(inputs[:MAX_INPUTS])
        second = poseidon_hash(inputs[MAX_INPUTS:])
        return poseidon_hash([first, second])
    raise ValueError(f"Cannot hash {n} inputs; at most {MAX_HASHER_INPUTS} are supported")


# --- Packing ---

def packed_count(in_width: int, in_count: int, out_width: int = PACK_WIDTH) -> int:
    """Number of out_width words needed for in_count segments of in_width bits."""
    return -(-(in_width * in_count) // out_width)


def pack_segments(segments: Sequence[int], in_width: int, out_width: int = PACK_WIDTH) -> List[int]:
    """Concatenate segments big-endian and split into out_width-bit words.

    Words are taken from the front of the bit string; the last word may be
    shorter and is read as a big-endian integer (zero-padded at its most
    significant end).
    """
    bits = []
    for seg in segments:
        seg = int(seg)
        if seg < 0 or seg >> in_width:
            raise ValueError(f"Segment {seg} does not fit in {in_width} bits")
        bits.extend((seg >> (in_width - 1 - i)) & 1 for i in range(in_width))
    words = []
    for start in range(0, len(bits), out_width):
        word = 0
        for b in bits[start:start + out_width]:
            word = (word << 1) | b
        words.append(word)
    return words


def hash_bytes_to_field(data: Sequence[int], max_len: int) -> int:
    """Zero-pad data to max_len bytes, pack into 248-bit words and hash."""
    if len(data) > max_len:
        raise ValueError(f"Input of length {len(data)} exceeds maximum {max_len}")
    padded = list(data) + [0] * (max_len - len(data))
    return hasher(pack_segments(padded, 8))


def hash_ascii_str_to_field(text: str, max_len: int) -> int:
    """hash_bytes_to_field over the UTF-8 bytes of text."""
    return hash_bytes_to_field(list(text.encode("utf-8")), max_len)
