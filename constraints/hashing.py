"""Poseidon in the circuit, and packing of byte/limb vectors into field words.

Matches primitives.poseidon exactly: same parameters, same state layout
([0, *inputs], output state[0]) and the same big-endian packing into
248-bit words.
"""

from typing import List, Sequence

from primitives.poseidon import (
    FULL_ROUNDS,
    MAX_HASHER_INPUTS,
    MAX_INPUTS,
    PACK_WIDTH,
    poseidon_params,
)

from .base import LC, ConstraintSystem, LinearCombination, as_lc, inner_product
from .indicators import num2bits


def _sbox(cs: ConstraintSystem, x: LC) -> LinearCombination:
    x2 = cs.mul(x, x)
    x4 = cs.mul(x2, x2)
    return cs.mul(x4, x)


def poseidon(cs: ConstraintSystem, inputs: Sequence[LC]) -> LinearCombination:
    """Poseidon hash of 1..16 field elements."""
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise ValueError(f"Poseidon takes 1..{MAX_INPUTS} inputs, got {len(inputs)}")
    t = len(inputs) + 1
    constants, mds, n_partial = poseidon_params(t)
    half_full = FULL_ROUNDS // 2

    with cs.scope(f"poseidon{len(inputs)}"):
        state = [as_lc(0)] + [as_lc(x) for x in inputs]
        for r in range(FULL_ROUNDS + n_partial):
            state = [s + constants[r * t + i] for i, s in enumerate(state)]
            if r < half_full or r >= half_full + n_partial:
                state = [_sbox(cs, s) for s in state]
            else:
                state[0] = _sbox(cs, state[0])
            state = [inner_product(row, state) for row in mds]
        return cs.materialize(state[0])


def hasher(cs: ConstraintSystem, inputs: Sequence[LC]) -> LinearCombination:
    """Poseidon for up to 16 inputs; two halves hashed together for 17..32."""
    n = len(inputs)
    if n <= MAX_INPUTS:
        return poseidon(cs, inputs)
    if n <= MAX_HASHER_INPUTS:
        first = poseidon(cs, inputs[:MAX_INPUTS])
        second = poseidon(cs, inputs[MAX_INPUTS:])
        return poseidon(cs, [first, second])
    raise ValueError(f"Cannot hash {n} inputs; at most {MAX_HASHER_INPUTS} are supported")


def convert_base(
    cs: ConstraintSystem, segments: Sequence[LC], in_width: int, out_width: int = PACK_WIDTH
) -> List[LinearCombination]:
    """Concatenate in_width-bit segments big-endian and cut into out_width-bit words.

    When in_width divides out_width the packing is linear and the segments
    must already be range-checked; otherwise each segment is decomposed
    (which range-checks it).
    """
    if out_width % in_width == 0:
        per_word = out_width // in_width
        words = []
        for start in range(0, len(segments), per_word):
            chunk = segments[start:start + per_word]
            weights = [1 << (in_width * (len(chunk) - 1 - i)) for i in range(len(chunk))]
            words.append(inner_product(weights, chunk))
        return words

    bits = []
    for seg in segments:
        bits.extend(num2bits(cs, seg, in_width)[::-1])
    words = []
    for start in range(0, len(bits), out_width):
        chunk = bits[start:start + out_width]
        weights = [1 << (len(chunk) - 1 - i) for i in range(len(chunk))]
        words.append(inner_product(weights, chunk))
    return words


def hash_bytes_to_field(cs: ConstraintSystem, data: Sequence[LC]) -> LinearCombination:
    """Hash of a zero-padded byte vector, packed 31 bytes per word."""
    with cs.scope("hash_bytes"):
        return hasher(cs, convert_base(cs, data, 8))
