"""Dynamic slicing: data[index : index + length], zero-padded to a fixed capacity.

There is no indexed read by a private index, so every output position is an
inner product of the input with a shifted one-hot vector, masked by a
less-than-length vector. Three variants:

- slice_from_start: index fixed at 0; one product per output byte
- slice_bytes: any index; len(data) * out_cap products
- slice_grouped: packs `group` bytes per field element, slices the packed
  array and realigns the remainder with a small multiplexer; about
  `group` times cheaper than slice_bytes with identical output

Inputs to slice_grouped must be bytes (range-checked by the caller), since
the realignment unpacks each selected group back into 8-bit pieces.

When enabled, index and length must be below 2^(bit_width(capacity) + 1)
(callers range-check them); the bound comparison decomposes index + length.
"""

from typing import List, Sequence

from primitives.field import bit_width

from .base import LC, ConstraintSystem, LinearCombination, as_lc, inner_product, lc_sum
from .indicators import bits2num, less_eq_than, mod_pow2, num2bits, one_hot, threshold_vectors


def _assert_bounds(
    cs: ConstraintSystem,
    index: LC,
    length: LC,
    len_eq: Sequence[LC],
    in_cap: int,
    out_cap: int,
    enabled: LC,
    allow_empty: bool,
) -> None:
    if not allow_empty:
        cs.assert_zero(len_eq[0], enabled, "empty slice")
    n = bit_width(in_cap + out_cap) + 2
    end = cs.mul(enabled, as_lc(index) + length)
    cs.assert_true(less_eq_than(cs, end, in_cap, n), enabled, "slice end")


def _mask(cs: ConstraintSystem, values: Sequence[LC], lt: Sequence[LC]) -> List[LinearCombination]:
    return [cs.mul(v, m) for v, m in zip(values, lt)]


def slice_from_start(
    cs: ConstraintSystem,
    data: Sequence[LC],
    length: LC,
    out_cap: int,
    enabled: LC = 1,
    allow_empty: bool = False,
) -> List[LinearCombination]:
    """data[0:length] zero-padded to out_cap."""
    with cs.scope("slice_from_start"):
        len_eq, lt = threshold_vectors(cs, length, out_cap, enabled)
        head = [data[i] if i < len(data) else as_lc(0) for i in range(out_cap)]
        out = _mask(cs, head, lt)
        if out_cap > len(data):
            _assert_bounds(cs, 0, length, len_eq, len(data), out_cap, enabled, allow_empty)
        elif not allow_empty:
            cs.assert_zero(len_eq[0], enabled, "empty slice")
        return out


def slice_bytes(
    cs: ConstraintSystem,
    data: Sequence[LC],
    index: LC,
    length: LC,
    out_cap: int,
    enabled: LC = 1,
    allow_empty: bool = False,
) -> List[LinearCombination]:
    """data[index:index+length] zero-padded to out_cap."""
    in_cap = len(data)
    with cs.scope("slice"):
        eq = one_hot(cs, index, in_cap, enabled)
        len_eq, lt = threshold_vectors(cs, length, out_cap, enabled)
        window = []
        for i in range(out_cap):
            window.append(lc_sum(cs.mul(data[k + i], eq[k]) for k in range(in_cap - i)))
        out = _mask(cs, window, lt)
        _assert_bounds(cs, index, length, len_eq, in_cap, out_cap, enabled, allow_empty)
        return out


def slice_grouped(
    cs: ConstraintSystem,
    data: Sequence[LC],
    index: LC,
    length: LC,
    out_cap: int,
    group: int = 16,
    enabled: LC = 1,
    allow_empty: bool = False,
) -> List[LinearCombination]:
    """Same output as slice_bytes, computed over groups of `group` packed bytes."""
    if group < 2 or group & (group - 1) or 8 * group > 248:
        raise ValueError(f"Group size must be a power of two from 2 to 16 bytes, got {group}")
    in_cap = len(data)
    log_group = group.bit_length() - 1
    n_groups = -(-in_cap // group)
    padded = list(data) + [as_lc(0)] * (n_groups * group - in_cap)
    weights = [1 << (8 * t) for t in range(group)]

    with cs.scope("slice_grouped"):
        packed = [inner_product(weights, padded[group * j:group * (j + 1)]) for j in range(n_groups)]

        quotient_bits = max(1, bit_width(in_cap) + 1 - log_group)
        q, r = mod_pow2(cs, index, log_group, quotient_bits)
        q_eq = one_hot(cs, q, n_groups, enabled)

        out_groups = -(-out_cap // group) + 1
        window = []
        for j in range(out_groups):
            chunk = lc_sum(cs.mul(packed[m + j], q_eq[m]) for m in range(n_groups - j))
            bits = num2bits(cs, chunk, 8 * group)
            window.extend(bits2num(bits[8 * t:8 * (t + 1)]) for t in range(group))

        r_eq = one_hot(cs, r, group, enabled)
        len_eq, lt = threshold_vectors(cs, length, out_cap, enabled)
        aligned = [
            lc_sum(cs.mul(window[i + t], r_eq[t]) for t in range(group))
            for i in range(out_cap)
        ]
        out = _mask(cs, aligned, lt)
        _assert_bounds(cs, index, length, len_eq, in_cap, out_cap, enabled, allow_empty)
        return out
