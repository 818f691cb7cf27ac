"""Bit decomposition, comparison and indicator-vector gadgets.

Every conditional later in the circuit is a product with one of the
indicators built here:

- one_hot(v, n): eq[i] = 1 iff i == v; requires v in [0, n) when enabled
- threshold_vectors(v, n): eq over [0, n] plus lt[i] = 1 iff i < v
- less_than and friends: single boolean flags for bounded integers

Gadgets taking `enabled` switch off every requirement they impose when
enabled = 0 and then return all-zero vectors.
"""

from typing import List, Sequence, Tuple

from primitives.field import BN254_PRIME, MAX_SAFE_BITS, inv

from .base import LC, ConstraintSystem, LinearCombination, as_lc, inner_product, lc_sum


# --- Bits ---

def _decompose(cs: ConstraintSystem, x: LC, n: int) -> List[LinearCombination]:
    x = as_lc(x)
    const = x.constant_value()
    if const is not None and const >> n == 0:
        return [LinearCombination.constant((const >> i) & 1) for i in range(n)]
    bits = cs.hint(lambda v: [(v >> i) & 1 for i in range(n)], [x], n)
    for b in bits:
        cs.assert_bool(b)
    cs.assert_equal(bits2num(bits), x, "num2bits")
    return bits


def num2bits(cs: ConstraintSystem, x: LC, n: int) -> List[LinearCombination]:
    """Little-endian bits of x; the relation fails unless x < 2^n."""
    if not 0 < n <= MAX_SAFE_BITS:
        raise ValueError(f"num2bits supports 1..{MAX_SAFE_BITS} bits, got {n}")
    return _decompose(cs, x, n)


def num2bits_strict(cs: ConstraintSystem, x: LC) -> List[LinearCombination]:
    """All 254 bits of x, with the canonical-representative (alias) check."""
    n = BN254_PRIME.bit_length()
    bits = _decompose(cs, x, n)
    cs.assert_true(bits_le_constant(cs, bits, BN254_PRIME - 1), tag="alias check")
    return bits


def bits2num(bits: Sequence[LC]) -> LinearCombination:
    return inner_product([1 << i for i in range(len(bits))], bits)


def range_check(cs: ConstraintSystem, x: LC, n: int) -> None:
    num2bits(cs, x, n)


def bits_le_constant(cs: ConstraintSystem, bits: Sequence[LC], c: int) -> LinearCombination:
    """Flag for bits2num(bits) <= c, scanning from the most significant bit."""
    if c >> len(bits):
        return as_lc(1)
    greater = LinearCombination()
    equal = as_lc(1)
    for i in reversed(range(len(bits))):
        step = cs.mul(equal, bits[i])
        if (c >> i) & 1:
            equal = step
        else:
            greater = greater + step
            equal = equal - step
    return 1 - greater


# --- Equality ---

def is_zero(cs: ConstraintSystem, x: LC) -> LinearCombination:
    x = as_lc(x)
    const = x.constant_value()
    if const is not None:
        return as_lc(1 if const == 0 else 0)
    (x_inv,) = cs.hint(lambda v: [inv(v)], [x], 1)
    out = 1 - cs.mul(x, x_inv)
    cs.constrain(x, out, 0, "is_zero")
    return out


def is_equal(cs: ConstraintSystem, a: LC, b: LC) -> LinearCombination:
    return is_zero(cs, as_lc(a) - as_lc(b))


def equals_constant_window(cs: ConstraintSystem, window: Sequence[LC], expected: bytes) -> LinearCombination:
    """Flag for window == expected zero-padded to len(window)."""
    if len(expected) > len(window):
        return as_lc(0)
    target = list(expected) + [0] * (len(window) - len(expected))
    matches = lc_sum(is_equal(cs, w, t) for w, t in zip(window, target))
    return is_equal(cs, matches, len(window))


# --- Comparisons ---

def less_than(cs: ConstraintSystem, a: LC, b: LC, n: int) -> LinearCombination:
    """Flag for a < b; both operands must already be below 2^n."""
    if n > MAX_SAFE_BITS - 1:
        raise ValueError(f"less_than supports at most {MAX_SAFE_BITS - 1} bits, got {n}")
    bits = num2bits(cs, as_lc(a) + (1 << n) - as_lc(b), n + 1)
    return 1 - bits[n]


def less_eq_than(cs: ConstraintSystem, a: LC, b: LC, n: int) -> LinearCombination:
    return less_than(cs, a, as_lc(b) + 1, n)


def greater_than(cs: ConstraintSystem, a: LC, b: LC, n: int) -> LinearCombination:
    return less_than(cs, b, a, n)


def greater_eq_than(cs: ConstraintSystem, a: LC, b: LC, n: int) -> LinearCombination:
    return less_than(cs, b, as_lc(a) + 1, n)


def mod_pow2(cs: ConstraintSystem, x: LC, k: int, quotient_bits: int) -> Tuple[LinearCombination, LinearCombination]:
    """(q, r) with x = 2^k * q + r, r < 2^k and q < 2^quotient_bits."""
    q, r = cs.hint(lambda v: [v >> k, v & ((1 << k) - 1)], [x], 2)
    num2bits(cs, r, k)
    num2bits(cs, q, quotient_bits)
    cs.assert_equal(q * (1 << k) + r, x, "mod_pow2")
    return q, r


# --- Indicator vectors ---

def one_hot(cs: ConstraintSystem, index: LC, n: int, enabled: LC = 1) -> List[LinearCombination]:
    """eq[i] = enabled * (i == index) for i in [0, n).

    When enabled, the relation fails unless index is in [0, n).
    """
    index, enabled = as_lc(index), as_lc(enabled)
    idx_const, en_const = index.constant_value(), enabled.constant_value()
    if idx_const is not None and en_const is not None and (en_const == 0 or idx_const < n):
        return [as_lc(1 if en_const and i == idx_const else 0) for i in range(n)]

    eq = cs.hint(lambda v, e: [1 if e and v == i else 0 for i in range(n)], [index, enabled], n)
    for i, e in enumerate(eq):
        cs.constrain(e, index - i, 0, "one_hot")
    cs.assert_equal(lc_sum(eq), enabled, "one_hot sum")
    return eq


def threshold_vectors(
    cs: ConstraintSystem, value: LC, n: int, enabled: LC = 1
) -> Tuple[List[LinearCombination], List[LinearCombination]]:
    """One-hot over [0, n] and the mask lt[i] = (i < value) for i in [0, n).

    When enabled, the relation fails unless value is in [0, n].
    """
    eq = one_hot(cs, value, n + 1, enabled)
    if all(e.is_constant() for e in eq):
        lt = []
        acc = as_lc(0)
        for i in reversed(range(n)):
            acc = acc + eq[i + 1]
            lt.append(acc)
        return eq, lt[::-1]

    lt = cs.hint(lambda v, e: [1 if e and i < v <= n else 0 for i in range(n)], [value, enabled], n)
    for i in range(n):
        above = lt[i + 1] if i + 1 < n else as_lc(0)
        cs.assert_equal(lt[i], above + eq[i + 1], "threshold")
    return eq, lt


def select(cs: ConstraintSystem, items: Sequence[LC], eq: Sequence[LC]) -> LinearCombination:
    """Inner product of items with an indicator vector."""
    return lc_sum(cs.mul(item, e) for item, e in zip(items, eq))


def select_at(cs: ConstraintSystem, items: Sequence[LC], index: LC, enabled: LC = 1) -> LinearCombination:
    """items[index] (0 when disabled)."""
    return select(cs, items, one_hot(cs, index, len(items), enabled))
