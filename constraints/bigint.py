"""Modular multiplication of chunked big integers.

A big integer is k limbs of n bits, least significant limb first. To check
a * b = modulus * q + r, each limb vector is read as the coefficients of a
polynomial and evaluated at the 2k - 1 points 0..2k-2:

    A(x) * B(x) - P(x) * Q(x) - R(x) = T(x)

The evaluations are linear in the limbs, so each point costs two products.
Interpolating T back to coefficients is again linear (fixed Lagrange
matrix). The coefficients t_j are small signed integers, and the identity
holds over the integers exactly when carrying t_j upward in base 2^n ends
at zero.

Bounds with a, b, p, q limbs below 2^n:
    |t_j| < 2^m,             m = 2n + bit_width(k) + 1
    |carry_j| < 2^(m-n+1)    checked by decomposing carry_j + 2^(m-n+1)
"""

from typing import List, Sequence

from primitives.bigint import from_limbs, long_div
from primitives.field import MAX_SAFE_BITS, bit_width, from_signed, to_signed
from primitives.polynomial import eval_powers, interpolation_matrix

from .base import LC, ConstraintSystem, LinearCombination, as_lc, inner_product
from .indicators import is_equal, less_than, range_check

Limbs = List[LinearCombination]


def coefficient_bits(n: int, k: int) -> int:
    """Magnitude bound (in bits) of the coefficients of a*b - p*q - r."""
    return 2 * n + bit_width(k) + 1


def _check_shape(n: int, k: int) -> None:
    if coefficient_bits(n, k) + 2 > MAX_SAFE_BITS:
        raise ValueError(f"Limbs of {n} bits are too wide for {k}-limb products in this field")


def check_carry_to_zero(cs: ConstraintSystem, coeffs: Sequence[LC], n: int, m: int) -> None:
    """Assert sum_j coeffs[j] * 2^(n*j) = 0 over the integers.

    Each coefficient must be a signed value of magnitude below 2^m.
    """
    carry_bits = m - n + 2
    offset = 1 << (m - n + 1)
    with cs.scope("carry_to_zero"):
        carry = as_lc(0)
        for j, c in enumerate(coeffs[:-1]):
            incoming = as_lc(c) + carry
            (carry,) = cs.hint(lambda v: [from_signed(to_signed(v) >> n)], [incoming], 1)
            range_check(cs, carry + offset, carry_bits)
            cs.assert_equal(incoming, carry * (1 << n), f"carry {j}")
        cs.assert_zero(as_lc(coeffs[-1]) + carry, tag="final carry")


def big_mult_mod(
    cs: ConstraintSystem, a: Sequence[LC], b: Sequence[LC], modulus: Sequence[LC], n: int
) -> Limbs:
    """Limbs of r with r = a * b mod modulus.

    a and b must be below the modulus for the quotient to fit in k limbs.
    The remainder is range-checked to k limbs of n bits; it is not
    compared against the modulus here.
    """
    k = len(modulus)
    if len(a) != k or len(b) != k:
        raise ValueError(f"Operands must have {k} limbs, got {len(a)} and {len(b)}")
    _check_shape(n, k)
    n_points = 2 * k - 1
    powers = eval_powers(n_points, k)

    def divide(*values):
        a_int = from_limbs(values[:k], n)
        b_int = from_limbs(values[k:2 * k], n)
        m_int = from_limbs(values[2 * k:], n)
        q, r = long_div(a_int, b_int, m_int, n, k)
        return q + r

    with cs.scope("big_mult_mod"):
        qr = cs.hint(divide, [*a, *b, *modulus], 2 * k)
        q, r = qr[:k], qr[k:]
        for limb in qr:
            range_check(cs, limb, n)

        a_at = [inner_product(row, a) for row in powers]
        b_at = [inner_product(row, b) for row in powers]
        p_at = [inner_product(row, modulus) for row in powers]
        q_at = [inner_product(row, q) for row in powers]
        r_at = [inner_product(row, r) for row in powers]

        t_at = [
            cs.mul(ax, bx) - cs.mul(px, qx) - rx
            for ax, bx, px, qx, rx in zip(a_at, b_at, p_at, q_at, r_at)
        ]
        t_coeffs = [inner_product(row, t_at) for row in interpolation_matrix(n_points)]
        check_carry_to_zero(cs, t_coeffs, n, coefficient_bits(n, k))
    return r


def big_less_than(cs: ConstraintSystem, a: Sequence[LC], b: Sequence[LC], n: int) -> LinearCombination:
    """Flag for a < b; every limb must already fit in n bits."""
    if len(a) != len(b):
        raise ValueError(f"Operands must have the same limb count, got {len(a)} and {len(b)}")
    with cs.scope("big_less_than"):
        result = less_than(cs, a[0], b[0], n)
        for x, y in zip(a[1:], b[1:]):
            result = less_than(cs, x, y, n) + cs.mul(is_equal(cs, x, y), result)
    return result


def pow_mod_65537(cs: ConstraintSystem, base: Sequence[LC], modulus: Sequence[LC], n: int) -> Limbs:
    """base^65537 mod modulus: sixteen squarings and one multiplication."""
    with cs.scope("pow_mod_65537"):
        acc = list(base)
        for _ in range(16):
            acc = big_mult_mod(cs, acc, acc, modulus, n)
        return big_mult_mod(cs, acc, base, modulus, n)

