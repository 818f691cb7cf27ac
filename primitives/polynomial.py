"""Polynomial evaluation/interpolation over small integer points.

Big-integer multiplication in the circuit treats each limb vector as the
coefficients of a polynomial and evaluates it at the points 0, 1, ..., m-1.
Products are taken pointwise and converted back to coefficient form with a
fixed Lagrange interpolation matrix. Both the evaluation powers and the
interpolation matrix depend only on the number of points, so they are
computed once per size and cached.
"""

from functools import lru_cache
from typing import List, Sequence, Tuple

import galois

from primitives.field import BN254_PRIME, FF


@lru_cache(maxsize=None)
def eval_powers(n_points: int, degree_bound: int) -> Tuple[Tuple[int, ...], ...]:
    """powers[x][i] = x^i mod p for x in [0, n_points) and i in [0, degree_bound)."""
    return tuple(
        tuple(pow(x, i, BN254_PRIME) for i in range(degree_bound))
        for x in range(n_points)
    )


@lru_cache(maxsize=None)
def interpolation_matrix(n_points: int) -> Tuple[Tuple[int, ...], ...]:
    """Matrix L with coeffs[j] = sum_x L[j][x] * values[x].

    Built from the Lagrange basis polynomials over the points 0..n_points-1:
        basis_x(X) = prod_{m != x} (X - m) / (x - m)
    Row j of L holds the j-th coefficient of every basis polynomial.
    """
    points = list(range(n_points))
    columns = []
    for x in points:
        others = [m for m in points if m != x]
        numerator = galois.Poly.Roots(FF(others), field=FF) if others else galois.Poly.One(FF)
        denominator = FF(1)
        for m in others:
            denominator *= FF(x) - FF(m)
        basis = numerator * galois.Poly([int(denominator ** -1)], field=FF)
        columns.append([int(c) for c in basis.coefficients(n_points, order="asc")])
    return tuple(tuple(columns[x][j] for x in points) for j in range(n_points))


def poly_eval(coeffs: Sequence[int], x: int) -> int:
    """Evaluate sum_i coeffs[i] * x^i mod p."""
    acc = 0
    for c in reversed(coeffs):
        acc = (acc * x + c) % BN254_PRIME
    return acc


def poly_interp(values: Sequence[int]) -> List[int]:
    """Coefficients (mod p) of the polynomial taking values[x] at x = 0..len-1."""
    matrix = interpolation_matrix(len(values))
    return [sum(l * v for l, v in zip(row, values)) % BN254_PRIME for row in matrix]
