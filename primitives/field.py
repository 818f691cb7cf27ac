"""BN254 scalar field GF(p).

Uses the galois library for vectorised field arithmetic. FF is the field type.

The field is built with its known multiplicative generator so galois does not
need to factor p - 1 (which it would otherwise do to search for one).
Constraint construction and witness generation work on plain Python ints in
[0, p); FF is used where whole arrays of field elements are manipulated
(MDS matrices, interpolation bases).
"""

import galois

# --- Field Construction ---

BN254_PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# Maximum number of bits a value can be decomposed into without the
# decomposition wrapping around the field.
MAX_SAFE_BITS = 252

FF = galois.GF(BN254_PRIME, primitive_element=5, verify=False)
"""Base field GF(p) - BN254 scalar field."""


# --- Integer Helpers ---

def to_signed(value: int) -> int:
    """Interpret a field representative as a signed integer in (-p/2, p/2]."""
    value %= BN254_PRIME
    if value > BN254_PRIME // 2:
        return value - BN254_PRIME
    return value


def from_signed(value: int) -> int:
    """Map a (possibly negative) integer into [0, p)."""
    return value % BN254_PRIME


def inv(value: int) -> int:
    """Field inverse; returns 0 for 0 so witness hints stay total."""
    value %= BN254_PRIME
    if value == 0:
        return 0
    return pow(value, BN254_PRIME - 2, BN254_PRIME)


def bit_width(max_value: int) -> int:
    """Number of bits needed to represent every integer in [0, max_value]."""
    return max(1, int(max_value).bit_length())
