"""RSA signature verification with public exponent 65537 (PKCS#1 v1.5, SHA-256)."""

from typing import Sequence

from primitives.bigint import SHA256_DIGEST_BYTES, pkcs1_v15_sha256_limbs

from .base import LC, ConstraintSystem, inner_product
from .bigint import big_less_than, pow_mod_65537
from .indicators import range_check


def rsa_verify_65537(
    cs: ConstraintSystem,
    signature: Sequence[LC],
    modulus: Sequence[LC],
    digest_hi: LC,
    digest_lo: LC,
    n: int,
) -> None:
    """Assert signature^65537 mod modulus is the PKCS#1 v1.5 encoding of the digest.

    Args:
        cs: Constraint system
        signature: k limbs of n bits, least significant first
        modulus: k limbs of n bits, least significant first
        digest_hi: High 128 bits of the SHA-256 digest
        digest_lo: Low 128 bits of the SHA-256 digest
        n: Limb width; must divide 128

    Raises:
        ValueError: If the limb layout cannot hold the encoded message
    """
    k = len(modulus)
    if len(signature) != k:
        raise ValueError(f"Signature has {len(signature)} limbs, modulus has {k}")
    if 128 % n:
        raise ValueError(f"Limb width {n} must divide 128")
    expected = pkcs1_v15_sha256_limbs(n, k)
    half = 128 // n

    with cs.scope("rsa"):
        for limb in (*signature, *modulus):
            range_check(cs, limb, n)
        cs.assert_true(big_less_than(cs, signature, modulus, n), tag="signature < modulus")

        em = pow_mod_65537(cs, signature, modulus, n)
        cs.assert_true(big_less_than(cs, em, modulus, n), tag="message < modulus")

        weights = [1 << (n * i) for i in range(half)]
        cs.assert_equal(inner_product(weights, em[:half]), digest_lo, "digest low")
        cs.assert_equal(inner_product(weights, em[half:2 * half]), digest_hi, "digest high")
        for i in range(8 * SHA256_DIGEST_BYTES // n, k):
            cs.assert_equal(em[i], expected[i], f"padding limb {i}")
