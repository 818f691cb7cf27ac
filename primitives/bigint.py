"""Chunked big-integer helpers (little-endian limbs).

Off-circuit counterparts of the circuit's big-integer gadgets: limb
conversion, the long division that supplies quotient/remainder witnesses,
and the expected PKCS#1 v1.5 encoded message for SHA-256 signatures.
"""

from typing import List, Sequence

# DER encoding of DigestInfo for SHA-256, without the digest itself
SHA256_DIGEST_INFO = bytes.fromhex("3031300d060960864801650304020105000420")
SHA256_DIGEST_BYTES = 32


def to_limbs(value: int, n: int, k: int) -> List[int]:
    """Split value into k limbs of n bits, least significant limb first.

    Bits above n*k are discarded.
    """
    mask = (1 << n) - 1
    return [(value >> (n * i)) & mask for i in range(k)]


def from_limbs(limbs: Sequence[int], n: int) -> int:
    """Inverse of to_limbs (limbs may exceed n bits; they are simply weighted)."""
    value = 0
    for limb in reversed(limbs):
        value = (value << n) + int(limb)
    return value


def long_div(a: int, b: int, modulus: int, n: int, k: int):
    """Quotient and remainder limbs of a*b divided by modulus.

    A zero modulus yields zero limbs; the circuit's checks reject it.
    """
    if modulus == 0:
        return [0] * k, [0] * k
    q, r = divmod(a * b, modulus)
    return to_limbs(q, n, k), to_limbs(r, n, k)


def pkcs1_v15_sha256_encoded(digest: bytes, modulus_bytes: int) -> int:
    """EM = 0x00 || 0x01 || 0xFF..0xFF || 0x00 || DigestInfo || digest, as an integer."""
    if len(digest) != SHA256_DIGEST_BYTES:
        raise ValueError(f"Expected a {SHA256_DIGEST_BYTES}-byte digest, got {len(digest)}")
    t = SHA256_DIGEST_INFO + digest
    pad_len = modulus_bytes - len(t) - 3
    if pad_len < 8:
        raise ValueError(f"Modulus of {modulus_bytes} bytes is too short for PKCS#1 v1.5")
    em = b"\x00\x01" + b"\xff" * pad_len + b"\x00" + t
    return int.from_bytes(em, "big")


def pkcs1_v15_sha256_limbs(n: int, k: int) -> List[int]:
    """Expected limbs of the encoded message with the digest area zeroed.

    The first 256 / n limbs hold the digest and are returned as 0.
    """
    if (n * k) % 8:
        raise ValueError(f"Modulus size {n * k} is not a whole number of bytes")
    return to_limbs(pkcs1_v15_sha256_encoded(bytes(SHA256_DIGEST_BYTES), n * k // 8), n, k)
