"""Primitives - Off-circuit field arithmetic, hashing and encodings."""

from primitives.bigint import (
    from_limbs,
    long_div,
    pkcs1_v15_sha256_encoded,
    pkcs1_v15_sha256_limbs,
    to_limbs,
)
from primitives.encoding import (
    BASE64URL_ALPHABET,
    b64_span,
    b64url_decode,
    b64url_encode,
    pad_bytes,
    pad_str,
    sha256_pad,
)
from primitives.field import (
    BN254_PRIME,
    FF,
    bit_width,
    to_signed,
)
from primitives.poseidon import (
    hash_ascii_str_to_field,
    hash_bytes_to_field,
    hasher,
    pack_segments,
    poseidon_hash,
)

__all__ = [
    # Field
    "BN254_PRIME",
    "FF",
    "bit_width",
    "to_signed",
    # Poseidon
    "poseidon_hash",
    "hasher",
    "pack_segments",
    "hash_bytes_to_field",
    "hash_ascii_str_to_field",
    # Big integers
    "to_limbs",
    "from_limbs",
    "long_div",
    "pkcs1_v15_sha256_encoded",
    "pkcs1_v15_sha256_limbs",
    # Encodings
    "BASE64URL_ALPHABET",
    "b64url_encode",
    "b64url_decode",
    "b64_span",
    "pad_bytes",
    "pad_str",
    "sha256_pad",
]
