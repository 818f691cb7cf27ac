"""Input preparation for the zkLogin relation.

Turns a compact RS256 JWT plus the user's private values into the full
input assignment of ZkLoginCircuit: the padded unsigned token, the
positions of every claim excerpt in the base64 payload, the limbs of the
signature and modulus, and the public all_inputs_hash.

Nothing here is trusted by the relation; every position computed below is
re-checked against the token bytes by the constraints.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, Union

from constraints.zklogin import CLAIM_FIELDS, ZkLoginConfig
from primitives.bigint import to_limbs
from primitives.encoding import (
    JSON_WHITESPACE,
    b64_span,
    b64url_decode,
    b64url_encode,
    pad_bytes,
    sha256_pad,
)
from primitives.poseidon import (
    hash_ascii_str_to_field,
    hash_bytes_to_field,
    hasher,
    pack_segments,
    poseidon_hash,
)

InputValue = Union[int, List[int]]

_WHITESPACE = "".join(chr(c) for c in JSON_WHITESPACE)


# --- Claim location ---

@dataclass
class ClaimExcerpt:
    """One JSON member of the payload, with positions in bytes.

    Attributes:
        text: The member as written, from the opening quote of its name to
            the ',' or '}' that follows it
        offset: Byte offset of text in the decoded payload
        name_len: Length of the quoted name
        colon_index: Position of ':' in text
        value_index: Position of the first value byte in text
        value_len: Length of the value as written
    """
    text: str
    offset: int
    name_len: int
    colon_index: int
    value_index: int
    value_len: int

    @property
    def data(self) -> bytes:
        return self.text.encode("utf-8")

    @property
    def value(self) -> str:
        return self.data[self.value_index:self.value_index + self.value_len].decode("utf-8")

    def gaps(self) -> Tuple[int, int, int]:
        """Whitespace run lengths around the colon and before the terminator."""
        return (
            self.colon_index - self.name_len,
            self.value_index - self.colon_index - 1,
            len(self.data) - 1 - self.value_index - self.value_len,
        )


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def _is_member_start(text: str, pos: int) -> bool:
    prev = pos - 1
    while prev >= 0 and text[prev] in _WHITESPACE:
        prev -= 1
    return prev >= 0 and text[prev] in "{,"


def locate_claim(payload: str, name: str) -> ClaimExcerpt:
    """Find the member "name": value in a JSON payload.

    Raises:
        ValueError: If the payload has no such member
    """
    key = json.dumps(name)
    decoder = json.JSONDecoder()
    start = payload.find(key)
    while start != -1:
        colon = _skip_ws(payload, start + len(key))
        if _is_member_start(payload, start) and colon < len(payload) and payload[colon] == ":":
            value_start = _skip_ws(payload, colon + 1)
            try:
                _, value_end = decoder.raw_decode(payload, value_start)
            except json.JSONDecodeError as e:
                raise ValueError(f"Malformed value for claim '{name}'") from e
            end = _skip_ws(payload, value_end)
            if end < len(payload) and payload[end] in ",}":
                text = payload[start:end + 1]

                def nbytes(s: str) -> int:
                    return len(s.encode("utf-8"))

                return ClaimExcerpt(
                    text=text,
                    offset=nbytes(payload[:start]),
                    name_len=nbytes(key),
                    colon_index=nbytes(payload[start:colon]),
                    value_index=nbytes(payload[start:value_start]),
                    value_len=nbytes(payload[value_start:value_end]),
                )
        start = payload.find(key, start + 1)
    raise ValueError(f"Claim '{name}' not found in payload")


# --- Derived values ---

def compute_nonce(
    eph_public_key: Sequence[int], max_epoch: int, jwt_randomness: int, nonce_bits: int = 160
) -> str:
    """Base64url encoding of the low nonce_bits bits of the nonce hash, big-endian."""
    if nonce_bits % 8:
        raise ValueError(f"nonce_bits must be a whole number of bytes, got {nonce_bits}")
    digest = poseidon_hash([*eph_public_key, max_epoch, jwt_randomness])
    low = digest & ((1 << nonce_bits) - 1)
    return b64url_encode(low.to_bytes(nonce_bits // 8, "big"))


def compute_address_seed(kc_name: str, kc_value: str, aud: str, salt: int, config: ZkLoginConfig) -> int:
    """Poseidon(kc_name_F, kc_value_F, aud_F, Poseidon(salt))."""
    return poseidon_hash([
        hash_ascii_str_to_field(kc_name, config.max_kc_name_len),
        hash_ascii_str_to_field(kc_value, config.max_kc_value_len),
        hash_ascii_str_to_field(aud, config.max_aud_value_len),
        poseidon_hash([salt]),
    ])


def modulus_to_field(modulus: int, config: ZkLoginConfig) -> int:
    """Hash of the modulus limbs packed most significant limb first."""
    limbs = to_limbs(modulus, config.limb_bits, config.limb_count)
    return hasher(pack_segments(limbs[::-1], config.limb_bits))


# --- Assignment ---

@dataclass
class ZkLoginInputs:
    """Full input assignment plus the values it commits to."""
    values: Dict[str, InputValue] = field(default_factory=dict)
    address_seed: int = 0
    all_inputs_hash: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "inputs": self.values,
                "address_seed": str(self.address_seed),
                "all_inputs_hash": str(self.all_inputs_hash),
            },
            indent=2,
        )

    @classmethod
    def from_json(cls, text: str) -> "ZkLoginInputs":
        raw = json.loads(text)
        return cls(
            values=raw["inputs"],
            address_seed=int(raw["address_seed"]),
            all_inputs_hash=int(raw["all_inputs_hash"]),
        )


def _claim_values(
    claim: str,
    excerpt: ClaimExcerpt,
    payload_b64_len: int,
    config: ZkLoginConfig,
) -> Dict[str, InputValue]:
    layout = config.claim_layout(claim)
    data = excerpt.data
    if len(data) > layout.ext_cap:
        raise ValueError(f"Claim '{claim}' excerpt of {len(data)} bytes exceeds {layout.ext_cap}")
    if excerpt.name_len > layout.name_cap or excerpt.value_len > layout.value_cap:
        raise ValueError(f"Claim '{claim}' name or value exceeds its capacity")
    if max(excerpt.gaps()) > config.max_whitespace_len:
        raise ValueError(f"Claim '{claim}' has more than {config.max_whitespace_len} whitespace characters in a gap")
    index_b64, length_b64 = b64_span(excerpt.offset, len(data))
    if index_b64 + length_b64 > payload_b64_len:
        raise ValueError(f"Claim '{claim}' extends past the payload")

    values: Dict[str, InputValue] = {
        f"ext_{claim}": pad_bytes(data, layout.ext_cap),
        f"ext_{claim}_length": len(data),
        f"{claim}_index_b64": index_b64,
        f"{claim}_length_b64": length_b64,
    }
    fields = (excerpt.name_len, excerpt.colon_index, excerpt.value_index, excerpt.value_len)
    for field_name, v in zip(CLAIM_FIELDS, fields):
        values[f"{claim}_{field_name}"] = v
    return values


def _disabled_claim(claim: str, config: ZkLoginConfig) -> Dict[str, InputValue]:
    layout = config.claim_layout(claim)
    values: Dict[str, InputValue] = {
        f"ext_{claim}": [0] * layout.ext_cap,
        f"ext_{claim}_length": 0,
        f"{claim}_index_b64": 0,
        f"{claim}_length_b64": 0,
    }
    for field_name in CLAIM_FIELDS:
        values[f"{claim}_{field_name}"] = 0
    return values


def _string_value(excerpt: ClaimExcerpt, claim: str) -> str:
    value = json.loads(excerpt.value)
    if not isinstance(value, str) or not excerpt.value.startswith('"'):
        raise ValueError(f"Claim '{claim}' must have a string value")
    return excerpt.value[1:-1]


def prepare_inputs(
    config: ZkLoginConfig,
    token: str,
    modulus: int,
    kc_name: str,
    eph_public_key: Sequence[int],
    max_epoch: int,
    jwt_randomness: int,
    salt: int,
) -> ZkLoginInputs:
    """Input assignment for a compact JWT header.payload.signature.

    Args:
        config: Capacities of the target relation
        token: Compact RS256 JWT
        modulus: RSA modulus of the issuer's key
        kc_name: Name of the key claim (e.g. 'sub' or 'email')
        eph_public_key: Ephemeral public key as two field elements
        max_epoch: Last epoch the ephemeral key is valid for
        jwt_randomness: 128-bit blinding value used for the nonce
        salt: User salt

    Returns:
        ZkLoginInputs ready for ZkLoginCircuit.generate_witness

    Raises:
        ValueError: If the token does not parse or does not fit the capacities
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError(f"Expected a compact JWT with 3 parts, got {len(parts)}")
    header_b64, payload_b64, signature_b64 = parts
    if len(header_b64) > config.max_header_len:
        raise ValueError(f"Header of {len(header_b64)} characters exceeds {config.max_header_len}")

    unsigned = f"{header_b64}.{payload_b64}".encode("ascii")
    padded = sha256_pad(unsigned)
    if len(padded) > config.max_padded_unsigned_jwt_len:
        raise ValueError(
            f"Padded token of {len(padded)} bytes exceeds {config.max_padded_unsigned_jwt_len}"
        )
    if modulus >> config.modulus_bits:
        raise ValueError(f"Modulus does not fit in {config.modulus_bits} bits")
    signature = int.from_bytes(b64url_decode(signature_b64), "big")

    payload = b64url_decode(payload_b64).decode("utf-8")
    n, k = config.limb_bits, config.limb_count

    values: Dict[str, InputValue] = {
        "padded_unsigned_jwt": pad_bytes(padded, config.max_padded_unsigned_jwt_len),
        "payload_start_index": len(header_b64) + 1,
        "payload_len": len(payload_b64),
        "num_sha2_blocks": len(padded) // 64,
        "signature": to_limbs(signature, n, k),
        "modulus": to_limbs(modulus, n, k),
        "eph_public_key": [int(x) for x in eph_public_key],
        "max_epoch": max_epoch,
        "jwt_randomness": jwt_randomness,
        "salt": salt,
    }

    kc = locate_claim(payload, kc_name)
    aud = locate_claim(payload, "aud")
    nonce = locate_claim(payload, "nonce")
    values.update(_claim_values("kc", kc, len(payload_b64), config))
    values.update(_claim_values("aud", aud, len(payload_b64), config))
    values.update(_claim_values("nonce", nonce, len(payload_b64), config))
    if kc_name == "email":
        ev = locate_claim(payload, "email_verified")
        values.update(_claim_values("ev", ev, len(payload_b64), config))
    else:
        values.update(_disabled_claim("ev", config))

    iss = locate_claim(payload, "iss")
    iss_index_b64, iss_length_b64 = b64_span(iss.offset, len(iss.data))
    if iss_length_b64 > config.max_ext_iss_len_b64:
        raise ValueError(f"Issuer excerpt of {iss_length_b64} symbols exceeds {config.max_ext_iss_len_b64}")
    values["iss_index_b64"] = iss_index_b64
    values["iss_length_b64"] = iss_length_b64
    iss_b64 = payload_b64[iss_index_b64:iss_index_b64 + iss_length_b64].encode("ascii")

    kc_value = _string_value(kc, "kc")
    aud_value = _string_value(aud, "aud")
    address_seed = compute_address_seed(kc_name, kc_value, aud_value, salt, config)
    all_inputs_hash = poseidon_hash([
        *values["eph_public_key"],
        address_seed,
        max_epoch,
        hash_bytes_to_field(iss_b64, config.max_ext_iss_len_b64),
        iss_index_b64 % 4,
        hash_bytes_to_field(header_b64.encode("ascii"), config.max_header_len),
        modulus_to_field(modulus, config),
    ])
    values["all_inputs_hash"] = all_inputs_hash
    return ZkLoginInputs(values=values, address_seed=address_seed, all_inputs_hash=all_inputs_hash)
