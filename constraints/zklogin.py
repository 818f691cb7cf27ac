"""The zkLogin relation.

Proves that a padded unsigned JWT (header '.' payload, SHA-256 padded)
carries a valid RS256 signature under a given modulus, and that its payload
contains the key claim, audience, nonce and (for email key claims) an
email_verified member at the declared base64 positions. The single public
input commits to everything the verifier learns:

    all_inputs_hash = Poseidon(eph_pk[0], eph_pk[1], address_seed, max_epoch,
                               iss_b64_F, iss_index_b64 mod 4, header_F,
                               modulus_F)
    address_seed    = Poseidon(kc_name_F, kc_value_F, aud_value_F,
                               Poseidon(salt))

Claim inputs for claim c in (kc, nonce, ev, aud):

    ext_{c}                 member excerpt bytes, zero-padded
    ext_{c}_length          excerpt length including its terminator
    {c}_index_b64           first base64 symbol of the excerpt in the payload
    {c}_length_b64          base64 symbols covering the excerpt
    {c}_name_length         name length including quotes
    {c}_colon_index
    {c}_value_index
    {c}_value_length

The ev inputs are all zero when the key claim is not "email".
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from primitives.bigint import SHA256_DIGEST_BYTES, SHA256_DIGEST_INFO
from primitives.encoding import SHA256_BLOCK_BYTES, b64_window_capacity
from primitives.field import bit_width
from primitives.poseidon import MAX_HASHER_INPUTS, PACK_WIDTH, packed_count

from .base import ConstraintSystem, LinearCombination, as_lc
from .claims import (
    email_verified_check,
    nonce_check,
    nonce_symbols,
    parse_extended_claim,
    quote_remover,
)
from .hashing import convert_base, hash_bytes_to_field, hasher, poseidon
from .indicators import (
    equals_constant_window,
    less_eq_than,
    mod_pow2,
    range_check,
    select_at,
)
from .rsa import rsa_verify_65537
from .sha2 import (
    assert_zero_after_blocks,
    digest_to_words,
    sha256_padding_verifier,
    sha256_variable,
)
from .slicing import slice_from_start, slice_grouped
from .substring import ascii_substring_in_b64

CLAIMS = ("kc", "nonce", "ev", "aud")

CLAIM_FIELDS = ("name_length", "colon_index", "value_index", "value_length")


# --- Configuration ---

@dataclass(frozen=True)
class ClaimLayout:
    """Window capacities for one claim excerpt."""
    name_cap: int
    value_cap: int
    ext_cap: int
    b64_cap: int


@dataclass(frozen=True)
class ZkLoginConfig:
    """Capacities of the relation; every array length derives from these."""
    max_header_len: int = 248
    max_padded_unsigned_jwt_len: int = 64 * 25
    max_kc_name_len: int = 32
    max_kc_value_len: int = 115
    max_aud_value_len: int = 145
    max_whitespace_len: int = 6
    max_ext_iss_len_b64: int = 224
    limb_bits: int = 64
    limb_count: int = 32
    nonce_bits: int = 160
    group_size: int = 16

    @classmethod
    def small(cls) -> "ZkLoginConfig":
        """Test-sized capacities: five SHA-256 blocks and 1024-bit moduli."""
        return cls(
            max_header_len=32,
            max_padded_unsigned_jwt_len=64 * 5,
            max_kc_name_len=8,
            max_kc_value_len=24,
            max_aud_value_len=16,
            max_whitespace_len=2,
            max_ext_iss_len_b64=48,
            limb_bits=64,
            limb_count=16,
        )

    @property
    def max_sha2_blocks(self) -> int:
        return self.max_padded_unsigned_jwt_len // SHA256_BLOCK_BYTES

    @property
    def index_bits(self) -> int:
        return bit_width(self.max_padded_unsigned_jwt_len)

    @property
    def modulus_bits(self) -> int:
        return self.limb_bits * self.limb_count

    def _layout(self, name_cap: int, value_cap: int) -> ClaimLayout:
        # name, value, colon, terminator and three whitespace gaps
        ext_cap = name_cap + value_cap + 2 + 3 * self.max_whitespace_len
        return ClaimLayout(name_cap, value_cap, ext_cap, b64_window_capacity(ext_cap))

    def claim_layout(self, claim: str) -> ClaimLayout:
        """Capacities for claim in CLAIMS.

        Raises:
            KeyError: If claim is not one of CLAIMS
        """
        if claim == "kc":
            return self._layout(self.max_kc_name_len + 2, self.max_kc_value_len + 2)
        if claim == "nonce":
            return self._layout(len('"nonce"'), nonce_symbols(self.nonce_bits) + 2)
        if claim == "ev":
            return self._layout(len('"email_verified"'), len('"true"'))
        if claim == "aud":
            return self._layout(len('"aud"'), self.max_aud_value_len + 2)
        raise KeyError(f"Unknown claim '{claim}'. Available: {list(CLAIMS)}")

    @property
    def max_ext_kc_len(self) -> int:
        return self.claim_layout("kc").ext_cap

    @property
    def max_ext_nonce_len(self) -> int:
        return self.claim_layout("nonce").ext_cap

    @property
    def max_ext_ev_len(self) -> int:
        return self.claim_layout("ev").ext_cap

    @property
    def max_ext_aud_len(self) -> int:
        return self.claim_layout("aud").ext_cap

    def validate(self) -> None:
        """Raise ValueError if the capacities cannot describe a working relation."""
        if self.max_padded_unsigned_jwt_len <= 0 or self.max_padded_unsigned_jwt_len % SHA256_BLOCK_BYTES:
            raise ValueError(
                f"max_padded_unsigned_jwt_len must be a positive multiple of {SHA256_BLOCK_BYTES}, "
                f"got {self.max_padded_unsigned_jwt_len}"
            )
        if not 0 < self.max_header_len < self.max_padded_unsigned_jwt_len:
            raise ValueError(f"max_header_len {self.max_header_len} does not fit the padded buffer")
        if self.max_kc_name_len < len("email"):
            raise ValueError(f"max_kc_name_len must be at least {len('email')}")
        if 128 % self.limb_bits:
            raise ValueError(f"limb_bits must divide 128, got {self.limb_bits}")
        if self.modulus_bits // 8 < len(SHA256_DIGEST_INFO) + SHA256_DIGEST_BYTES + 11:
            raise ValueError(f"A {self.modulus_bits}-bit modulus cannot hold a PKCS#1 v1.5 SHA-256 signature")
        if not 0 < self.nonce_bits <= PACK_WIDTH:
            raise ValueError(f"nonce_bits must be in [1, {PACK_WIDTH}], got {self.nonce_bits}")
        g = self.group_size
        if g < 2 or g & (g - 1) or 8 * g > PACK_WIDTH:
            raise ValueError(f"group_size must be a power of two from 2 to 16, got {g}")
        for claim in CLAIMS:
            if self.claim_layout(claim).b64_cap > self.max_padded_unsigned_jwt_len:
                raise ValueError(f"Claim '{claim}' window exceeds the padded buffer")
        hashed = {
            "max_header_len": self.max_header_len,
            "max_kc_name_len": self.max_kc_name_len,
            "max_kc_value_len": self.max_kc_value_len,
            "max_aud_value_len": self.max_aud_value_len,
            "max_ext_iss_len_b64": self.max_ext_iss_len_b64,
        }
        for name, size in hashed.items():
            if packed_count(8, size) > MAX_HASHER_INPUTS:
                raise ValueError(f"{name}={size} packs into more than {MAX_HASHER_INPUTS} words")


# --- Circuit ---

class ZkLoginCircuit:
    """The zkLogin relation built for one configuration.

    Attributes:
        config: Capacities the relation was built with
        cs: The underlying constraint system
    """

    def __init__(self, config: Optional[ZkLoginConfig] = None):
        self.config = config or ZkLoginConfig()
        self.config.validate()
        self.cs = ConstraintSystem("zklogin")
        self._build()

    # --- Public API ---

    def generate_witness(self, inputs: Dict) -> List[int]:
        return self.cs.generate_witness(inputs)

    def is_satisfied(self, inputs: Dict) -> bool:
        return self.cs.is_satisfied(self.generate_witness(inputs))

    def unsatisfied(self, inputs: Dict, limit: Optional[int] = None) -> List[str]:
        return self.cs.unsatisfied(self.generate_witness(inputs), limit)

    def address_seed(self, witness: Sequence[int]) -> int:
        return self.cs.value(witness, "address_seed")

    def stats(self) -> Dict[str, int]:
        return self.cs.stats()

    # --- Construction ---

    def _claim_inputs(self, claim: str) -> Dict[str, object]:
        cs, cfg = self.cs, self.config
        layout = cfg.claim_layout(claim)
        signals = {
            "ext": cs.input(f"ext_{claim}", layout.ext_cap),
            "ext_length": cs.input(f"ext_{claim}_length"),
            "index_b64": cs.input(f"{claim}_index_b64"),
            "length_b64": cs.input(f"{claim}_length_b64"),
        }
        for field_name in CLAIM_FIELDS:
            signals[field_name] = cs.input(f"{claim}_{field_name}")

        for key in ("index_b64", "length_b64"):
            range_check(cs, signals[key], cfg.index_bits)
        for key in ("ext_length", *CLAIM_FIELDS):
            range_check(cs, signals[key], bit_width(layout.ext_cap))
        return signals

    def _payload_window(self, index, length, cap: int, enabled=1) -> List[LinearCombination]:
        """Base64 payload symbols [index, index + length), zero-padded to cap."""
        cs, cfg = self.cs, self.config
        padded, payload_start, payload_len = self._payload
        n = cfg.index_bits + 2
        end = cs.mul(enabled, as_lc(index) + length)
        cs.assert_true(less_eq_than(cs, end, payload_len, n), enabled, "window inside payload")
        return slice_grouped(
            cs, padded, as_lc(payload_start) + index, length, cap, cfg.group_size, enabled
        )

    def _extract_claim(self, claim: str, enabled=1):
        """Locate, match and parse one claim; returns (name, value, signals)."""
        cs, cfg = self.cs, self.config
        layout = cfg.claim_layout(claim)
        s = self._claim_inputs(claim)
        with cs.scope(claim):
            window = self._payload_window(s["index_b64"], s["length_b64"], layout.b64_cap, enabled)
            ascii_substring_in_b64(
                cs, window, s["length_b64"], s["index_b64"], s["ext"], s["ext_length"],
                cfg.index_bits, enabled,
            )
            name, value = parse_extended_claim(
                cs, s["ext"], s["ext_length"], s["name_length"], s["colon_index"],
                s["value_index"], s["value_length"], layout.name_cap, layout.value_cap,
                cfg.max_whitespace_len, enabled,
            )
        return name, value, s

    def _build(self) -> None:
        cs, cfg = self.cs, self.config
        n, k = cfg.limb_bits, cfg.limb_count

        padded = cs.input("padded_unsigned_jwt", cfg.max_padded_unsigned_jwt_len)
        payload_start = cs.input("payload_start_index")
        payload_len = cs.input("payload_len")
        num_blocks = cs.input("num_sha2_blocks")
        signature = cs.input("signature", k)
        modulus = cs.input("modulus", k)
        eph_public_key = cs.input("eph_public_key", 2)
        max_epoch = cs.input("max_epoch")
        jwt_randomness = cs.input("jwt_randomness")
        salt = cs.input("salt")
        iss_index_b64 = cs.input("iss_index_b64")
        iss_length_b64 = cs.input("iss_length_b64")
        all_inputs_hash = cs.input("all_inputs_hash", public=True)

        for scalar in (payload_start, payload_len, num_blocks, iss_index_b64, iss_length_b64):
            range_check(cs, scalar, cfg.index_bits)
        range_check(cs, max_epoch, 64)
        range_check(cs, jwt_randomness, 128)

        # SHA-256 over the valid blocks, with the padding checked in place
        message_len = as_lc(payload_start) + payload_len
        digest = sha256_variable(cs, padded, num_blocks)
        assert_zero_after_blocks(cs, padded, num_blocks)
        sha256_padding_verifier(cs, padded, message_len, num_blocks, cfg.group_size)
        digest_hi, digest_lo = digest_to_words(digest)

        # Header is everything before the '.'
        with cs.scope("header"):
            header_len = as_lc(payload_start) - 1
            dot = select_at(cs, padded, header_len)
            cs.assert_equal(dot, ord("."), "header separator")
            header = slice_from_start(cs, padded, header_len, cfg.max_header_len)
            header_f = hash_bytes_to_field(cs, header)

        rsa_verify_65537(cs, signature, modulus, digest_hi, digest_lo, n)

        self._payload = (padded, payload_start, payload_len)

        kc_name_q, kc_value_q, kc = self._extract_claim("kc")
        with cs.scope("kc"):
            kc_name = quote_remover(cs, kc_name_q, kc["name_length"])
            kc_value = quote_remover(cs, kc_value_q, kc["value_length"])
            kc_name_f = hash_bytes_to_field(cs, kc_name)
            kc_value_f = hash_bytes_to_field(cs, kc_value)

        aud_name, aud_value_q, aud = self._extract_claim("aud")
        with cs.scope("aud"):
            cs.assert_true(equals_constant_window(cs, aud_name, b'"aud"'), tag="aud name")
            aud_value = quote_remover(cs, aud_value_q, aud["value_length"])
            aud_value_f = hash_bytes_to_field(cs, aud_value)

        nonce_name, nonce_value, nonce = self._extract_claim("nonce")
        with cs.scope("nonce"):
            cs.assert_true(equals_constant_window(cs, nonce_name, b'"nonce"'), tag="nonce name")
            expected_nonce = poseidon(cs, [*eph_public_key, max_epoch, jwt_randomness])
            nonce_check(cs, nonce_value, nonce["value_length"], expected_nonce, cfg.nonce_bits)

        is_email = equals_constant_window(cs, kc_name, b"email")
        ev_name, ev_value, _ = self._extract_claim("ev", enabled=is_email)
        email_verified_check(cs, ev_name, ev_value, is_email)

        # Issuer excerpt is disclosed as-is, not parsed
        with cs.scope("iss"):
            iss_window = self._payload_window(iss_index_b64, iss_length_b64, cfg.max_ext_iss_len_b64)
            iss_b64_f = hash_bytes_to_field(cs, iss_window)
            _, iss_mod_4 = mod_pow2(cs, iss_index_b64, 2, max(1, cfg.index_bits - 2))

        with cs.scope("public"):
            address_seed = poseidon(cs, [kc_name_f, kc_value_f, aud_value_f, poseidon(cs, [salt])])
            modulus_f = hasher(cs, convert_base(cs, modulus[::-1], n))
            computed = poseidon(cs, [
                *eph_public_key, address_seed, max_epoch,
                iss_b64_f, iss_mod_4, header_f, modulus_f,
            ])
            cs.assert_equal(computed, all_inputs_hash, "all inputs hash")

        cs.expose("address_seed", address_seed)
        cs.expose("all_inputs_hash", computed)
        cs.expose("sha256_digest", digest)
        cs.expose("header_f", header_f)
        cs.expose("iss_b64_f", iss_b64_f)
        cs.expose("modulus_f", modulus_f)
