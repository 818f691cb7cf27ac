"""Tests for claim location and input preparation."""

import pytest

from primitives.encoding import b64url_decode, pad_bytes, sha256_pad
from primitives.poseidon import hash_ascii_str_to_field, poseidon_hash
from tests.jwt_helpers import (
    EPH_PUBLIC_KEY,
    JWT_RANDOMNESS,
    MAX_EPOCH,
    SALT,
    modulus_of,
    sample_payload,
    sign_token,
)
from witness import ZkLoginInputs, compute_address_seed, compute_nonce, locate_claim, prepare_inputs


class TestLocateClaim:

    def test_compact(self) -> None:
        payload = '{"iss":"x","sub":"12345","aud":"y"}'
        claim = locate_claim(payload, "sub")
        assert claim.text == '"sub":"12345",'
        assert claim.offset == payload.index('"sub"')
        assert (claim.name_len, claim.colon_index, claim.value_index, claim.value_len) == (5, 5, 6, 7)
        assert claim.value == '"12345"'
        assert claim.gaps() == (0, 0, 0)

    def test_last_member_with_whitespace(self) -> None:
        claim = locate_claim('{"a":1, "sub" :\t"7" }', "sub")
        assert claim.text == '"sub" :\t"7" }'
        assert claim.gaps() == (1, 1, 1)
        assert claim.value == '"7"'

    def test_non_string_values(self) -> None:
        assert locate_claim('{"email_verified":true}', "email_verified").value == "true"
        assert locate_claim('{"n":[1,{"x":2}],"m":0}', "n").value == '[1,{"x":2}]'

    def test_skips_value_matching_name(self) -> None:
        """A string value equal to the name is not a member."""
        payload = '{"aud":"sub","sub":"7"}'
        claim = locate_claim(payload, "sub")
        assert claim.offset == 13
        assert claim.value == '"7"'

    def test_offsets_are_bytes(self) -> None:
        payload = '{"name":"été","sub":"1"}'
        claim = locate_claim(payload, "sub")
        assert claim.offset == payload.encode().index(b'"sub"')

    def test_missing(self) -> None:
        with pytest.raises(ValueError):
            locate_claim('{"iss":"x"}', "sub")


class TestDerivedValues:

    def test_nonce_encoding(self) -> None:
        nonce = compute_nonce(EPH_PUBLIC_KEY, MAX_EPOCH, JWT_RANDOMNESS)
        assert len(nonce) == 27
        full = poseidon_hash([*EPH_PUBLIC_KEY, MAX_EPOCH, JWT_RANDOMNESS])
        assert int.from_bytes(b64url_decode(nonce), "big") == full % (1 << 160)

    def test_nonce_bits_must_be_bytes(self) -> None:
        with pytest.raises(ValueError):
            compute_nonce(EPH_PUBLIC_KEY, MAX_EPOCH, JWT_RANDOMNESS, nonce_bits=161)

    def test_address_seed(self, small_config) -> None:
        seed = compute_address_seed("sub", "12345", "test-aud", SALT, small_config)
        assert seed == poseidon_hash([
            hash_ascii_str_to_field("sub", small_config.max_kc_name_len),
            hash_ascii_str_to_field("12345", small_config.max_kc_value_len),
            hash_ascii_str_to_field("test-aud", small_config.max_aud_value_len),
            poseidon_hash([SALT]),
        ])
        assert seed != compute_address_seed("sub", "12345", "test-aud", SALT + 1, small_config)


class TestPrepareInputs:

    def _prepare(self, config, key, payload, kc_name="sub", randomness=JWT_RANDOMNESS):
        token = sign_token(key, payload)
        return token, prepare_inputs(
            config, token, modulus_of(key), kc_name, EPH_PUBLIC_KEY, MAX_EPOCH, randomness, SALT
        )

    def test_token_layout(self, small_config, rsa_key_1024) -> None:
        token, inputs = self._prepare(small_config, rsa_key_1024, sample_payload())
        values = inputs.values
        header_b64, payload_b64, _ = token.split(".")
        unsigned = f"{header_b64}.{payload_b64}".encode()
        assert values["padded_unsigned_jwt"] == pad_bytes(sha256_pad(unsigned), small_config.max_padded_unsigned_jwt_len)
        assert values["payload_start_index"] == len(header_b64) + 1
        assert values["payload_len"] == len(payload_b64)
        assert values["num_sha2_blocks"] == len(sha256_pad(unsigned)) // 64
        assert len(values["signature"]) == len(values["modulus"]) == small_config.limb_count

    def test_claim_windows(self, small_config, rsa_key_1024) -> None:
        """Every excerpt sits at its declared base64 window."""
        token, inputs = self._prepare(small_config, rsa_key_1024, sample_payload())
        values = inputs.values
        payload = b64url_decode(token.split(".")[1])
        for claim in ("kc", "aud", "nonce"):
            length = values[f"ext_{claim}_length"]
            excerpt = bytes(values[f"ext_{claim}"][:length])
            assert excerpt in payload
            assert values[f"{claim}_index_b64"] % 4 != 3
        assert bytes(values["ext_kc"][:values["ext_kc_length"]]) == b'"sub":"12345",'

    def test_ev_disabled_for_sub(self, small_config, rsa_key_1024) -> None:
        _, inputs = self._prepare(small_config, rsa_key_1024, sample_payload())
        values = inputs.values
        assert values["ext_ev_length"] == 0
        assert not any(values["ext_ev"])

    def test_ev_filled_for_email(self, small_config, rsa_key_1024) -> None:
        payload = sample_payload(email="alice@example.com")
        _, inputs = self._prepare(small_config, rsa_key_1024, payload, kc_name="email")
        values = inputs.values
        excerpt = bytes(values["ext_ev"][:values["ext_ev_length"]])
        assert excerpt == b'"email_verified":true}'
        assert inputs.address_seed == compute_address_seed(
            "email", "alice@example.com", "test-aud", SALT, small_config
        )

    def test_seed_independent_of_session(self, small_config, rsa_key_1024) -> None:
        """Fresh nonce randomness changes neither the address seed nor the public hash."""
        _, first = self._prepare(small_config, rsa_key_1024, sample_payload())
        payload = sample_payload(nonce=compute_nonce(EPH_PUBLIC_KEY, MAX_EPOCH, 99))
        _, second = self._prepare(small_config, rsa_key_1024, payload, randomness=99)
        assert first.address_seed == second.address_seed
        assert first.all_inputs_hash == second.all_inputs_hash
        assert first.values["jwt_randomness"] != second.values["jwt_randomness"]

    def test_json_round_trip(self, small_config, rsa_key_1024) -> None:
        _, inputs = self._prepare(small_config, rsa_key_1024, sample_payload())
        restored = ZkLoginInputs.from_json(inputs.to_json())
        assert restored == inputs

    def test_missing_key_claim(self, small_config, rsa_key_1024) -> None:
        with pytest.raises(ValueError):
            self._prepare(small_config, rsa_key_1024, sample_payload(), kc_name="email")

    def test_value_too_long(self, small_config, rsa_key_1024) -> None:
        payload = sample_payload(email="a" * 30 + "@example.com")
        with pytest.raises(ValueError):
            self._prepare(small_config, rsa_key_1024, payload, kc_name="email")

    def test_malformed_token(self, small_config, rsa_key_1024) -> None:
        with pytest.raises(ValueError):
            prepare_inputs(
                small_config, "abc.def", modulus_of(rsa_key_1024), "sub",
                EPH_PUBLIC_KEY, MAX_EPOCH, JWT_RANDOMNESS, SALT,
            )

    def test_modulus_too_large(self, small_config, rsa_key_1024, rsa_key_2048) -> None:
        token = sign_token(rsa_key_1024, sample_payload())
        with pytest.raises(ValueError):
            prepare_inputs(
                small_config, token, modulus_of(rsa_key_2048), "sub",
                EPH_PUBLIC_KEY, MAX_EPOCH, JWT_RANDOMNESS, SALT,
            )
