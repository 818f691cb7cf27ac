"""End-to-end tests of the zkLogin relation on the test-sized configuration.

The circuit is built once per module; every case prepares inputs from a
freshly signed token and checks the full relation.
"""

import hashlib

import pytest

from constraints import CONFIG_REGISTRY, ZkLoginCircuit, ZkLoginConfig, build_circuit, get_config
from primitives.encoding import BASE64URL_ALPHABET
from tests.jwt_helpers import (
    EPH_PUBLIC_KEY,
    JWT_RANDOMNESS,
    MAX_EPOCH,
    SALT,
    generate_key,
    modulus_of,
    sample_payload,
    sign_token,
)
from witness import compute_address_seed, prepare_inputs


@pytest.fixture(scope="module")
def circuit() -> ZkLoginCircuit:
    return ZkLoginCircuit(ZkLoginConfig.small())


def _inputs(config, key, payload, kc_name="sub", randomness=JWT_RANDOMNESS):
    token = sign_token(key, payload)
    return prepare_inputs(
        config, token, modulus_of(key), kc_name, EPH_PUBLIC_KEY, MAX_EPOCH, randomness, SALT
    )


def _copy(values):
    return {k: list(v) if isinstance(v, list) else v for k, v in values.items()}


@pytest.fixture(scope="module")
def sub_inputs(circuit, rsa_key_1024):
    return _inputs(circuit.config, rsa_key_1024, sample_payload())


class TestValidTokens:
    """Honestly prepared inputs satisfy the relation."""

    def test_input_names_match(self, circuit, sub_inputs) -> None:
        assert set(sub_inputs.values) == set(circuit.cs.input_names)

    def test_sub_claim(self, circuit, sub_inputs) -> None:
        witness = circuit.generate_witness(sub_inputs.values)
        assert circuit.cs.unsatisfied(witness, limit=5) == []
        seed = circuit.address_seed(witness)
        assert seed == sub_inputs.address_seed
        assert seed == compute_address_seed("sub", "12345", "test-aud", SALT, circuit.config)
        assert circuit.cs.public_values(witness) == {"all_inputs_hash": sub_inputs.all_inputs_hash}

    @pytest.mark.parametrize("spaced", [False, True], ids=["compact", "spaced"])
    def test_email_claim(self, circuit, rsa_key_1024, spaced: bool) -> None:
        payload = sample_payload(email="alice@example.com", spaced=spaced)
        inputs = _inputs(circuit.config, rsa_key_1024, payload, kc_name="email")
        witness = circuit.generate_witness(inputs.values)
        assert circuit.cs.unsatisfied(witness, limit=5) == []
        assert circuit.address_seed(witness) == compute_address_seed(
            "email", "alice@example.com", "test-aud", SALT, circuit.config
        )

    def test_quoted_email_verified(self, circuit, rsa_key_1024) -> None:
        payload = sample_payload(email="alice@example.com", email_verified="true")
        inputs = _inputs(circuit.config, rsa_key_1024, payload, kc_name="email")
        assert circuit.is_satisfied(inputs.values)

    def test_digest_exposed(self, circuit, sub_inputs) -> None:
        witness = circuit.generate_witness(sub_inputs.values)
        values = sub_inputs.values
        end = values["payload_start_index"] + values["payload_len"]
        unsigned = bytes(values["padded_unsigned_jwt"][:end])
        digest = hashlib.sha256(unsigned).digest()
        words = [int.from_bytes(digest[4 * i:4 * i + 4], "big") for i in range(8)]
        assert circuit.cs.value(witness, "sha256_digest") == words


class TestTamperedInputs:
    """Single changes to an honest assignment break the relation."""

    def test_signature_limb(self, circuit, sub_inputs) -> None:
        values = _copy(sub_inputs.values)
        values["signature"][0] ^= 1
        assert not circuit.is_satisfied(values)

    def test_modulus_limb(self, circuit, sub_inputs) -> None:
        values = _copy(sub_inputs.values)
        values["modulus"][5] ^= 1 << 7
        assert not circuit.is_satisfied(values)

    def test_payload_character(self, circuit, sub_inputs) -> None:
        values = _copy(sub_inputs.values)
        pos = values["payload_start_index"] + 10
        current = chr(values["padded_unsigned_jwt"][pos])
        assert current in BASE64URL_ALPHABET
        values["padded_unsigned_jwt"][pos] = ord("A" if current != "A" else "B")
        assert not circuit.is_satisfied(values)

    def test_all_inputs_hash(self, circuit, sub_inputs) -> None:
        values = _copy(sub_inputs.values)
        values["all_inputs_hash"] += 1
        failures = circuit.unsatisfied(values)
        assert failures == ["zklogin/public: all inputs hash"]

    def test_salt(self, circuit, sub_inputs) -> None:
        """A different salt yields a different address seed, so the public hash fails."""
        values = _copy(sub_inputs.values)
        values["salt"] = SALT + 1
        assert not circuit.is_satisfied(values)

    def test_wrong_nonce_randomness(self, circuit, rsa_key_1024) -> None:
        """The token's nonce was made with other randomness."""
        inputs = _inputs(circuit.config, rsa_key_1024, sample_payload(), randomness=JWT_RANDOMNESS + 1)
        failures = circuit.unsatisfied(inputs.values)
        assert failures
        assert all("/nonce" in f for f in failures)

    def test_kc_excerpt_shifted(self, circuit, sub_inputs) -> None:
        values = _copy(sub_inputs.values)
        values["kc_index_b64"] += 4
        assert not circuit.is_satisfied(values)

    def test_email_not_verified(self, circuit, rsa_key_1024) -> None:
        payload = sample_payload(email="alice@example.com", email_verified=False)
        inputs = _inputs(circuit.config, rsa_key_1024, payload, kc_name="email")
        assert not circuit.is_satisfied(inputs.values)

    def test_email_without_email_verified_claim(self, circuit, rsa_key_1024) -> None:
        """An email key claim cannot switch off the email_verified excerpt."""
        payload = sample_payload(email="alice@example.com")
        inputs = _inputs(circuit.config, rsa_key_1024, payload, kc_name="email")
        values = _copy(inputs.values)
        for name in list(values):
            if name.startswith("ext_ev") or name.startswith("ev_"):
                values[name] = [0] * len(values[name]) if isinstance(values[name], list) else 0
        assert not circuit.is_satisfied(values)

    def test_other_signer(self, circuit, rsa_key_1024) -> None:
        """A token signed by a different key does not verify under the modulus."""
        other = generate_key(1024)
        token = sign_token(other, sample_payload())
        inputs = prepare_inputs(
            circuit.config, token, modulus_of(rsa_key_1024), "sub",
            EPH_PUBLIC_KEY, MAX_EPOCH, JWT_RANDOMNESS, SALT,
        )
        assert not circuit.is_satisfied(inputs.values)


class TestConfig:
    """Configuration registry and validation."""

    def test_registry(self) -> None:
        assert set(CONFIG_REGISTRY) == {"default", "small"}
        assert get_config("small") == ZkLoginConfig.small()
        assert get_config("default") == ZkLoginConfig()
        with pytest.raises(KeyError):
            get_config("huge")
        with pytest.raises(KeyError):
            build_circuit("huge")

    def test_default_is_valid(self) -> None:
        config = ZkLoginConfig()
        config.validate()
        assert config.max_sha2_blocks == 25
        assert config.modulus_bits == 2048
        assert config.max_ext_kc_len == 34 + 117 + 2 + 18

    def test_claim_layout(self) -> None:
        config = ZkLoginConfig.small()
        nonce = config.claim_layout("nonce")
        assert nonce.name_cap == 7
        assert nonce.value_cap == 29
        with pytest.raises(KeyError):
            config.claim_layout("iss")

    @pytest.mark.parametrize(
        "changes",
        [
            {"max_padded_unsigned_jwt_len": 100},
            {"max_header_len": 0},
            {"max_kc_name_len": 4},
            {"limb_bits": 48},
            {"limb_count": 4},
            {"nonce_bits": 0},
            {"group_size": 3},
            {"max_kc_value_len": 1000},
        ],
    )
    def test_invalid(self, changes) -> None:
        config = ZkLoginConfig(**changes)
        with pytest.raises(ValueError):
            config.validate()
        with pytest.raises(ValueError):
            ZkLoginCircuit(config)
