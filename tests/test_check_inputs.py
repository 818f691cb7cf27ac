"""Tests for the check_inputs command-line tool."""

import sys

import pytest

import check_inputs
from constraints import ZkLoginConfig
from tests.jwt_helpers import EPH_PUBLIC_KEY, JWT_RANDOMNESS, MAX_EPOCH, SALT, modulus_of, sample_payload, sign_token
from witness import prepare_inputs


def _run(monkeypatch, *argv) -> int:
    monkeypatch.setattr(sys, "argv", ["check_inputs.py", *argv])
    return check_inputs.main()


def test_requires_inputs(monkeypatch) -> None:
    with pytest.raises(SystemExit):
        _run(monkeypatch, "--config", "small")


def test_checks_prepared_inputs(monkeypatch, tmp_path, capsys, rsa_key_1024) -> None:
    token = sign_token(rsa_key_1024, sample_payload())
    inputs = prepare_inputs(
        ZkLoginConfig.small(), token, modulus_of(rsa_key_1024), "sub",
        EPH_PUBLIC_KEY, MAX_EPOCH, JWT_RANDOMNESS, SALT,
    )
    good = tmp_path / "inputs.json"
    good.write_text(inputs.to_json())
    inputs.values["salt"] = SALT + 1
    bad = tmp_path / "bad.json"
    bad.write_text(inputs.to_json())

    assert _run(monkeypatch, str(good), "--config", "small") == 0
    out = capsys.readouterr().out
    assert "Relation satisfied." in out
    assert str(inputs.address_seed) in out

    assert _run(monkeypatch, str(bad), "--config", "small", "--max-failures", "1") == 1
    out = capsys.readouterr().out
    assert "Relation NOT satisfied" in out
    assert "zklogin/public: all inputs hash" in out
