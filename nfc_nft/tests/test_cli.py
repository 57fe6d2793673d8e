from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from nfc_nft.address import Address
from nfc_nft.cli.main import app
from nfc_nft.config import load_config
from nfc_nft.tools.sigtools import SoftwareChip

runner = CliRunner()


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setenv("NFC_NFT_LOG_LEVEL", "ERROR")
    load_config.cache_clear()
    return str(tmp_path / "cli.db")


def _run(db, *args):
    return runner.invoke(app, ["--db", db, "--json", *args])


def _ok(result):
    assert result.exit_code == 0, result.output
    line = [ln for ln in result.output.splitlines() if ln.startswith("{")][-1]
    payload = json.loads(line)
    assert payload["ok"] is True
    return payload


def _proof_args(chip: SoftwareChip, signer: Address, nonce: int, message: bytes = b"hello"):
    p = chip.sign_call(message, signer, nonce)
    return [
        "--message", message.decode(),
        "--signature", p.signature.hex(),
        "--recovery-id", str(p.recovery_id),
        "--public-key", p.public_key.hex(),
        "--nonce", str(nonce),
    ]


def test_full_flow(db):
    admin, owner, dest = (Address.from_seed(s) for s in ("admin", "owner", "dest"))
    chip = SoftwareChip.from_seed("cli-chip")

    out = _ok(_run(db, "init", str(admin), "Chimp", "CHMP", "ipfs://abcd", "--max-tokens", "5"))
    assert out["admin"] == str(admin) and out["max_tokens"] == 5

    assert _ok(_run(db, "mint", *_proof_args(chip, admin, 1)))["token_id"] == 0
    assert _ok(_run(db, "claim", str(owner), *_proof_args(chip, owner, 2)))["owner"] == str(owner)
    assert _ok(_run(db, "transfer", str(owner), str(dest), "0", *_proof_args(chip, owner, 3)))["owner"] == str(dest)

    tok = _ok(_run(db, "token", "0"))
    assert tok["state"] == "claimed"
    assert tok["uri"] == "ipfs://abcd/0"
    assert tok["public_key"] == "0x" + chip.public_key.hex()

    assert _ok(_run(db, "balance", str(dest)))["balance"] == 1
    assert _ok(_run(db, "nonce", chip.public_key.hex()))["nonce"] == 3

    assert _ok(_run(db, "clawback", "0"))["state"] == "clawed_back"
    info = _ok(_run(db, "info"))
    assert info["next_token_id"] == 1 and info["symbol"] == "CHMP"


def test_contract_error_exit_code(db):
    admin = Address.from_seed("admin")
    chip = SoftwareChip.from_seed("cli-chip")
    _ok(_run(db, "init", str(admin), "Chimp", "CHMP", "ipfs://abcd"))
    args = _proof_args(chip, admin, 1)
    _ok(_run(db, "mint", *args))

    result = _run(db, "mint", *args)
    assert result.exit_code == 1
    payload = json.loads([ln for ln in result.output.splitlines() if ln.startswith("{")][-1])
    assert payload["ok"] is False
    assert payload["error"]["code"] == "CONTRACT/InvalidSignature"
    assert payload["error"]["wire_code"] == 214


def test_uninitialized_store(db):
    result = _run(db, "info")
    assert result.exit_code == 1
    assert "NotInitialized" in result.output


def test_sign_and_digest_tools(db):
    signer = Address.from_seed("admin")
    out = _ok(_run(db, "sign", "--chip-seed", "cli-chip", "--signer", str(signer), "--nonce", "1", "--message", "hi"))
    chip = SoftwareChip.from_seed("cli-chip")
    assert out["public_key"] == "0x" + chip.public_key.hex()

    digest = _ok(_run(db, "digest", "hi", str(signer), "1"))["digest"]
    recid = _ok(_run(db, "recovery-id", digest, out["signature"], out["public_key"]))["recovery_id"]
    assert recid == out["recovery_id"]


def test_parse_der_command(db):
    chip = SoftwareChip.from_seed("der")
    der = chip.sign_der(b"\x02" * 32)
    out = _ok(_run(db, "parse-der", der.hex()))
    assert out["signature"] == out["r"] + out["s_normalized"][2:]


def test_bad_hex_is_usage_error(db):
    result = _run(db, "nonce", "xyz")
    assert result.exit_code == 2


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip()
