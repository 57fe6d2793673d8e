from __future__ import annotations

import hashlib

import pytest

from nfc_nft.address import Address
from nfc_nft.encoding import xdr
from nfc_nft.errors import CryptoError
from nfc_nft.runtime.crypto import SECP256K1_HALF_N, SECP256K1_N, is_low_s, secp256k1_recover
from nfc_nft.tools import sigtools


def test_message_digest_matches_preimage():
    signer = Address.from_seed("admin")
    expected = hashlib.sha256(b"msg" + xdr.encode_address(signer) + xdr.encode_u32(1)).digest()
    assert sigtools.message_digest(b"msg", signer, 1) == expected


def test_der_pipeline_matches_recoverable_signature(chip_a):
    digest = hashlib.sha256(b"pipeline").digest()
    der = chip_a.sign_der(digest)
    r, s = sigtools.parse_der_signature(der)
    sig64 = r + sigtools.normalize_s(s)
    recid = sigtools.find_recovery_id(digest, sig64, chip_a.public_key)
    assert secp256k1_recover(digest, sig64, recid) == chip_a.public_key
    assert sigtools.parse_der_signature(der.hex()) == (r, s)


def test_parse_der_strips_sign_byte_and_pads():
    r = b"\x00\x80" + b"\x01" * 31  # sign-padded 32-byte integer
    s = b"\x05"  # short integer
    body = b"\x02" + bytes([len(r)]) + r + b"\x02" + bytes([len(s)]) + s
    der = b"\x30" + bytes([len(body)]) + body
    pr, ps = sigtools.parse_der_signature(der)
    assert pr == b"\x80" + b"\x01" * 31
    assert ps == b"\x00" * 31 + b"\x05"


@pytest.mark.parametrize(
    "der",
    [
        b"",
        b"\x31\x06\x02\x01\x01\x02\x01\x01",
        b"\x30\x07\x02\x01\x01\x02\x01\x01",
        b"\x30\x06\x02\x01\x01\x03\x01\x01",
        b"\x30\x07\x02\x01\x01\x02\x01\x01\x00",
        "zz",
    ],
)
def test_parse_der_rejects_malformed(der):
    with pytest.raises(CryptoError):
        sigtools.parse_der_signature(der)


def test_normalize_s():
    low = (5).to_bytes(32, "big")
    assert sigtools.normalize_s(low) == low
    high = (SECP256K1_N - 5).to_bytes(32, "big")
    assert sigtools.normalize_s(high) == low
    half = SECP256K1_HALF_N.to_bytes(32, "big")
    assert sigtools.normalize_s(half) == half
    assert is_low_s(b"\x01" * 32 + sigtools.normalize_s(high))
    assert not is_low_s(b"\x01" * 32 + high)
    with pytest.raises(CryptoError):
        sigtools.normalize_s(b"\x00" * 32)


def test_find_recovery_id_for_wrong_key(chip_a, chip_b):
    digest = hashlib.sha256(b"x").digest()
    sig, _ = chip_a.sign_digest(digest)
    with pytest.raises(CryptoError):
        sigtools.find_recovery_id(digest, sig, chip_b.public_key)


def test_software_chip_is_deterministic_and_low_s():
    a1 = sigtools.SoftwareChip.from_seed("same")
    a2 = sigtools.SoftwareChip.from_seed("same")
    assert a1.public_key == a2.public_key
    assert len(a1.public_key) == 65 and a1.public_key[0] == 0x04
    sig, recid = a1.sign_digest(b"\x01" * 32)
    assert 0 <= recid <= 3
    assert int.from_bytes(sig[32:], "big") <= SECP256K1_HALF_N


def test_software_chip_rejects_bad_secret():
    with pytest.raises(CryptoError):
        sigtools.SoftwareChip(0)
