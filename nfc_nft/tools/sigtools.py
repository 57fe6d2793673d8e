"""
Client-side signature tooling
=============================

Helpers for wallets, bridges and tests that talk to an NFC chip and then
submit its proof to the contract:

- message_digest(message, signer, nonce)    digest the chip must sign
- parse_der_signature(der)                  DER SEQUENCE{r, s} -> (r32, s32)
- normalize_s(s32)                          s -> n - s when s > n/2
- find_recovery_id(digest, sig64, pubkey)   which selector (0..3) recovers pubkey
- SoftwareChip(secret)                      a chip stand-in backed by coincurve

Chips return DER signatures with arbitrary `s`; the contract accepts only
low-s signatures with an explicit recovery id, so the usual client pipeline is

    r, s  = parse_der_signature(der)
    sig64 = r + normalize_s(s)
    recid = find_recovery_id(digest, sig64, chip_public_key)

The recovery-id search lives here only. The contract never searches.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Tuple, Union

from coincurve import PrivateKey

from nfc_nft.address import Address
from nfc_nft.encoding import xdr
from nfc_nft.errors import CryptoError
from nfc_nft.runtime.crypto import SECP256K1_HALF_N, SECP256K1_N, secp256k1_recover

SCALAR_LEN = 32


def message_digest(message: bytes, signer: Address, nonce: int) -> bytes:
    """sha256(message || xdr(signer) || xdr_u32(nonce))."""
    return hashlib.sha256(xdr.signed_payload(message, signer, nonce)).digest()


# ---------------------------------------------------------------------------
# DER
# ---------------------------------------------------------------------------


def _read_len(der: bytes, pos: int) -> Tuple[int, int]:
    if pos >= len(der):
        raise CryptoError("DER truncated in length")
    first = der[pos]
    pos += 1
    if first < 0x80:
        return first, pos
    n = first & 0x7F
    if n == 0 or n > 2 or pos + n > len(der):
        raise CryptoError("unsupported DER length encoding")
    return int.from_bytes(der[pos:pos + n], "big"), pos + n


def _read_int(der: bytes, pos: int, name: str) -> Tuple[bytes, int]:
    if pos >= len(der) or der[pos] != 0x02:
        raise CryptoError(f"DER: expected INTEGER tag for {name}")
    length, pos = _read_len(der, pos + 1)
    if length == 0 or pos + length > len(der):
        raise CryptoError(f"DER: bad length for {name}")
    value = der[pos:pos + length]
    value = value.lstrip(b"\x00") or b"\x00"
    if len(value) > SCALAR_LEN:
        raise CryptoError(f"DER: {name} longer than 32 bytes")
    return value.rjust(SCALAR_LEN, b"\x00"), pos + length


def parse_der_signature(der: Union[bytes, str]) -> Tuple[bytes, bytes]:
    """Parse DER `SEQUENCE { INTEGER r, INTEGER s }` into 32-byte r and s."""
    if isinstance(der, str):
        try:
            der = bytes.fromhex(der.strip().removeprefix("0x"))
        except ValueError as exc:
            raise CryptoError("DER signature is not valid hex") from exc
    der = bytes(der)
    if len(der) < 8 or der[0] != 0x30:
        raise CryptoError("DER: expected SEQUENCE tag 0x30")
    seq_len, pos = _read_len(der, 1)
    if pos + seq_len != len(der):
        raise CryptoError("DER: sequence length does not match input")
    r, pos = _read_int(der, pos, "r")
    s, pos = _read_int(der, pos, "s")
    if pos != len(der):
        raise CryptoError("DER: trailing bytes after s")
    return r, s


# ---------------------------------------------------------------------------
# Normalization / recovery id
# ---------------------------------------------------------------------------


def normalize_s(s: bytes) -> bytes:
    if len(s) != SCALAR_LEN:
        raise CryptoError("s must be 32 bytes")
    v = int.from_bytes(s, "big")
    if not 0 < v < SECP256K1_N:
        raise CryptoError("s out of range")
    if v > SECP256K1_HALF_N:
        v = SECP256K1_N - v
    return v.to_bytes(SCALAR_LEN, "big")


def find_recovery_id(digest: bytes, signature: bytes, public_key: bytes) -> int:
    for recid in range(4):
        try:
            if secp256k1_recover(digest, signature, recid) == bytes(public_key):
                return recid
        except CryptoError:
            continue
    raise CryptoError("no recovery id reproduces the public key")


# ---------------------------------------------------------------------------
# Software chip
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChipSignature:
    signature: bytes
    recovery_id: int
    public_key: bytes
    nonce: int
    message: bytes

    def as_args(self) -> Tuple[bytes, bytes, int, bytes, int]:
        """(message, signature, recovery_id, public_key, nonce) for contract calls."""
        return self.message, self.signature, self.recovery_id, self.public_key, self.nonce


class SoftwareChip:
    """A secp256k1 key pair standing in for an NFC chip (tests / dev tooling)."""

    def __init__(self, secret: Union[bytes, int]) -> None:
        if isinstance(secret, int):
            secret = secret.to_bytes(SCALAR_LEN, "big")
        try:
            self._key = PrivateKey(bytes(secret))
        except ValueError as exc:
            raise CryptoError("invalid chip secret") from exc
        self.public_key: bytes = self._key.public_key.format(compressed=False)

    @classmethod
    def from_seed(cls, seed: Union[str, bytes]) -> "SoftwareChip":
        if isinstance(seed, str):
            seed = seed.encode("utf-8")
        return cls(hashlib.sha256(b"nfc-nft/chip|" + seed).digest())

    def sign_digest(self, digest: bytes) -> Tuple[bytes, int]:
        """Low-s (signature64, recovery_id) over a 32-byte digest."""
        sig65 = self._key.sign_recoverable(bytes(digest), hasher=None)
        return sig65[:64], sig65[64]

    def sign_der(self, digest: bytes) -> bytes:
        """DER signature over a 32-byte digest, as a hardware chip would return it."""
        return self._key.sign(bytes(digest), hasher=None)

    def sign_call(self, message: bytes, signer: Address, nonce: int) -> ChipSignature:
        sig, recid = self.sign_digest(message_digest(message, signer, nonce))
        return ChipSignature(sig, recid, self.public_key, nonce, bytes(message))


__all__ = [
    "message_digest",
    "parse_der_signature",
    "normalize_s",
    "find_recovery_id",
    "ChipSignature",
    "SoftwareChip",
]
