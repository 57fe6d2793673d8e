"""
nfc_nft.encoding.strkey — textual codec for account and contract addresses.

Layout (before base32):

    version_byte (1) || payload (32) || crc16_xmodem(version||payload) (2, little-endian)

The 35 raw bytes encode to exactly 56 base32 characters (no padding). The
version byte selects the leading character:

    ACCOUNT  = 6 << 3   → 'G...'
    CONTRACT = 2 << 3   → 'C...'

Decoding is strict: wrong length, unknown version, bad checksum or a
non-canonical base32 string (one that would not re-encode identically) all
raise CodecError.
"""

from __future__ import annotations

import base64
import binascii
from typing import Tuple

from nfc_nft.errors import CodecError

VERSION_ACCOUNT = 6 << 3
VERSION_CONTRACT = 2 << 3

PAYLOAD_LEN = 32
STRKEY_LEN = 56

_VERSIONS = (VERSION_ACCOUNT, VERSION_CONTRACT)


def crc16_xmodem(data: bytes) -> int:
    """CRC-16/XMODEM (poly 0x1021, init 0)."""
    return binascii.crc_hqx(data, 0)


def encode(version: int, payload: bytes) -> str:
    if version not in _VERSIONS:
        raise CodecError(f"unknown strkey version byte {version}")
    if not isinstance(payload, (bytes, bytearray)) or len(payload) != PAYLOAD_LEN:
        raise CodecError("strkey payload must be 32 bytes")
    raw = bytes([version]) + bytes(payload)
    raw += crc16_xmodem(raw).to_bytes(2, "little")
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def decode(s: str) -> Tuple[int, bytes]:
    """Return (version_byte, payload32)."""
    if not isinstance(s, str) or len(s) != STRKEY_LEN:
        raise CodecError("strkey must be a 56-character string", data={"value": repr(s)[:80]})
    try:
        # 35 raw bytes are exactly 56 base32 characters; no padding involved.
        raw = base64.b32decode(s, casefold=False)
    except (binascii.Error, ValueError) as exc:
        raise CodecError("strkey is not valid base32") from exc
    if len(raw) != 1 + PAYLOAD_LEN + 2:
        raise CodecError("strkey decoded to unexpected length")

    version, payload, checksum = raw[0], raw[1:-2], raw[-2:]
    if version not in _VERSIONS:
        raise CodecError(f"unknown strkey version byte {version}")
    if crc16_xmodem(raw[:-2]).to_bytes(2, "little") != checksum:
        raise CodecError("strkey checksum mismatch")
    if encode(version, payload) != s:
        raise CodecError("strkey is not canonical")
    return version, bytes(payload)


def is_valid(s: str) -> bool:
    try:
        decode(s)
        return True
    except CodecError:
        return False


__all__ = [
    "VERSION_ACCOUNT",
    "VERSION_CONTRACT",
    "PAYLOAD_LEN",
    "STRKEY_LEN",
    "crc16_xmodem",
    "encode",
    "decode",
    "is_valid",
]
