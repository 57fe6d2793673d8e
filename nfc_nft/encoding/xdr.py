"""
nfc_nft.encoding.xdr — deterministic host serialization of typed values.

Every value is a 4-byte big-endian type tag followed by its body, all fields
aligned to 4 bytes (RFC 4506 style):

    bool     tag 0    u32 (0 | 1)
    u32      tag 3    4 bytes
    u64      tag 5    8 bytes
    bytes    tag 13   u32 length || data || zero pad to 4
    string   tag 14   u32 length || utf-8 || zero pad to 4
    address  tag 18   u32 kind (0 account | 1 contract)
                      [account only: u32 key type 0 (ed25519)]
                      32-byte payload

Two places depend on this exact format:
- the signed digest: sha256(message || encode_address(signer) || encode_u32(nonce))
- every value the contract persists in the KV store

Decoders are strict and reject wrong tags, short input, non-zero padding and
trailing bytes.
"""

from __future__ import annotations

from nfc_nft.address import Address, AddressKind
from nfc_nft.errors import CodecError

TAG_BOOL = 0
TAG_U32 = 3
TAG_U64 = 5
TAG_BYTES = 13
TAG_STRING = 14
TAG_ADDRESS = 18

KEY_TYPE_ED25519 = 0

U32_MAX = (1 << 32) - 1
U64_MAX = (1 << 64) - 1


# ------------------------------------------------------------------------------
# Primitive writers
# ------------------------------------------------------------------------------

def _u32(n: int) -> bytes:
    if isinstance(n, bool) or not isinstance(n, int) or n < 0 or n > U32_MAX:
        raise CodecError("value out of u32 range", data={"value": repr(n)})
    return n.to_bytes(4, "big")


def _u64(n: int) -> bytes:
    if isinstance(n, bool) or not isinstance(n, int) or n < 0 or n > U64_MAX:
        raise CodecError("value out of u64 range", data={"value": repr(n)})
    return n.to_bytes(8, "big")


def _opaque(data: bytes) -> bytes:
    pad = (-len(data)) % 4
    return _u32(len(data)) + data + b"\x00" * pad


# ------------------------------------------------------------------------------
# Encoders
# ------------------------------------------------------------------------------

def encode_bool(v: bool) -> bytes:
    return _u32(TAG_BOOL) + _u32(1 if v else 0)


def encode_u32(n: int) -> bytes:
    return _u32(TAG_U32) + _u32(n)


def encode_u64(n: int) -> bytes:
    return _u32(TAG_U64) + _u64(n)


def encode_bytes(data: bytes) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise CodecError("bytes value required")
    return _u32(TAG_BYTES) + _opaque(bytes(data))


def encode_string(s: str) -> bytes:
    if not isinstance(s, str):
        raise CodecError("str value required")
    return _u32(TAG_STRING) + _opaque(s.encode("utf-8"))


def encode_address(addr: Address) -> bytes:
    if not isinstance(addr, Address):
        raise CodecError("Address value required")
    out = _u32(TAG_ADDRESS) + _u32(int(addr.kind))
    if addr.kind is AddressKind.ACCOUNT:
        out += _u32(KEY_TYPE_ED25519)
    return out + addr.payload


# ------------------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------------------

class _Reader:
    __slots__ = ("_buf", "_pos")

    def __init__(self, buf: bytes) -> None:
        if not isinstance(buf, (bytes, bytearray, memoryview)):
            raise CodecError("xdr input must be bytes")
        self._buf = bytes(buf)
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._buf):
            raise CodecError("xdr input truncated", data={"need": end, "have": len(self._buf)})
        out = self._buf[self._pos:end]
        self._pos = end
        return out

    def u32(self) -> int:
        return int.from_bytes(self.take(4), "big")

    def u64(self) -> int:
        return int.from_bytes(self.take(8), "big")

    def opaque(self) -> bytes:
        n = self.u32()
        data = self.take(n)
        pad = self.take((-n) % 4)
        if pad.strip(b"\x00"):
            raise CodecError("non-zero xdr padding")
        return data

    def tag(self, expected: int) -> None:
        got = self.u32()
        if got != expected:
            raise CodecError("unexpected xdr type tag", data={"expected": expected, "got": got})

    def finish(self) -> None:
        if self._pos != len(self._buf):
            raise CodecError("trailing bytes after xdr value", data={"extra": len(self._buf) - self._pos})


def decode_bool(buf: bytes) -> bool:
    r = _Reader(buf)
    r.tag(TAG_BOOL)
    v = r.u32()
    if v not in (0, 1):
        raise CodecError("xdr bool must be 0 or 1")
    r.finish()
    return v == 1


def decode_u32(buf: bytes) -> int:
    r = _Reader(buf)
    r.tag(TAG_U32)
    v = r.u32()
    r.finish()
    return v


def decode_u64(buf: bytes) -> int:
    r = _Reader(buf)
    r.tag(TAG_U64)
    v = r.u64()
    r.finish()
    return v


def decode_bytes(buf: bytes) -> bytes:
    r = _Reader(buf)
    r.tag(TAG_BYTES)
    v = r.opaque()
    r.finish()
    return v


def decode_string(buf: bytes) -> str:
    r = _Reader(buf)
    r.tag(TAG_STRING)
    raw = r.opaque()
    r.finish()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CodecError("xdr string is not valid utf-8") from exc


def decode_address(buf: bytes) -> Address:
    r = _Reader(buf)
    r.tag(TAG_ADDRESS)
    kind = r.u32()
    if kind == AddressKind.ACCOUNT:
        key_type = r.u32()
        if key_type != KEY_TYPE_ED25519:
            raise CodecError("unsupported account key type", data={"key_type": key_type})
    elif kind != AddressKind.CONTRACT:
        raise CodecError("unknown address kind", data={"kind": kind})
    payload = r.take(32)
    r.finish()
    return Address(AddressKind(kind), payload)


def signed_payload(message: bytes, signer: Address, nonce: int) -> bytes:
    """message || encode_address(signer) || encode_u32(nonce) — the digest preimage."""
    if not isinstance(message, (bytes, bytearray, memoryview)):
        raise CodecError("message must be bytes")
    return bytes(message) + encode_address(signer) + encode_u32(nonce)


__all__ = [
    "TAG_BOOL",
    "TAG_U32",
    "TAG_U64",
    "TAG_BYTES",
    "TAG_STRING",
    "TAG_ADDRESS",
    "U32_MAX",
    "U64_MAX",
    "encode_bool",
    "encode_u32",
    "encode_u64",
    "encode_bytes",
    "encode_string",
    "encode_address",
    "decode_bool",
    "decode_u32",
    "decode_u64",
    "decode_bytes",
    "decode_string",
    "decode_address",
    "signed_payload",
]
