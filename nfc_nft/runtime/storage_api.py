"""
nfc_nft.runtime.storage_api — typed contract storage over the journal.

Values are persisted as XDR (see nfc_nft.encoding.xdr), so a stored u32 is
`00000003 || be32` etc. Getters return `default` when the key is absent and
raise CodecError if the stored value has a different type.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from nfc_nft.address import Address
from nfc_nft.encoding import xdr

from .journal import Journal

T = TypeVar("T")


class Storage:
    def __init__(self, journal: Journal) -> None:
        self._j = journal

    def has(self, key: bytes) -> bool:
        return self._j.has(key)

    def remove(self, key: bytes) -> None:
        self._j.delete(key)

    def _get(self, key: bytes, decode: Callable[[bytes], T], default: Optional[T]) -> Optional[T]:
        raw = self._j.get(key)
        if raw is None:
            return default
        return decode(raw)

    # ---- typed accessors ---- #

    def get_u32(self, key: bytes, default: Optional[int] = None) -> Optional[int]:
        return self._get(key, xdr.decode_u32, default)

    def set_u32(self, key: bytes, value: int) -> None:
        self._j.set(key, xdr.encode_u32(value))

    def get_bytes(self, key: bytes, default: Optional[bytes] = None) -> Optional[bytes]:
        return self._get(key, xdr.decode_bytes, default)

    def set_bytes(self, key: bytes, value: bytes) -> None:
        self._j.set(key, xdr.encode_bytes(value))

    def get_string(self, key: bytes, default: Optional[str] = None) -> Optional[str]:
        return self._get(key, xdr.decode_string, default)

    def set_string(self, key: bytes, value: str) -> None:
        self._j.set(key, xdr.encode_string(value))

    def get_address(self, key: bytes, default: Optional[Address] = None) -> Optional[Address]:
        return self._get(key, xdr.decode_address, default)

    def set_address(self, key: bytes, value: Address) -> None:
        self._j.set(key, xdr.encode_address(value))

    def get_bool(self, key: bytes, default: bool = False) -> bool:
        return bool(self._get(key, xdr.decode_bool, default))

    def set_bool(self, key: bytes, value: bool) -> None:
        self._j.set(key, xdr.encode_bool(value))


__all__ = ["Storage"]
