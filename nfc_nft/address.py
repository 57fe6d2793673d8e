"""
nfc_nft.address — ledger identities (accounts and contracts).

An Address is a (kind, 32-byte payload) pair. Accounts are ed25519-keyed
wallets ('G...' strkeys); contracts are ledger-deployed code ('C...').
Token owners, claimants, the admin and the contract's own holding address are
all Addresses. Chip public keys are NOT addresses: they are raw 65-byte
secp256k1 points handled by the contract layer.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from nfc_nft.encoding import strkey
from nfc_nft.errors import CodecError


class AddressKind(IntEnum):
    ACCOUNT = 0
    CONTRACT = 1


_VERSION_BY_KIND = {
    AddressKind.ACCOUNT: strkey.VERSION_ACCOUNT,
    AddressKind.CONTRACT: strkey.VERSION_CONTRACT,
}
_KIND_BY_VERSION = {v: k for k, v in _VERSION_BY_KIND.items()}


@dataclass(frozen=True)
class Address:
    kind: AddressKind
    payload: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", AddressKind(self.kind))
        if not isinstance(self.payload, (bytes, bytearray)) or len(self.payload) != 32:
            raise CodecError("address payload must be 32 bytes")
        object.__setattr__(self, "payload", bytes(self.payload))

    # ---- constructors ---- #

    @classmethod
    def account(cls, payload: bytes) -> "Address":
        return cls(AddressKind.ACCOUNT, payload)

    @classmethod
    def contract(cls, payload: bytes) -> "Address":
        return cls(AddressKind.CONTRACT, payload)

    @classmethod
    def from_strkey(cls, s: str) -> "Address":
        version, payload = strkey.decode(s)
        return cls(_KIND_BY_VERSION[version], payload)

    @classmethod
    def from_seed(cls, seed: Union[str, bytes], kind: AddressKind = AddressKind.ACCOUNT) -> "Address":
        """Deterministic address from a label; for fixtures and local tooling."""
        if isinstance(seed, str):
            seed = seed.encode("utf-8")
        return cls(kind, hashlib.sha256(b"nfc-nft/address|" + bytes(seed)).digest())

    @classmethod
    def parse(cls, value: Union["Address", str]) -> "Address":
        if isinstance(value, Address):
            return value
        if isinstance(value, str):
            return cls.from_strkey(value.strip())
        raise CodecError(f"cannot interpret {type(value).__name__} as an address")

    # ---- views ---- #

    @property
    def is_contract(self) -> bool:
        return self.kind is AddressKind.CONTRACT

    def to_strkey(self) -> str:
        return strkey.encode(_VERSION_BY_KIND[self.kind], self.payload)

    def __str__(self) -> str:
        return self.to_strkey()

    def __repr__(self) -> str:
        s = self.to_strkey()
        return f"Address({s[:4]}…{s[-4:]})"


__all__ = ["Address", "AddressKind"]
