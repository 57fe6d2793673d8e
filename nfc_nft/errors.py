"""
nfc_nft.errors — exceptions for the chip-bound token ledger.

Hierarchy
---------
NftError (base)
 ├─ ContractError       : a named token-contract failure (see NonFungibleTokenError)
 ├─ AuthorizationError  : an address did not authorize the current invocation
 ├─ CryptoError         : malformed signature / digest / recovery selector
 ├─ CodecError          : XDR or strkey encoding/decoding failure
 ├─ StorageError        : KV backend / journal misuse
 ├─ HostError           : invocation-model violations (nested calls, ...)
 └─ ConfigError         : invalid configuration

Every failure aborts the enclosing invocation: state writes and buffered events
of that call are discarded before the exception reaches the caller. Nothing in
this package retries.

These classes avoid importing other package modules so they can be used from
low-level code (codecs, KV backends) without cycles.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Mapping, Optional


class NonFungibleTokenError(IntEnum):
    """Contract error codes. Values are the stable wire codes."""

    # Contract lifecycle
    AlreadyInitialized = 1
    NotInitialized = 2
    InvalidArgument = 3

    # Token semantics
    NonExistentToken = 200
    IncorrectOwner = 201
    TokenIDsAreDepleted = 206
    TokenAlreadyMinted = 210
    TokenAlreadyClaimed = 212
    InvalidSignature = 214
    TokenNotClaimed = 215


def _coerce_json(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Mapping):
        return {str(k): _coerce_json(x) for k, x in v.items()}
    if isinstance(v, (list, tuple, set)):
        return [_coerce_json(x) for x in v]
    return str(v)


class NftError(Exception):
    """
    Root error.

    Attributes:
        code:    Stable machine code string (e.g. 'CONTRACT/InvalidSignature').
        message: Human-readable explanation.
        data:    Optional structured details (JSON-safe after to_dict()).
    """

    default_code = "NFT/ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.code = code or self.default_code
        self.message = message or self.code
        self.data: Dict[str, Any] = dict(data or {})
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.data:
            preview = ", ".join(f"{k}={_coerce_json(v)}" for k, v in self.data.items())
            return f"{self.code}: {self.message} [{preview}]"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data:
            out["data"] = _coerce_json(self.data)
        return out


class ContractError(NftError):
    """
    A named contract failure.

    `kind` is the NonFungibleTokenError member; tests and callers should
    branch on it rather than on the message text.
    """

    def __init__(
        self,
        kind: NonFungibleTokenError,
        message: str = "",
        **data: Any,
    ) -> None:
        self.kind = NonFungibleTokenError(kind)
        super().__init__(
            message or self.kind.name,
            code=f"CONTRACT/{self.kind.name}",
            data=data,
        )

    @property
    def wire_code(self) -> int:
        return int(self.kind)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["wire_code"] = self.wire_code
        return out


class AuthorizationError(NftError):
    default_code = "HOST/AUTH_REQUIRED"

    def __init__(self, address: Any, message: str = "authorization required") -> None:
        super().__init__(message, data={"address": str(address)})
        self.address = address


class CryptoError(NftError):
    default_code = "HOST/CRYPTO"


class CodecError(NftError):
    default_code = "HOST/CODEC"


class StorageError(NftError):
    default_code = "HOST/STORAGE"


class HostError(NftError):
    default_code = "HOST/INVOCATION"


class ConfigError(NftError):
    default_code = "CONFIG/INVALID"


__all__ = [
    "NonFungibleTokenError",
    "NftError",
    "ContractError",
    "AuthorizationError",
    "CryptoError",
    "CodecError",
    "StorageError",
    "HostError",
    "ConfigError",
]
