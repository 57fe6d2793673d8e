"""Unsigned integer → ASCII decimal bytes, for token URI synthesis."""

from __future__ import annotations

from nfc_nft.errors import ContractError, NonFungibleTokenError

U32_MAX = (1 << 32) - 1
U64_MAX = (1 << 64) - 1

_DIGITS = b"0123456789"


def _to_decimal(value: int, limit: int) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= limit:
        raise ContractError(NonFungibleTokenError.InvalidArgument, "value out of range", value=repr(value))
    if value == 0:
        return b"0"
    out = bytearray()
    while value:
        value, digit = divmod(value, 10)
        out.append(_DIGITS[digit])
    out.reverse()
    return bytes(out)


def u32_to_decimal_bytes(value: int) -> bytes:
    return _to_decimal(value, U32_MAX)


def u64_to_decimal_bytes(value: int) -> bytes:
    return _to_decimal(value, U64_MAX)


__all__ = ["u32_to_decimal_bytes", "u64_to_decimal_bytes"]
