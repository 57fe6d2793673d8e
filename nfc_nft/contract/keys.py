"""
Storage key layout for the token contract.

Instance namespace (collection-wide):
    admin, name, symbol, uri, max_tokens, next_id, wasm_hash

Persistent namespace (per chip / token / owner):
    nonce|<pk65>        u32   last accepted nonce of a chip
    token_id|<pk65>     u32   chip → token id
    pk|<be32 id>        bytes token id → chip
    owner|<be32 id>     addr  current owner (absent while unclaimed)
    balance|<addr>      u32   tokens held
    clawed|<be32 id>    bool  quarantine flag
"""

from __future__ import annotations

from nfc_nft.address import Address
from nfc_nft.db.kv import INSTANCE, PERSISTENT, be_u32

ADMIN = INSTANCE.key(b"admin")
NAME = INSTANCE.key(b"name")
SYMBOL = INSTANCE.key(b"symbol")
URI = INSTANCE.key(b"uri")
MAX_TOKENS = INSTANCE.key(b"max_tokens")
NEXT_TOKEN_ID = INSTANCE.key(b"next_id")
WASM_HASH = INSTANCE.key(b"wasm_hash")


def nonce(public_key: bytes) -> bytes:
    return PERSISTENT.key(b"nonce", public_key)


def token_id(public_key: bytes) -> bytes:
    return PERSISTENT.key(b"token_id", public_key)


def public_key(token_id: int) -> bytes:
    return PERSISTENT.key(b"pk", be_u32(token_id))


def owner(token_id: int) -> bytes:
    return PERSISTENT.key(b"owner", be_u32(token_id))


def balance(address: Address) -> bytes:
    return PERSISTENT.key(b"balance", bytes([int(address.kind)]), address.payload)


def clawed(token_id: int) -> bytes:
    return PERSISTENT.key(b"clawed", be_u32(token_id))
