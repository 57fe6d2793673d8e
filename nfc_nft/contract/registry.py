"""
Chip identity registry: the bijection public_key ↔ token_id.

Two plain maps (pk → id, id → pk) written together inside the caller's
invocation, plus the dense id counter bounded by `max_tokens`. `register` is
the only writer.
"""

from __future__ import annotations

from nfc_nft.errors import ContractError, NonFungibleTokenError
from nfc_nft.runtime.env import Env

from . import keys


def next_token_id(env: Env) -> int:
    return env.storage.get_u32(keys.NEXT_TOKEN_ID, 0)


def register(env: Env, public_key: bytes, max_tokens: int) -> int:
    counter = next_token_id(env)
    if counter >= max_tokens:
        raise ContractError(
            NonFungibleTokenError.TokenIDsAreDepleted, next_token_id=counter, max_tokens=max_tokens
        )
    if env.storage.has(keys.token_id(public_key)):
        raise ContractError(
            NonFungibleTokenError.TokenAlreadyMinted,
            token_id=env.storage.get_u32(keys.token_id(public_key)),
        )
    env.storage.set_u32(keys.token_id(public_key), counter)
    env.storage.set_bytes(keys.public_key(counter), public_key)
    env.storage.set_u32(keys.NEXT_TOKEN_ID, counter + 1)
    return counter


def token_id_of(env: Env, public_key: bytes) -> int:
    tid = env.storage.get_u32(keys.token_id(public_key))
    if tid is None:
        raise ContractError(NonFungibleTokenError.NonExistentToken, public_key=public_key)
    return tid


def public_key_of(env: Env, token_id: int) -> bytes:
    pk = env.storage.get_bytes(keys.public_key(token_id))
    if pk is None:
        raise ContractError(NonFungibleTokenError.NonExistentToken, token_id=token_id)
    return pk


def exists(env: Env, token_id: int) -> bool:
    return env.storage.has(keys.public_key(token_id))


__all__ = ["register", "token_id_of", "public_key_of", "next_token_id", "exists"]
