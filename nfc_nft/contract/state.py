"""
Ledger state aggregate: the admin identity and collection metadata, with an
explicit load / initialize / persist lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from nfc_nft.address import Address
from nfc_nft.errors import ContractError, NonFungibleTokenError
from nfc_nft.runtime.env import Env

from . import keys

U32_MAX = (1 << 32) - 1


@dataclass(frozen=True)
class LedgerState:
    admin: Address
    name: str
    symbol: str
    base_uri: str
    max_tokens: int
    code_hash: Optional[bytes] = None

    @classmethod
    def is_initialized(cls, env: Env) -> bool:
        return env.storage.has(keys.ADMIN)

    @classmethod
    def load(cls, env: Env) -> "LedgerState":
        admin = env.storage.get_address(keys.ADMIN)
        if admin is None:
            raise ContractError(NonFungibleTokenError.NotInitialized, "contract is not initialized")
        return cls(
            admin=admin,
            name=env.storage.get_string(keys.NAME, ""),
            symbol=env.storage.get_string(keys.SYMBOL, ""),
            base_uri=env.storage.get_string(keys.URI, ""),
            max_tokens=env.storage.get_u32(keys.MAX_TOKENS, 0),
            code_hash=env.storage.get_bytes(keys.WASM_HASH),
        )

    @classmethod
    def initialize(
        cls, env: Env, admin: Address, name: str, symbol: str, base_uri: str, max_tokens: int
    ) -> "LedgerState":
        if cls.is_initialized(env):
            raise ContractError(NonFungibleTokenError.AlreadyInitialized, "contract already initialized")
        if not isinstance(admin, Address):
            raise ContractError(NonFungibleTokenError.InvalidArgument, "admin must be an Address")
        for field_name, value in (("name", name), ("symbol", symbol), ("uri", base_uri)):
            if not isinstance(value, str):
                raise ContractError(NonFungibleTokenError.InvalidArgument, f"{field_name} must be a string")
        if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or not 0 <= max_tokens <= U32_MAX:
            raise ContractError(
                NonFungibleTokenError.InvalidArgument, "max_tokens must be a u32", max_tokens=repr(max_tokens)
            )
        state = cls(admin, name, symbol, base_uri, max_tokens)
        state.persist(env)
        return state

    def with_code_hash(self, code_hash: bytes) -> "LedgerState":
        return replace(self, code_hash=bytes(code_hash))

    def persist(self, env: Env) -> None:
        env.storage.set_address(keys.ADMIN, self.admin)
        env.storage.set_string(keys.NAME, self.name)
        env.storage.set_string(keys.SYMBOL, self.symbol)
        env.storage.set_string(keys.URI, self.base_uri)
        env.storage.set_u32(keys.MAX_TOKENS, self.max_tokens)
        if self.code_hash is not None:
            env.storage.set_bytes(keys.WASM_HASH, self.code_hash)


__all__ = ["LedgerState"]
