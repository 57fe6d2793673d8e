"""
NFCtoNFT — chip-bound non-fungible token contract
=================================================

Each token is bound to one physical NFC chip (a secp256k1 key pair that never
leaves the chip). The chip co-signs every ownership change:

    Unminted ──mint──▶ Minted ──claim──▶ Claimed(X) ──transfer──▶ Claimed(Y) ...
                                             │
                                             └──clawback──▶ ClawedBack (terminal)

- mint      admin-authorized + chip proof bound to the admin   → new dense token id
- claim     claimant-authorized + chip proof bound to claimant → owner := claimant
- transfer  from-authorized + proof from the token's own chip  → owner := to
- clawback  admin-authorized, no chip                          → owner := contract address

Every public method runs as one invocation of the host `Env`: if anything
fails (signature, nonce, ownership, capacity, existence, authorization) the
whole call is reverted, including the consumed nonce, and no events are
published.

Usage
-----
    env = Env(kv).mock_all_auths()
    nft = NFCtoNFT(env)
    nft.initialize(admin, "Chimp", "CHMP", "ipfs://abcd", 10_000)
    tid = nft.mint(message, sig64, recid, public_key, nonce=1)
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from nfc_nft.address import Address
from nfc_nft.errors import CodecError, ContractError, NonFungibleTokenError
from nfc_nft.logging import get_logger
from nfc_nft.runtime.env import Env

from . import events, guard, keys, registry
from .decimal import u32_to_decimal_bytes
from .state import LedgerState

log = get_logger("contract.nft")

U32_MAX = (1 << 32) - 1
WASM_HASH_LEN = 32

AddressLike = Union[Address, str]


class TokenState(str, Enum):
    UNMINTED = "unminted"
    MINTED = "minted"
    CLAIMED = "claimed"
    CLAWED_BACK = "clawed_back"


def _address(value: AddressLike, name: str) -> Address:
    try:
        return Address.parse(value)
    except CodecError as exc:
        raise ContractError(NonFungibleTokenError.InvalidArgument, f"{name} is not a valid address") from exc


def _u32(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U32_MAX:
        raise ContractError(NonFungibleTokenError.InvalidArgument, f"{name} must be a u32", **{name: repr(value)})
    return value


class NFCtoNFT:
    """The token contract bound to one `Env` (one deployment)."""

    def __init__(self, env: Env) -> None:
        self.env = env

    @property
    def address(self) -> Address:
        return self.env.contract_address

    # ------------------------------------------------------------------ #
    # Lifecycle / admin
    # ------------------------------------------------------------------ #

    def initialize(self, admin: AddressLike, name: str, symbol: str, uri: str, max_tokens: int) -> None:
        with self.env.invoke("initialize") as env:
            state = LedgerState.initialize(env, _address(admin, "admin"), name, symbol, uri, max_tokens)
            log.info("collection initialized", extra={"admin": state.admin, "max_tokens": state.max_tokens})

    def upgrade(self, wasm_hash: bytes) -> None:
        with self.env.invoke("upgrade") as env:
            state = LedgerState.load(env)
            env.auth.require_auth(state.admin)
            if not isinstance(wasm_hash, (bytes, bytearray)) or len(wasm_hash) != WASM_HASH_LEN:
                raise ContractError(NonFungibleTokenError.InvalidArgument, "wasm hash must be 32 bytes")
            state.with_code_hash(bytes(wasm_hash)).persist(env)
            events.upgrade(env, state.admin, bytes(wasm_hash))

    def code_hash(self) -> bytes:
        with self.env.invoke("code_hash") as env:
            state = LedgerState.load(env)
            return state.code_hash or b""

    # ------------------------------------------------------------------ #
    # Token lifecycle
    # ------------------------------------------------------------------ #

    def mint(self, message: bytes, signature: bytes, recovery_id: int, public_key: bytes, nonce: int) -> int:
        with self.env.invoke("mint") as env:
            state = LedgerState.load(env)
            env.auth.require_auth(state.admin)
            guard.verify(env, state.admin, message, signature, recovery_id, public_key, nonce)
            token_id = registry.register(env, bytes(public_key), state.max_tokens)
            events.mint(env, token_id, bytes(public_key))
            return token_id

    def claim(
        self,
        claimant: AddressLike,
        message: bytes,
        signature: bytes,
        recovery_id: int,
        public_key: bytes,
        nonce: int,
    ) -> int:
        with self.env.invoke("claim") as env:
            LedgerState.load(env)
            who = _address(claimant, "claimant")
            env.auth.require_auth(who)
            guard.verify(env, who, message, signature, recovery_id, public_key, nonce)

            token_id = registry.token_id_of(env, bytes(public_key))
            if env.storage.has(keys.owner(token_id)):
                raise ContractError(NonFungibleTokenError.TokenAlreadyClaimed, token_id=token_id)

            env.storage.set_address(keys.owner(token_id), who)
            self._add_balance(who, 1)
            events.claim(env, who, token_id)
            return token_id

    def transfer(
        self,
        from_: AddressLike,
        to: AddressLike,
        token_id: int,
        message: bytes,
        signature: bytes,
        recovery_id: int,
        public_key: bytes,
        nonce: int,
    ) -> None:
        with self.env.invoke("transfer") as env:
            LedgerState.load(env)
            sender = _address(from_, "from")
            recipient = _address(to, "to")
            tid = _u32(token_id, "token_id")
            env.auth.require_auth(sender)

            bound_key = registry.public_key_of(env, tid)
            owner = env.storage.get_address(keys.owner(tid))
            if owner is None:
                raise ContractError(NonFungibleTokenError.TokenNotClaimed, token_id=tid)
            if owner != sender or env.storage.get_bool(keys.clawed(tid)):
                raise ContractError(NonFungibleTokenError.IncorrectOwner, token_id=tid, owner=owner, from_=sender)
            if guard.check_public_key(public_key) != bound_key:
                raise ContractError(
                    NonFungibleTokenError.InvalidSignature,
                    "public key is not bound to this token",
                    reason="chip mismatch",
                    token_id=tid,
                )
            guard.verify(env, sender, message, signature, recovery_id, public_key, nonce)

            self._add_balance(sender, -1)
            self._add_balance(recipient, 1)
            env.storage.set_address(keys.owner(tid), recipient)
            events.transfer(env, sender, recipient, tid)

    def clawback(self, token_id: int) -> None:
        with self.env.invoke("clawback") as env:
            state = LedgerState.load(env)
            env.auth.require_auth(state.admin)
            tid = _u32(token_id, "token_id")
            if not registry.exists(env, tid):
                raise ContractError(NonFungibleTokenError.NonExistentToken, token_id=tid)
            if env.storage.get_bool(keys.clawed(tid)):
                raise ContractError(NonFungibleTokenError.TokenNotClaimed, token_id=tid, state=TokenState.CLAWED_BACK.value)
            owner = env.storage.get_address(keys.owner(tid))
            if owner is None:
                raise ContractError(NonFungibleTokenError.TokenNotClaimed, token_id=tid, state=TokenState.MINTED.value)

            self._add_balance(owner, -1)
            env.storage.set_address(keys.owner(tid), env.contract_address)
            env.storage.set_bool(keys.clawed(tid), True)
            events.clawback(env, owner, tid)
            log.info("token clawed back", extra={"token_id": tid, "from": owner})

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_nonce(self, public_key: bytes) -> int:
        with self.env.invoke("get_nonce") as env:
            LedgerState.load(env)
            return guard.get_nonce(env, guard.check_public_key(public_key))

    def balance(self, owner: AddressLike) -> int:
        with self.env.invoke("balance") as env:
            LedgerState.load(env)
            return env.storage.get_u32(keys.balance(_address(owner, "owner")), 0)

    def owner_of(self, token_id: int) -> Address:
        with self.env.invoke("owner_of") as env:
            LedgerState.load(env)
            tid = _u32(token_id, "token_id")
            owner = env.storage.get_address(keys.owner(tid))
            if owner is None:
                raise ContractError(NonFungibleTokenError.NonExistentToken, token_id=tid)
            return owner

    def name(self) -> str:
        with self.env.invoke("name") as env:
            return LedgerState.load(env).name

    def symbol(self) -> str:
        with self.env.invoke("symbol") as env:
            return LedgerState.load(env).symbol

    def base_uri(self) -> str:
        with self.env.invoke("base_uri") as env:
            return LedgerState.load(env).base_uri

    def max_tokens(self) -> int:
        with self.env.invoke("max_tokens") as env:
            return LedgerState.load(env).max_tokens

    def admin(self) -> Address:
        with self.env.invoke("admin") as env:
            return LedgerState.load(env).admin

    def token_uri(self, token_id: int) -> str:
        with self.env.invoke("token_uri") as env:
            state = LedgerState.load(env)
            tid = _u32(token_id, "token_id")
            if not registry.exists(env, tid):
                raise ContractError(NonFungibleTokenError.NonExistentToken, token_id=tid)
            return state.base_uri + "/" + u32_to_decimal_bytes(tid).decode("ascii")

    def token_id(self, public_key: bytes) -> int:
        with self.env.invoke("token_id") as env:
            LedgerState.load(env)
            return registry.token_id_of(env, guard.check_public_key(public_key))

    def next_token_id(self) -> int:
        with self.env.invoke("next_token_id") as env:
            LedgerState.load(env)
            return registry.next_token_id(env)

    def public_key(self, token_id: int) -> bytes:
        with self.env.invoke("public_key") as env:
            LedgerState.load(env)
            return registry.public_key_of(env, _u32(token_id, "token_id"))

    def token_state(self, token_id: int) -> TokenState:
        with self.env.invoke("token_state") as env:
            LedgerState.load(env)
            tid = _u32(token_id, "token_id")
            if not registry.exists(env, tid):
                return TokenState.UNMINTED
            if env.storage.get_bool(keys.clawed(tid)):
                return TokenState.CLAWED_BACK
            if env.storage.has(keys.owner(tid)):
                return TokenState.CLAIMED
            return TokenState.MINTED

    # ------------------------------------------------------------------ #
    # Internals (run inside an open invocation)
    # ------------------------------------------------------------------ #

    def _add_balance(self, owner: Address, delta: int) -> None:
        key = keys.balance(owner)
        current = self.env.storage.get_u32(key, 0)
        updated = current + delta
        if not 0 <= updated <= U32_MAX:
            raise ContractError(
                NonFungibleTokenError.InvalidArgument, "balance out of range", owner=owner, balance=current
            )
        self.env.storage.set_u32(key, updated)


__all__ = ["NFCtoNFT", "TokenState"]
