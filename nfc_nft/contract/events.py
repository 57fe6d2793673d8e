"""Contract notifications (fire-and-forget; published only if the call commits)."""

from __future__ import annotations

from nfc_nft.address import Address
from nfc_nft.runtime.env import Env

MINT = "mint"
CLAIM = "claim"
TRANSFER = "transfer"
CLAWBACK = "clawback"
UPGRADE = "upgrade"


def mint(env: Env, token_id: int, public_key: bytes) -> None:
    env.events.emit(MINT, (token_id,), public_key)


def claim(env: Env, claimant: Address, token_id: int) -> None:
    env.events.emit(CLAIM, (claimant,), token_id)


def transfer(env: Env, from_: Address, to: Address, token_id: int) -> None:
    env.events.emit(TRANSFER, (from_, to), token_id)


def clawback(env: Env, from_: Address, token_id: int) -> None:
    env.events.emit(CLAWBACK, (from_,), token_id)


def upgrade(env: Env, admin: Address, wasm_hash: bytes) -> None:
    env.events.emit(UPGRADE, (admin,), wasm_hash)
