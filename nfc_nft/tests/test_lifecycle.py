"""
Token lifecycle: mint → claim → transfer / clawback, plus queries.
"""

from __future__ import annotations

import threading

import pytest

from nfc_nft.contract import NFCtoNFT, TokenState
from nfc_nft.errors import AuthorizationError, ContractError, NonFungibleTokenError as E
from nfc_nft.runtime.env import Env

from .conftest import BASE_URI, MAX_TOKENS, NAME, SYMBOL


def _kind(ei):
    return ei.value.kind


# ---------------------------------------------------------------------------
# initialize / metadata
# ---------------------------------------------------------------------------


def test_metadata(nft, admin):
    assert nft.name() == NAME
    assert nft.symbol() == SYMBOL
    assert nft.base_uri() == BASE_URI
    assert nft.max_tokens() == MAX_TOKENS
    assert nft.admin() == admin
    assert nft.next_token_id() == 0


def test_initialize_once(nft, admin):
    with pytest.raises(ContractError) as ei:
        nft.initialize(admin, "x", "y", "z", 1)
    assert _kind(ei) is E.AlreadyInitialized
    assert nft.name() == NAME


def test_uninitialized_calls_fail(env):
    nft = NFCtoNFT(env)
    for call in (nft.name, nft.next_token_id, lambda: nft.balance(env.contract_address)):
        with pytest.raises(ContractError) as ei:
            call()
        assert _kind(ei) is E.NotInitialized


def test_initialize_validates_max_tokens(env, admin):
    with pytest.raises(ContractError) as ei:
        NFCtoNFT(env).initialize(admin, "n", "s", "u", 2**32)
    assert _kind(ei) is E.InvalidArgument


def test_initialize_accepts_strkey_admin(env, admin):
    nft = NFCtoNFT(env)
    nft.initialize(str(admin), "n", "s", "u", 5)
    assert nft.admin() == admin


# ---------------------------------------------------------------------------
# mint
# ---------------------------------------------------------------------------


def test_mint_leaves_token_unclaimed(nft, minted, chip_a, env):
    assert minted == 0
    assert nft.token_state(0) is TokenState.MINTED
    assert nft.public_key(0) == chip_a.public_key
    assert nft.token_id(chip_a.public_key) == 0
    assert nft.token_uri(0) == "ipfs://abcd/0"
    assert nft.get_nonce(chip_a.public_key) == 1
    with pytest.raises(ContractError) as ei:
        nft.owner_of(0)
    assert _kind(ei) is E.NonExistentToken

    ev = env.events.named("mint")[-1]
    assert ev.topics == (0,)
    assert ev.data == chip_a.public_key


def test_mint_same_chip_twice(nft, minted, admin, chip_a, sign):
    with pytest.raises(ContractError) as ei:
        nft.mint(*sign(chip_a, admin, 2).as_args())
    assert _kind(ei) is E.TokenAlreadyMinted
    # whole call reverted, nonce 2 still available
    assert nft.get_nonce(chip_a.public_key) == 1


def test_mint_signature_must_bind_admin(nft, claimant, chip_a, sign):
    with pytest.raises(ContractError) as ei:
        nft.mint(*sign(chip_a, claimant, 1).as_args())
    assert _kind(ei) is E.InvalidSignature
    assert nft.next_token_id() == 0


def test_mint_requires_admin_auth(kv, admin, chip_a, sign):
    env = Env(kv)
    nft = NFCtoNFT(env)
    nft.initialize(admin, NAME, SYMBOL, BASE_URI, MAX_TOKENS)
    with pytest.raises(AuthorizationError):
        nft.mint(*sign(chip_a, admin, 1).as_args())
    with env.auth.authorize(admin):
        assert nft.mint(*sign(chip_a, admin, 1).as_args()) == 0
    assert env.auth.checked()[-1] == admin


def test_authorization_scope_is_thread_local(kv, admin, chip_a, sign):
    env = Env(kv)
    nft = NFCtoNFT(env)
    nft.initialize(admin, NAME, SYMBOL, BASE_URI, MAX_TOKENS)
    entered, release = threading.Event(), threading.Event()

    def hold_admin_scope():
        with env.auth.authorize(admin):
            entered.set()
            release.wait(5)

    t = threading.Thread(target=hold_admin_scope)
    t.start()
    try:
        assert entered.wait(5)
        assert not env.auth.is_authorized(admin)
        with pytest.raises(AuthorizationError):
            nft.mint(*sign(chip_a, admin, 1).as_args())
    finally:
        release.set()
        t.join(5)
    assert nft.next_token_id() == 0
    assert nft.get_nonce(chip_a.public_key) == 0


def test_token_uri_and_queries_for_unknown_token(nft):
    assert nft.token_state(7) is TokenState.UNMINTED
    for call in (lambda: nft.token_uri(7), lambda: nft.public_key(7), lambda: nft.owner_of(7)):
        with pytest.raises(ContractError) as ei:
            call()
        assert _kind(ei) is E.NonExistentToken


# ---------------------------------------------------------------------------
# claim
# ---------------------------------------------------------------------------


def test_claim(nft, claimed, claimant, env):
    assert claimed == 0
    assert nft.owner_of(0) == claimant
    assert nft.balance(claimant) == 1
    assert nft.token_state(0) is TokenState.CLAIMED
    ev = env.events.named("claim")[-1]
    assert ev.topics == (claimant,) and ev.data == 0


def test_claim_twice(nft, claimed, recipient, chip_a, sign):
    with pytest.raises(ContractError) as ei:
        nft.claim(recipient, *sign(chip_a, recipient, 3).as_args())
    assert _kind(ei) is E.TokenAlreadyClaimed
    assert nft.balance(recipient) == 0
    assert nft.get_nonce(chip_a.public_key) == 2


def test_claim_never_minted(nft, claimant, chip_b, sign):
    with pytest.raises(ContractError) as ei:
        nft.claim(claimant, *sign(chip_b, claimant, 1).as_args())
    assert _kind(ei) is E.NonExistentToken
    assert nft.get_nonce(chip_b.public_key) == 0


def test_claim_signature_bound_to_claimant(nft, minted, claimant, recipient, chip_a, sign):
    proof = sign(chip_a, claimant, 2)
    with pytest.raises(ContractError) as ei:
        nft.claim(recipient, *proof.as_args())
    assert _kind(ei) is E.InvalidSignature


def test_claim_replaying_mint_nonce(nft, minted, claimant, chip_a, sign):
    with pytest.raises(ContractError) as ei:
        nft.claim(claimant, *sign(chip_a, claimant, 1).as_args())
    assert _kind(ei) is E.InvalidSignature


# ---------------------------------------------------------------------------
# transfer
# ---------------------------------------------------------------------------


def test_transfer(nft, claimed, claimant, recipient, chip_a, sign, env):
    nft.transfer(claimant, recipient, 0, *sign(chip_a, claimant, 3).as_args())
    assert nft.owner_of(0) == recipient
    assert nft.balance(claimant) == 0
    assert nft.balance(recipient) == 1
    ev = env.events.named("transfer")[-1]
    assert ev.topics == (claimant, recipient) and ev.data == 0


def test_transfer_by_non_owner_with_valid_signature(nft, claimed, recipient, admin, chip_a, sign):
    # chip signature is valid for `recipient`, but recipient does not own the token
    with pytest.raises(ContractError) as ei:
        nft.transfer(recipient, admin, 0, *sign(chip_a, recipient, 3).as_args())
    assert _kind(ei) is E.IncorrectOwner


def test_transfer_by_non_owner_with_garbage_signature(nft, claimed, recipient, admin, chip_a):
    with pytest.raises(ContractError) as ei:
        nft.transfer(recipient, admin, 0, b"m", b"\x00" * 64, 0, chip_a.public_key, 9)
    assert _kind(ei) is E.IncorrectOwner


def test_transfer_with_other_chip(nft, claimed, claimant, recipient, admin, chip_b, sign):
    nft.mint(*sign(chip_b, admin, 1).as_args())
    with pytest.raises(ContractError) as ei:
        nft.transfer(claimant, recipient, 0, *sign(chip_b, claimant, 2).as_args())
    assert _kind(ei) is E.InvalidSignature
    assert nft.owner_of(0) == claimant
    assert nft.get_nonce(chip_b.public_key) == 1


def test_transfer_nonce_replay(nft, claimed, claimant, recipient, chip_a, sign):
    proof = sign(chip_a, claimant, 3)
    nft.transfer(claimant, recipient, 0, *proof.as_args())
    nft.transfer(recipient, claimant, 0, *sign(chip_a, recipient, 4).as_args())
    with pytest.raises(ContractError) as ei:
        nft.transfer(claimant, recipient, 0, *proof.as_args())
    assert _kind(ei) is E.InvalidSignature
    assert nft.owner_of(0) == claimant


def test_transfer_unclaimed(nft, minted, claimant, recipient, chip_a, sign):
    with pytest.raises(ContractError) as ei:
        nft.transfer(claimant, recipient, 0, *sign(chip_a, claimant, 2).as_args())
    assert _kind(ei) is E.TokenNotClaimed


def test_transfer_unknown_token(nft, claimant, recipient, chip_a, sign):
    with pytest.raises(ContractError) as ei:
        nft.transfer(claimant, recipient, 3, *sign(chip_a, claimant, 1).as_args())
    assert _kind(ei) is E.NonExistentToken


def test_transfer_to_self_keeps_balance(nft, claimed, claimant, chip_a, sign):
    nft.transfer(claimant, claimant, 0, *sign(chip_a, claimant, 3).as_args())
    assert nft.balance(claimant) == 1
    assert nft.owner_of(0) == claimant


# ---------------------------------------------------------------------------
# clawback
# ---------------------------------------------------------------------------


def test_clawback(nft, claimed, claimant, env):
    nft.clawback(0)
    assert nft.token_state(0) is TokenState.CLAWED_BACK
    assert nft.owner_of(0) == env.contract_address
    assert nft.balance(claimant) == 0
    assert nft.balance(env.contract_address) == 0
    ev = env.events.named("clawback")[-1]
    assert ev.topics == (claimant,) and ev.data == 0


def test_clawback_is_terminal(nft, claimed, claimant, recipient, chip_a, sign, env):
    nft.clawback(0)

    with pytest.raises(ContractError) as ei:
        nft.clawback(0)
    assert _kind(ei) is E.TokenNotClaimed

    with pytest.raises(ContractError) as ei:
        nft.claim(recipient, *sign(chip_a, recipient, 3).as_args())
    assert _kind(ei) is E.TokenAlreadyClaimed

    with pytest.raises(ContractError) as ei:
        nft.transfer(claimant, recipient, 0, *sign(chip_a, claimant, 3).as_args())
    assert _kind(ei) is E.IncorrectOwner

    with pytest.raises(ContractError) as ei:
        nft.transfer(env.contract_address, recipient, 0, *sign(chip_a, env.contract_address, 3).as_args())
    assert _kind(ei) is E.IncorrectOwner


def test_clawback_unclaimed_and_unknown(nft, minted):
    with pytest.raises(ContractError) as ei:
        nft.clawback(0)
    assert _kind(ei) is E.TokenNotClaimed
    with pytest.raises(ContractError) as ei:
        nft.clawback(1)
    assert _kind(ei) is E.NonExistentToken


def test_clawback_requires_admin(kv, admin, claimant, chip_a, sign):
    env = Env(kv).mock_all_auths()
    nft = NFCtoNFT(env)
    nft.initialize(admin, NAME, SYMBOL, BASE_URI, MAX_TOKENS)
    nft.mint(*sign(chip_a, admin, 1).as_args())
    nft.claim(claimant, *sign(chip_a, claimant, 2).as_args())

    env.auth.mock_all_auths(False)
    with env.auth.authorize(claimant):
        with pytest.raises(AuthorizationError):
            nft.clawback(0)
    assert nft.owner_of(0) == claimant


# ---------------------------------------------------------------------------
# upgrade
# ---------------------------------------------------------------------------


def test_upgrade(nft, admin, env):
    assert nft.code_hash() == b""
    nft.upgrade(b"\x11" * 32)
    assert nft.code_hash() == b"\x11" * 32
    ev = env.events.named("upgrade")[-1]
    assert ev.topics == (admin,) and ev.data == b"\x11" * 32
    assert nft.name() == NAME


def test_upgrade_rejects_bad_hash(nft):
    with pytest.raises(ContractError) as ei:
        nft.upgrade(b"\x11" * 31)
    assert _kind(ei) is E.InvalidArgument


# ---------------------------------------------------------------------------
# invariants
# ---------------------------------------------------------------------------


def test_failed_calls_publish_no_events(nft, minted, admin, chip_a, sign, env):
    before = len(env.events.all())
    with pytest.raises(ContractError):
        nft.mint(*sign(chip_a, admin, 2).as_args())
    assert len(env.events.all()) == before


def test_balances_sum_to_claimed_count(nft, admin, env, sign):
    from nfc_nft.address import Address
    from nfc_nft.tools.sigtools import SoftwareChip

    owners = [Address.from_seed(f"owner-{i}") for i in range(3)]
    chips = [SoftwareChip.from_seed(f"inv-{i}") for i in range(4)]
    for c in chips:
        nft.mint(*sign(c, admin, 1).as_args())
    for i, c in enumerate(chips[:3]):
        nft.claim(owners[i], *sign(c, owners[i], 2).as_args())
    nft.transfer(owners[0], owners[1], 0, *sign(chips[0], owners[0], 3).as_args())
    nft.clawback(2)

    claimed = sum(1 for t in range(4) if nft.token_state(t) is TokenState.CLAIMED)
    assert sum(nft.balance(o) for o in owners) == claimed == 2
    assert nft.balance(owners[1]) == 2
