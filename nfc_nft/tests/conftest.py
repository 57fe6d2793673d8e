from __future__ import annotations

from typing import Callable

import pytest

from nfc_nft.address import Address
from nfc_nft.config import load_config
from nfc_nft.contract import NFCtoNFT
from nfc_nft.db.memory import MemoryKV
from nfc_nft.runtime.env import Env
from nfc_nft.tools.sigtools import ChipSignature, SoftwareChip

NAME = "TestNFT"
SYMBOL = "TNFT"
BASE_URI = "ipfs://abcd"
MAX_TOKENS = 10_000
MESSAGE = b"test message for minting"


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    for var in ("NFC_NFT_DB", "NFC_NFT_MAX_MESSAGE_BYTES", "NFC_NFT_DEFAULT_MAX_TOKENS"):
        monkeypatch.delenv(var, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def kv() -> MemoryKV:
    return MemoryKV()


@pytest.fixture
def env(kv) -> Env:
    return Env(kv).mock_all_auths()


@pytest.fixture
def admin() -> Address:
    return Address.from_seed("admin")


@pytest.fixture
def claimant() -> Address:
    return Address.from_seed("claimant")


@pytest.fixture
def recipient() -> Address:
    return Address.from_seed("recipient")


@pytest.fixture
def chip_a() -> SoftwareChip:
    return SoftwareChip.from_seed("chip-a")


@pytest.fixture
def chip_b() -> SoftwareChip:
    return SoftwareChip.from_seed("chip-b")


@pytest.fixture
def nft(env, admin) -> NFCtoNFT:
    c = NFCtoNFT(env)
    c.initialize(admin, NAME, SYMBOL, BASE_URI, MAX_TOKENS)
    return c


@pytest.fixture
def sign() -> Callable[..., ChipSignature]:
    """sign(chip, signer, nonce, message=MESSAGE) -> ChipSignature"""

    def _sign(chip: SoftwareChip, signer: Address, nonce: int, message: bytes = MESSAGE) -> ChipSignature:
        return chip.sign_call(message, signer, nonce)

    return _sign


@pytest.fixture
def minted(nft, admin, chip_a, sign) -> int:
    """Token 0 minted for chip A with nonce 1 (unclaimed)."""
    return nft.mint(*sign(chip_a, admin, 1).as_args())


@pytest.fixture
def claimed(nft, minted, claimant, chip_a, sign) -> int:
    """Token 0 claimed by `claimant` with chip A nonce 2."""
    return nft.claim(claimant, *sign(chip_a, claimant, 2).as_args())
