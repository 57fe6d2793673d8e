"""
nfc_nft.contract — the chip-authenticated token contract.

    from nfc_nft.contract import NFCtoNFT, TokenState
"""

from .decimal import u32_to_decimal_bytes, u64_to_decimal_bytes
from .nft import NFCtoNFT, TokenState
from .state import LedgerState

__all__ = ["NFCtoNFT", "TokenState", "LedgerState", "u32_to_decimal_bytes", "u64_to_decimal_bytes"]
