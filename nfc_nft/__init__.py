"""
nfc_nft — NFTs bound to physical NFC chips.

Every ownership change of a token must be co-signed by the secp256k1 chip it
was minted for, with per-chip replay nonces and dense sequential token ids.

    from nfc_nft import Env, NFCtoNFT, Address
    env = Env().mock_all_auths()
    nft = NFCtoNFT(env)
    nft.initialize(Address.from_seed("admin"), "Chimp", "CHMP", "ipfs://abcd", 10_000)
"""

from .address import Address, AddressKind
from .contract import NFCtoNFT, TokenState
from .errors import ContractError, NftError, NonFungibleTokenError
from .runtime.env import Env
from .version import __version__

__all__ = [
    "__version__",
    "Address",
    "AddressKind",
    "Env",
    "NFCtoNFT",
    "TokenState",
    "NftError",
    "ContractError",
    "NonFungibleTokenError",
]
