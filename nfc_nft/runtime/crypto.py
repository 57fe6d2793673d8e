"""
nfc_nft.runtime.crypto — host cryptography capability.

- sha256(data)                                  -> 32-byte digest
- secp256k1_recover(digest, signature64, recid) -> 65-byte uncompressed key

Recovery is delegated to libsecp256k1 through `coincurve`. The recovery id is
used exactly as given and never searched. Signatures whose `s` lies in the
upper half of the group order are rejected as malformed; callers normalize
before submitting (see nfc_nft.tools.sigtools.normalize_s).
"""

from __future__ import annotations

import hashlib

from coincurve import PublicKey

from nfc_nft.errors import CryptoError

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

DIGEST_LEN = 32
SIGNATURE_LEN = 64
PUBLIC_KEY_LEN = 65


def sha256(data: bytes) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise CryptoError("sha256 input must be bytes")
    return hashlib.sha256(bytes(data)).digest()


def is_low_s(signature: bytes) -> bool:
    s = int.from_bytes(signature[32:64], "big")
    return 0 < s <= SECP256K1_HALF_N


def secp256k1_recover(digest: bytes, signature: bytes, recovery_id: int) -> bytes:
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != DIGEST_LEN:
        raise CryptoError("digest must be 32 bytes")
    if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_LEN:
        raise CryptoError("signature must be 64 bytes (r || s)")
    if isinstance(recovery_id, bool) or not isinstance(recovery_id, int) or not 0 <= recovery_id <= 3:
        raise CryptoError("recovery id must be in 0..3", data={"recovery_id": repr(recovery_id)})

    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    if not (0 < r < SECP256K1_N) or not (0 < s < SECP256K1_N):
        raise CryptoError("signature scalar out of range")
    if not is_low_s(signature):
        raise CryptoError("signature s is not normalized (high-s)")

    sig65 = bytes(signature) + bytes([recovery_id])
    try:
        recovered = PublicKey.from_signature_and_message(sig65, bytes(digest), hasher=None)
    except ValueError as exc:
        raise CryptoError("public key recovery failed", data={"recovery_id": recovery_id}) from exc
    return recovered.format(compressed=False)


__all__ = [
    "SECP256K1_N",
    "SECP256K1_HALF_N",
    "sha256",
    "is_low_s",
    "secp256k1_recover",
]
