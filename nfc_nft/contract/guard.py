"""
Signature & replay guard
========================

Every chip-authorized call (mint, claim, transfer) carries a proof that the
physical chip bound to `public_key` signed off on *this* caller and *this*
nonce:

    digest    = sha256(message || xdr(signer) || xdr_u32(nonce))
    recovered = secp256k1_recover(digest, signature64, recovery_id)
    accept iff recovered == public_key  and  nonce > stored_nonce(public_key)

On success the nonce is consumed (stored as the new high-water mark). The
nonce space is shared by all operations of a chip, so a signature made for a
mint can never be replayed as a claim or transfer.

Inputs
------
- signature:   64 bytes, r || s, s already low-form (<= n/2)
- recovery_id: 0..3, used exactly as given (never searched)
- public_key:  65 bytes uncompressed SEC1 (0x04 || X || Y)
- nonce:       u32, strictly greater than the stored value (default 0)

Every failure of the proof (shape, recovery, key mismatch, replay) raises
`ContractError(InvalidSignature)`; the `reason` field in `.data` says which.
Nothing is written unless all checks pass, and the nonce write itself is
part of the caller's invocation, so it is reverted if the operation fails later.
"""

from __future__ import annotations

from nfc_nft.address import Address
from nfc_nft.config import load_config
from nfc_nft.encoding import xdr
from nfc_nft.errors import CodecError, ContractError, CryptoError, NonFungibleTokenError
from nfc_nft.logging import get_logger
from nfc_nft.runtime.crypto import PUBLIC_KEY_LEN, SIGNATURE_LEN
from nfc_nft.runtime.env import Env

from . import keys

log = get_logger("contract.guard")


def _invalid(reason: str, **data) -> ContractError:
    return ContractError(NonFungibleTokenError.InvalidSignature, f"invalid signature: {reason}", reason=reason, **data)


def check_public_key(public_key: bytes) -> bytes:
    if not isinstance(public_key, (bytes, bytearray)) or len(public_key) != PUBLIC_KEY_LEN:
        raise _invalid("public key must be 65 bytes")
    if public_key[0] != 0x04:
        raise _invalid("public key must be uncompressed (0x04 prefix)")
    return bytes(public_key)


def _check_u32(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= xdr.U32_MAX:
        raise ContractError(NonFungibleTokenError.InvalidArgument, f"{name} must be a u32", **{name: repr(value)})
    return value


def get_nonce(env: Env, public_key: bytes) -> int:
    return env.storage.get_u32(keys.nonce(public_key), 0)


def message_digest(env: Env, message: bytes, signer: Address, nonce: int) -> bytes:
    try:
        preimage = xdr.signed_payload(message, signer, nonce)
    except CodecError as exc:
        raise ContractError(NonFungibleTokenError.InvalidArgument, exc.message) from exc
    return env.crypto.sha256(preimage)


def verify(
    env: Env,
    signer: Address,
    message: bytes,
    signature: bytes,
    recovery_id: int,
    public_key: bytes,
    nonce: int,
) -> None:
    """Check the chip proof and consume `nonce`; raise InvalidSignature otherwise."""
    if not isinstance(message, (bytes, bytearray)):
        raise ContractError(NonFungibleTokenError.InvalidArgument, "message must be bytes")
    max_len = load_config().max_message_bytes
    if len(message) > max_len:
        raise ContractError(
            NonFungibleTokenError.InvalidArgument, "message too long", length=len(message), max=max_len
        )
    _check_u32(nonce, "nonce")
    if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_LEN:
        raise _invalid("signature must be 64 bytes")
    if isinstance(recovery_id, bool) or not isinstance(recovery_id, int) or not 0 <= recovery_id <= 3:
        raise _invalid("recovery id must be in 0..3", recovery_id=repr(recovery_id))
    pk = check_public_key(public_key)

    digest = message_digest(env, bytes(message), signer, nonce)
    try:
        recovered = env.crypto.secp256k1_recover(digest, bytes(signature), recovery_id)
    except CryptoError as exc:
        raise _invalid("recovery failed", detail=exc.message) from exc
    if recovered != pk:
        log.debug("recovered key mismatch", extra={"signer": signer, "nonce": nonce})
        raise _invalid("recovered key does not match public key")

    stored = get_nonce(env, pk)
    if nonce <= stored:
        raise _invalid("nonce already used", nonce=nonce, stored=stored)
    env.storage.set_u32(keys.nonce(pk), nonce)


__all__ = ["verify", "get_nonce", "check_public_key", "message_digest"]
