"""
XDR and strkey codec tests.

The XDR byte layouts are what a chip signs over (signer address + nonce), so a
few of them are pinned to exact hex.
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from nfc_nft.address import Address, AddressKind
from nfc_nft.encoding import strkey, xdr
from nfc_nft.errors import CodecError

payload32 = st.binary(min_size=32, max_size=32)


def test_u32_layout():
    assert xdr.encode_u32(1).hex() == "00000003" + "00000001"
    assert xdr.encode_u64(1).hex() == "00000005" + "0000000000000001"
    assert xdr.decode_u64(xdr.encode_u64(2**64 - 1)) == 2**64 - 1
    assert xdr.encode_bool(True).hex() == "00000000" + "00000001"


def test_address_layout_account_and_contract():
    pk = bytes(range(32))
    acct = xdr.encode_address(Address.account(pk))
    assert acct[:12].hex() == "00000012" + "00000000" + "00000000"
    assert acct[12:] == pk
    contract = xdr.encode_address(Address.contract(pk))
    assert contract[:8].hex() == "00000012" + "00000001"
    assert contract[8:] == pk
    assert len(acct) == 44 and len(contract) == 40


def test_bytes_and_string_are_padded():
    enc = xdr.encode_bytes(b"\x01\x02\x03\x04\x05")
    assert enc.hex() == "0000000d" + "00000005" + "0102030405" + "000000"
    assert xdr.decode_string(xdr.encode_string("ipfs://abcd")) == "ipfs://abcd"


def test_signed_payload_is_message_signer_nonce():
    signer = Address.from_seed("admin")
    out = xdr.signed_payload(b"hello", signer, 7)
    assert out == b"hello" + xdr.encode_address(signer) + xdr.encode_u32(7)


@pytest.mark.parametrize(
    "buf,why",
    [
        (bytes.fromhex("00000005" + "00000001"), "wrong tag"),
        (bytes.fromhex("00000003" + "0001"), "truncated"),
        (bytes.fromhex("00000003" + "00000001" + "00"), "trailing"),
    ],
)
def test_u32_decoder_is_strict(buf, why):
    with pytest.raises(CodecError):
        xdr.decode_u32(buf)


def test_nonzero_padding_rejected():
    bad = bytes.fromhex("0000000d" + "00000001" + "aa" + "000100")
    with pytest.raises(CodecError):
        xdr.decode_bytes(bad)


def test_u32_range():
    with pytest.raises(CodecError):
        xdr.encode_u32(2**32)
    with pytest.raises(CodecError):
        xdr.encode_u32(-1)


@given(st.integers(min_value=0, max_value=2**32 - 1))
def test_u32_roundtrip(n):
    assert xdr.decode_u32(xdr.encode_u32(n)) == n


@given(st.binary(max_size=200))
def test_bytes_roundtrip_and_alignment(data):
    enc = xdr.encode_bytes(data)
    assert len(enc) % 4 == 0
    assert xdr.decode_bytes(enc) == data


@given(payload32, st.sampled_from(list(AddressKind)))
def test_address_roundtrip(payload, kind):
    addr = Address(kind, payload)
    assert xdr.decode_address(xdr.encode_address(addr)) == addr
    assert Address.from_strkey(addr.to_strkey()) == addr


# ---------------------------------------------------------------------------
# strkey
# ---------------------------------------------------------------------------


def test_strkey_prefixes():
    pk = b"\x00" * 32
    assert Address.account(pk).to_strkey().startswith("G")
    assert Address.contract(pk).to_strkey().startswith("C")
    assert len(Address.account(pk).to_strkey()) == strkey.STRKEY_LEN


def test_strkey_known_vector():
    # all-zero ed25519 key
    assert strkey.encode(strkey.VERSION_ACCOUNT, b"\x00" * 32) == (
        "G" + "A" * 52 + "WHF"
    )


def test_strkey_checksum_detects_corruption():
    s = Address.from_seed("someone").to_strkey()
    flipped = s[:10] + ("A" if s[10] != "A" else "B") + s[11:]
    assert not strkey.is_valid(flipped)
    with pytest.raises(CodecError):
        Address.from_strkey(flipped)


@pytest.mark.parametrize("bad", ["", "G" * 55, "g" * 56, "not a strkey at all"])
def test_strkey_rejects_garbage(bad):
    assert not strkey.is_valid(bad)


def test_address_parse_and_str():
    a = Address.from_seed("x")
    assert Address.parse(str(a)) == a
    assert Address.parse(a) is a
    assert Address.from_seed("x", AddressKind.CONTRACT).is_contract
    with pytest.raises(CodecError):
        Address.parse(42)  # type: ignore[arg-type]
