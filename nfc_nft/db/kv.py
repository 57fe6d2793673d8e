"""
KV interface & namespace prefixes
=================================

Backend-agnostic key–value interface for the ledger host, plus the two
namespaces the contract stores data under:

- INSTANCE   (b"i:") : collection-wide values (admin, metadata, counters, code hash)
- PERSISTENT (b"p:") : per-chip / per-token / per-owner values

Backends (memory, sqlite) implement these protocols and the batch semantics.
This file is pure interface + helpers and contains no I/O.

Key building
------------
`Prefix(ns).key(*parts)` produces `ns || ":" || Σ(uvarint(len(part)) || part)`.
Length-prefixing every part means no delimiter escaping is ever needed and two
different part tuples can never collide:

>>> from nfc_nft.db.kv import PERSISTENT, be_u32
>>> PERSISTENT.key(b"owner", be_u32(7)).startswith(PERSISTENT.raw)
True

Batching
--------
`KV.batch()` returns a context manager. Writes inside it become visible
atomically when the block exits cleanly; if an exception escapes, none of them
are applied.

>>> with kv.batch() as b:
...     b.put(PERSISTENT.key(b"a"), b"1")
...     b.delete(PERSISTENT.key(b"b"))
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Protocol, Tuple, Union, runtime_checkable

NS_SEP = b":"

KeyPart = Union[bytes, bytearray, memoryview, str, int]


class Prefix:
    """A logical namespace prefix; `.key(*parts)` builds composite keys under it."""

    __slots__ = ("_raw",)

    def __init__(self, ns: Union[bytes, bytearray, memoryview, str]) -> None:
        ns_b = ns.encode("ascii") if isinstance(ns, str) else bytes(ns)
        if len(ns_b) == 0:
            raise ValueError("namespace must be non-empty")
        self._raw = ns_b.rstrip(NS_SEP) + NS_SEP

    @property
    def raw(self) -> bytes:
        return self._raw

    def key(self, *parts: KeyPart) -> bytes:
        out = bytearray(self._raw)
        for p in parts:
            pb = _part_to_bytes(p)
            out.extend(_uvarint_len(len(pb)))
            out.extend(pb)
        return bytes(out)

    def __repr__(self) -> str:
        return f"Prefix({self._raw!r})"


def _part_to_bytes(p: KeyPart) -> bytes:
    if isinstance(p, (bytes, bytearray, memoryview)):
        return bytes(p)
    if isinstance(p, str):
        return p.encode("utf-8")
    if isinstance(p, int) and not isinstance(p, bool):
        if p < 0:
            raise ValueError("negative ints not supported in key parts")
        return p.to_bytes(max(1, (p.bit_length() + 7) // 8), "big")
    raise TypeError(f"unsupported key part type: {type(p)!r}")


def _uvarint_len(n: int) -> bytes:
    """LEB128 unsigned length prefix."""
    if n < 0:
        raise ValueError("length must be non-negative")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(0x80 | b)
        else:
            out.append(b)
            return bytes(out)


def be_u32(n: int) -> bytes:
    if not (0 <= n < (1 << 32)):
        raise ValueError("be_u32 out of range")
    return n.to_bytes(4, "big")


INSTANCE = Prefix(b"i")
PERSISTENT = Prefix(b"p")


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ReadOnlyKV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...

    def has(self, key: bytes) -> bool:
        ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """(key, value) pairs whose key starts with `prefix`, in byte order."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Batch(Protocol):
    """
    Write-batch context manager. Atomic when the context exits without an
    exception; rolled back otherwise.
    """

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    def put(self, key: bytes, value: bytes) -> None:
        """Persist (key, value); overwrites."""
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (idempotent)."""
        ...

    def batch(self) -> Batch:
        ...


def put_many(kv: KV, items: Iterable[Tuple[bytes, Optional[bytes]]]) -> None:
    """Apply many writes in one batch; a None value deletes the key."""
    with kv.batch() as b:
        for k, v in items:
            if v is None:
                b.delete(k)
            else:
                b.put(k, v)


__all__ = [
    "ReadOnlyKV",
    "KV",
    "Batch",
    "Prefix",
    "INSTANCE",
    "PERSISTENT",
    "be_u32",
    "put_many",
]
