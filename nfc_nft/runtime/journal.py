"""
nfc_nft.runtime.journal — journaling writes, checkpoints, revert/commit.

A deterministic write journal layered over a KV store. Checkpoints form a
stack of overlays: writes go to the top overlay, reads consult overlays from
top → base. `commit()` merges the top overlay into its parent; committing the
last overlay flushes every staged write into the KV inside ONE `batch()`, so
the base store sees either all writes of an invocation or none.
`revert()` discards the top overlay.

Intended usage
--------------
    j = Journal(kv)
    j.begin()
    j.set(key, b"value")
    j.delete(other)
    j.commit()          # flushed atomically to kv

Deletions are staged as explicit `None` markers so they shadow base values.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from nfc_nft.db.kv import KV
from nfc_nft.errors import StorageError

_Overlay = Dict[bytes, Optional[bytes]]


def _b(x, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise StorageError(f"{name} must be bytes-like", data={"type": type(x).__name__})
    return bytes(x)


class Journal:
    """
    Copy-on-write overlay stack over a `KV`.

    - begin() / commit() / revert()
    - get(), has(), set(), delete()

    Writes outside any checkpoint are rejected: every mutation belongs to
    exactly one invocation.
    """

    def __init__(self, kv: KV) -> None:
        self._kv = kv
        self._layers: List[_Overlay] = []

    @property
    def kv(self) -> KV:
        return self._kv

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        return len(self._layers)

    def begin(self) -> int:
        self._layers.append({})
        return len(self._layers)

    def commit(self) -> None:
        if not self._layers:
            raise StorageError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._layers[-1].update(top)
            return
        self._flush(top)

    def revert(self) -> None:
        if not self._layers:
            raise StorageError("revert without an open checkpoint")
        self._layers.pop()

    def pending(self) -> int:
        """Number of distinct keys staged across all open overlays."""
        keys = set()
        for layer in self._layers:
            keys.update(layer)
        return len(keys)

    def _flush(self, overlay: _Overlay) -> None:
        if not overlay:
            return
        with self._kv.batch() as b:
            for k in sorted(overlay):
                v = overlay[k]
                if v is None:
                    b.delete(k)
                else:
                    b.put(k, v)

    # ------------------------------------------------------------------ #
    # Reads / writes
    # ------------------------------------------------------------------ #

    def get(self, key: bytes) -> Optional[bytes]:
        k = _b(key, name="key")
        for layer in reversed(self._layers):
            if k in layer:
                return layer[k]
        return self._kv.get(k)

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def set(self, key: bytes, value: bytes) -> None:
        self._top()[_b(key, name="key")] = _b(value, name="value")

    def delete(self, key: bytes) -> None:
        self._top()[_b(key, name="key")] = None

    def _top(self) -> _Overlay:
        if not self._layers:
            raise StorageError("write outside of an invocation")
        return self._layers[-1]


__all__ = ["Journal"]
