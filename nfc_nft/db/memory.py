"""
In-memory KV backend
====================

Dict-backed implementation of the `KV` protocol for tests, simulations and
the CLI's default `:memory:` store. Thread-safe; batches stage writes locally
and apply them under the store lock on commit.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Optional, Tuple

from .kv import KV, Batch


class MemoryBatch(Batch):
    __slots__ = ("_kv", "_ops", "_open")

    def __init__(self, kv: "MemoryKV") -> None:
        self._kv = kv
        self._ops: List[Tuple[bytes, Optional[bytes]]] = []
        self._open = False

    def __enter__(self) -> "MemoryBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._open = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._ops.append((bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._ops.append((bytes(key), None))

    def commit(self) -> None:
        if not self._open:
            return
        self._kv._apply(self._ops)
        self._ops = []
        self._open = False

    def rollback(self) -> None:
        self._ops = []
        self._open = False

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


class MemoryKV(KV):
    def __init__(self) -> None:
        self._store: Dict[bytes, bytes] = {}
        self._lock = threading.RLock()

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._store.get(bytes(key))

    def has(self, key: bytes) -> bool:
        with self._lock:
            return bytes(key) in self._store

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        p = bytes(prefix)
        with self._lock:
            snapshot = sorted((k, v) for k, v in self._store.items() if k.startswith(p))
        return iter(snapshot)

    def put(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._store[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._store.pop(bytes(key), None)

    def batch(self) -> MemoryBatch:
        return MemoryBatch(self)

    def close(self) -> None:
        pass

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _apply(self, ops: List[Tuple[bytes, Optional[bytes]]]) -> None:
        with self._lock:
            for k, v in ops:
                if v is None:
                    self._store.pop(k, None)
                else:
                    self._store[k] = v


__all__ = ["MemoryKV", "MemoryBatch"]
