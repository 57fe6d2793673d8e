"""
nfc_nft.db — key/value storage backends for the ledger host.

    from nfc_nft.db import open_kv
    kv = open_kv(":memory:")              # MemoryKV
    kv = open_kv("sqlite:///var/nft.db")  # SQLiteKV
    kv = open_kv("./ledger.db")           # SQLiteKV (bare path)
"""

from __future__ import annotations

import os
from typing import Union

from nfc_nft.errors import ConfigError

from .kv import INSTANCE, KV, PERSISTENT, Batch, Prefix, ReadOnlyKV, be_u32, put_many
from .memory import MemoryKV
from .sqlite import SQLiteKV


def open_kv(url: Union[str, "os.PathLike[str]"]) -> KV:
    """Open a store from a URL: ':memory:', 'memory://', 'sqlite://...', or a file path."""
    s = os.fspath(url).strip()
    if s in (":memory:", "memory://", "mem://"):
        return MemoryKV()
    if "://" in s and not s.startswith("sqlite://"):
        raise ConfigError(f"unsupported store URL scheme: {s.split('://', 1)[0]}", data={"url": s})
    return SQLiteKV(s)


__all__ = [
    "KV",
    "ReadOnlyKV",
    "Batch",
    "Prefix",
    "INSTANCE",
    "PERSISTENT",
    "be_u32",
    "put_many",
    "MemoryKV",
    "SQLiteKV",
    "open_kv",
]
