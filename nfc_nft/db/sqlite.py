"""
SQLite-backed KV store
======================

Durable ledger storage for the CLI host, implementing the `KV` / `Batch`
protocols from `nfc_nft.db.kv`.

- Table schema: kv(k BLOB PRIMARY KEY, v BLOB NOT NULL)
- Keys/values are raw bytes; ordering is lexicographic (memcmp).
- Each contract invocation flushes through one `batch()`, i.e. a single
  `BEGIN IMMEDIATE ... COMMIT` transaction, so a crash never leaves half a call
  on disk.

sqlite3 errors are re-raised as `StorageError`.
"""

from __future__ import annotations

import os
import sqlite3
import threading
from typing import Iterator, Optional, Tuple, Union
from urllib.parse import urlparse

from nfc_nft.errors import StorageError
from nfc_nft.logging import get_logger

from .kv import KV, Batch

log = get_logger("db.sqlite")

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "temp_store": "MEMORY",
    "foreign_keys": "OFF",
}

_UPSERT = "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v"


def _apply_pragmas(conn: sqlite3.Connection, pragmas: Optional[dict] = None) -> None:
    p = dict(DEFAULT_PRAGMAS)
    if pragmas:
        p.update(pragmas)
    for name, value in p.items():
        conn.execute(f"PRAGMA {name}={value}")


def _migrate(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv (
            k BLOB PRIMARY KEY,
            v BLOB NOT NULL
        )
        """
    )


def _prefix_hi(prefix: bytes) -> Optional[bytes]:
    """
    Smallest byte string greater than every key starting with `prefix`, or None
    when no finite bound exists (empty prefix or all 0xFF).

    b"p:\\x01" -> b"p:\\x02"; b"\\xff\\xff" -> None
    """
    p = bytearray(prefix)
    for i in range(len(p) - 1, -1, -1):
        if p[i] != 0xFF:
            p[i] += 1
            del p[i + 1 :]
            return bytes(p)
    return None


def sqlite_path(url: PathLike) -> str:
    """Accept a filesystem path or a `sqlite:///abs/path` / `sqlite://rel/path` URL."""
    s = os.fspath(url)
    if s.startswith("sqlite://"):
        parsed = urlparse(s)
        s = (parsed.netloc + parsed.path) if parsed.netloc else parsed.path
    if not s:
        raise StorageError("empty sqlite path", data={"url": os.fspath(url)})
    return s


class SQLiteBatch(Batch):
    __slots__ = ("_kv", "_open")

    def __init__(self, kv: "SQLiteKV") -> None:
        self._kv = kv
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise StorageError("batch already open (nested batches not supported)")
        self._kv._lock.acquire()
        try:
            self._kv._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            self._kv._lock.release()
            raise StorageError("could not start sqlite transaction") from exc
        self._open = True
        return self

    def _execute(self, sql: str, args: tuple, what: str) -> None:
        if not self._open:
            raise StorageError("batch not open")
        try:
            self._kv._conn.execute(sql, args)
        except sqlite3.Error as exc:
            raise StorageError(f"sqlite {what} failed") from exc

    def put(self, key: bytes, value: bytes) -> None:
        self._execute(_UPSERT, (memoryview(key), memoryview(value)), "put")

    def delete(self, key: bytes) -> None:
        self._execute("DELETE FROM kv WHERE k = ?", (memoryview(key),), "delete")

    def commit(self) -> None:
        if not self._open:
            return
        try:
            self._kv._conn.execute("COMMIT")
        except sqlite3.Error as exc:
            # a failed COMMIT can leave the transaction open
            if self._kv._conn.in_transaction:
                self._kv._conn.execute("ROLLBACK")
            raise StorageError("sqlite commit failed") from exc
        finally:
            self._close()

    def rollback(self) -> None:
        if not self._open:
            return
        try:
            self._kv._conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            raise StorageError("sqlite rollback failed") from exc
        finally:
            self._close()

    def _close(self) -> None:
        self._open = False
        self._kv._lock.release()

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


class SQLiteKV(KV):
    """
    SQLite-backed KV. A single connection is shared; an internal lock
    serializes batches so concurrent invocations cannot interleave writes.
    """

    def __init__(self, path: PathLike, *, pragmas: Optional[dict] = None) -> None:
        self.path = sqlite_path(path)
        try:
            self._conn = sqlite3.connect(
                self.path,
                isolation_level=None,  # autocommit; batches BEGIN explicitly
                check_same_thread=False,
            )
            _apply_pragmas(self._conn, pragmas)
            _migrate(self._conn)
        except sqlite3.Error as exc:
            raise StorageError("cannot open sqlite store", data={"path": self.path}) from exc
        self._lock = threading.RLock()
        log.debug("sqlite store opened", extra={"path": self.path})

    # --- ReadOnlyKV ---

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            row = self._conn.execute("SELECT v FROM kv WHERE k = ?", (memoryview(key),)).fetchone()
        return bytes(row[0]) if row is not None else None

    def has(self, key: bytes) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM kv WHERE k = ? LIMIT 1", (memoryview(key),)
            ).fetchone()
        return row is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        hi = _prefix_hi(prefix)
        if hi is not None:
            sql = "SELECT k, v FROM kv WHERE k >= ? AND k < ? ORDER BY k"
            args: tuple = (memoryview(prefix), memoryview(hi))
        else:
            sql = "SELECT k, v FROM kv WHERE substr(k,1,?) = ? ORDER BY k"
            args = (len(prefix), memoryview(prefix))
        with self._lock:
            rows = self._conn.execute(sql, args).fetchall()
        return iter([(bytes(k), bytes(v)) for k, v in rows])

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # --- KV ---

    def put(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._conn.execute(_UPSERT, (memoryview(key), memoryview(value)))

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE k = ?", (memoryview(key),))

    def batch(self) -> SQLiteBatch:
        return SQLiteBatch(self)


__all__ = ["SQLiteKV", "SQLiteBatch", "sqlite_path"]
