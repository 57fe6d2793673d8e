"""
nfc_nft.runtime.env — the host environment a contract instance runs against.

`Env` bundles the capabilities the contract consumes:

    env.storage   typed reads/writes through the write journal
    env.events    buffered notifications, published on commit
    env.auth      authorization checks
    env.crypto    sha256 + secp256k1 recovery

and the invocation boundary:

    with env.invoke("mint"):
        ...            # all-or-nothing: commit + publish, or revert + drop

Invocations are serialized per Env (re-entrant lock) and may not nest.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from nfc_nft import logging as nlog
from nfc_nft.address import Address, AddressKind
from nfc_nft.db.kv import KV
from nfc_nft.db.memory import MemoryKV
from nfc_nft.errors import HostError, NftError

from . import crypto
from .auth import Auth
from .events_api import EventSink
from .journal import Journal
from .storage_api import Storage

log = nlog.get_logger("runtime.env")

DEFAULT_CONTRACT_SEED = "nfc-nft/contract"


class Env:
    def __init__(self, kv: Optional[KV] = None, contract_address: Optional[Address] = None) -> None:
        self.kv: KV = kv if kv is not None else MemoryKV()
        self.contract_address = contract_address or Address.from_seed(
            DEFAULT_CONTRACT_SEED, AddressKind.CONTRACT
        )
        if not self.contract_address.is_contract:
            raise HostError("contract address must be a contract (C...) address")
        self.journal = Journal(self.kv)
        self.storage = Storage(self.journal)
        self.events = EventSink(self.contract_address)
        self.auth = Auth()
        self.crypto = crypto
        self._lock = threading.RLock()
        self._call: Optional[str] = None

    @property
    def current_call(self) -> Optional[str]:
        return self._call

    def mock_all_auths(self) -> "Env":
        self.auth.mock_all_auths()
        return self

    @contextmanager
    def invoke(self, name: str) -> Iterator["Env"]:
        with self._lock:
            if self._call is not None:
                raise HostError("nested invocation", data={"outer": self._call, "inner": name})
            self._call = name
            try:
                with nlog.trace_scope(contract=str(self.contract_address), call=name):
                    self.journal.begin()
                    log.debug("invoke start")
                    try:
                        yield self
                        self.journal.commit()
                    except BaseException as exc:
                        if self.journal.depth():
                            self.journal.revert()
                        dropped = self.events.discard()
                        code = exc.code if isinstance(exc, NftError) else type(exc).__name__
                        log.warning(
                            "invoke failed",
                            extra={"code": code, "error": str(exc), "events_dropped": dropped},
                        )
                        raise
                    published = self.events.publish()
                    log.debug("invoke committed", extra={"events": published})
            finally:
                self._call = None

    def close(self) -> None:
        self.kv.close()


__all__ = ["Env", "DEFAULT_CONTRACT_SEED"]
