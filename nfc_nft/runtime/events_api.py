from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from nfc_nft.address import Address
from nfc_nft.errors import HostError
from nfc_nft.logging import get_logger

MAX_EVENT_NAME_LEN = 32
MAX_TOPICS = 4

_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

log = get_logger("events")


@dataclass(frozen=True)
class Event:
    """A published contract notification."""

    contract: Address
    name: str
    topics: Tuple[Any, ...]
    data: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract": str(self.contract),
            "name": self.name,
            "topics": [_render(t) for t in self.topics],
            "data": _render(self.data),
        }


def _render(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Address):
        return str(v)
    return v


class EventSink:
    """
    Buffers events emitted during an invocation.

    `publish()` moves the buffer into the published log (and the
    `nfc_nft.events` logger); `discard()` drops it. The Env calls exactly one
    of them when an invocation ends.
    """

    def __init__(self, contract: Address) -> None:
        self._contract = contract
        self._pending: List[Event] = []
        self._published: List[Event] = []

    def _check_name(self, name: Any) -> str:
        if not isinstance(name, str) or not name:
            raise HostError("event name must be a non-empty str", data={"where": "name_type"})
        if len(name) > MAX_EVENT_NAME_LEN or not _NAME_RE.match(name):
            raise HostError("invalid event name", data={"name": name})
        return name

    def emit(self, name: str, topics: Tuple[Any, ...] = (), data: Any = None) -> None:
        n = self._check_name(name)
        topics = tuple(topics)
        if len(topics) > MAX_TOPICS:
            raise HostError("too many event topics", data={"name": n, "count": len(topics)})
        self._pending.append(Event(self._contract, n, topics, data))

    def pending(self) -> List[Event]:
        return list(self._pending)

    def publish(self) -> int:
        batch, self._pending = self._pending, []
        for ev in batch:
            self._published.append(ev)
            log.info(ev.name, extra={"event": ev.to_dict()})
        return len(batch)

    def discard(self) -> int:
        n = len(self._pending)
        self._pending = []
        return n

    def all(self) -> List[Event]:
        return list(self._published)

    def named(self, name: str) -> List[Event]:
        return [e for e in self._published if e.name == name]

    def last(self) -> Optional[Event]:
        return self._published[-1] if self._published else None

    def clear(self) -> None:
        self._pending.clear()
        self._published.clear()


__all__ = ["Event", "EventSink"]
