"""
nfc_nft.runtime — host capabilities (storage, events, auth, crypto) and the
atomic invocation boundary the token contract runs inside.
"""

from .auth import Auth
from .env import Env
from .events_api import Event, EventSink
from .journal import Journal
from .storage_api import Storage

__all__ = ["Auth", "Env", "Event", "EventSink", "Journal", "Storage"]
