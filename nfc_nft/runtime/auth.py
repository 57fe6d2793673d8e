"""
nfc_nft.runtime.auth — "did this address authorize the current call?"

On a real ledger the host checks signatures over the invocation tree. Here
the embedding application (tests, the CLI) declares which addresses signed
for the calls it is about to make:

    with env.auth.authorize(admin):
        nft.mint(...)

or switches checks off entirely with `mock_all_auths()`.

Authorization scopes are context-local: a scope opened in one thread (or
task) never authorizes calls made from another.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import FrozenSet, Iterator, List, Tuple

from nfc_nft.address import Address
from nfc_nft.errors import AuthorizationError
from nfc_nft.logging import get_logger

log = get_logger("auth")


class Auth:
    def __init__(self) -> None:
        self._scopes: ContextVar[Tuple[FrozenSet[Address], ...]] = ContextVar(
            f"_NFT_AUTH_SCOPES_{id(self):x}", default=()
        )
        self._mock_all = False
        self._checked: List[Address] = []

    def mock_all_auths(self, enabled: bool = True) -> None:
        self._mock_all = bool(enabled)

    @property
    def mocked(self) -> bool:
        return self._mock_all

    @contextmanager
    def authorize(self, *addresses: Address) -> Iterator[None]:
        scope = frozenset(Address.parse(a) for a in addresses)
        token = self._scopes.set(self._scopes.get() + (scope,))
        try:
            yield
        finally:
            self._scopes.reset(token)

    def is_authorized(self, address: Address) -> bool:
        if self._mock_all:
            return True
        return any(address in scope for scope in self._scopes.get())

    def require_auth(self, address: Address) -> None:
        self._checked.append(address)
        if not self.is_authorized(address):
            log.debug("authorization missing", extra={"address": address})
            raise AuthorizationError(address)

    def checked(self) -> List[Address]:
        """Addresses passed to require_auth, in call order (for assertions)."""
        return list(self._checked)


__all__ = ["Auth"]
