"""
taxtoken.access — single-owner access control.

A minimal Ownable surface over the token's journaled metadata:

- `owner()` reads the current owner (zero address after renounce)
- `authorize(ctx)` returns an `OwnerCapability` when the caller is the owner,
  otherwise raises `AuthorizationError`
- `check(cap)` re-validates a capability handed to a privileged internal
- `transfer_ownership(cap, new_owner)` / `renounce_ownership(cap)`

Events:
    "OwnershipTransferred" args: {"previous": bytes, "new": bytes}

Capabilities are only good while the issuing owner is still current; after a
transfer or renounce any capability issued earlier stops validating.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from taxtoken.errors import AddressError, AuthorizationError
from taxtoken.state.journal import META, Journal
from taxtoken.types.address import ZERO_ADDRESS, is_zero, to_hex
from taxtoken.types.context import CallContext
from taxtoken.types.events import EVT_OWNERSHIP, TokenEvent

log = logging.getLogger(__name__)

OWNER_KEY = "owner"


@dataclass(frozen=True)
class OwnerCapability:
    """Proof that `owner` passed `authorize`; bound to the issuing controller."""

    owner: bytes
    issuer_id: int


class AccessControl:
    def __init__(self, journal: Journal, token: bytes) -> None:
        self._j = journal
        self._token = bytes(token)

    def owner(self) -> bytes:
        return bytes(self._j.get(META, OWNER_KEY, ZERO_ADDRESS))

    def init_owner(self, owner: bytes) -> None:
        """Set the first owner. No-op if an owner was already recorded."""
        if self._j.contains(META, OWNER_KEY):
            return
        if is_zero(owner):
            raise AddressError(field_name="owner")
        self._j.set(META, OWNER_KEY, bytes(owner))
        self._emit(ZERO_ADDRESS, bytes(owner))

    def is_owner(self, who: bytes) -> bool:
        cur = self.owner()
        return not is_zero(cur) and cur == bytes(who)

    def authorize(self, ctx: CallContext) -> OwnerCapability:
        if not self.is_owner(ctx.sender):
            raise AuthorizationError(caller=to_hex(ctx.sender))
        return OwnerCapability(owner=ctx.sender, issuer_id=id(self))

    def check(self, cap: OwnerCapability) -> None:
        if not isinstance(cap, OwnerCapability) or cap.issuer_id != id(self):
            raise AuthorizationError("capability not issued by this token")
        if not self.is_owner(cap.owner):
            raise AuthorizationError("capability holder is no longer the owner",
                                     caller=to_hex(cap.owner))

    def transfer_ownership(self, cap: OwnerCapability, new_owner: bytes) -> None:
        self.check(cap)
        if is_zero(new_owner):
            raise AddressError("new owner is the zero address; use renounce_ownership",
                               field_name="new_owner")
        prev = self.owner()
        self._j.set(META, OWNER_KEY, bytes(new_owner))
        self._emit(prev, bytes(new_owner))
        log.info("ownership transferred", extra={"previous": prev, "new": bytes(new_owner)})

    def renounce_ownership(self, cap: OwnerCapability) -> None:
        self.check(cap)
        prev = self.owner()
        self._j.set(META, OWNER_KEY, ZERO_ADDRESS)
        self._emit(prev, ZERO_ADDRESS)
        log.info("ownership renounced", extra={"previous": prev})

    def _emit(self, prev: bytes, new: bytes) -> None:
        self._j.emit(TokenEvent(self._token, EVT_OWNERSHIP, {"previous": prev, "new": new}))


__all__ = ["AccessControl", "OwnerCapability", "OWNER_KEY"]
