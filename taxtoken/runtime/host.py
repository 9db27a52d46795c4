"""
taxtoken.runtime.host — the in-process execution environment.

`Host` stands in for the chain the token is deployed on. It owns:

* a deterministic clock (`now`, `advance`, `set_time`),
* the reference-currency value ledger (native balances) with receive hooks,
* an address → contract registry so collaborators can find each other,
* a world-state journal so value movements roll back with the call that
  made them (`atomic()`).

Value delivery
--------------
`send_value(sender, to, amount, stipend=...)` moves the value first, then runs
the recipient's receive hook with a `StipendMeter`. Any failure in the hook
undoes the move and propagates: `TokenError`s unchanged, anything else wrapped
in `ExternalCallError`.

Usage
-----
    host = Host(start_time=1_700_000_000)
    host.fund(alice, 10**18)
    ctx = host.context(alice)
    host.send_value(alice, bob, 5)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from taxtoken.errors import AmountError, ExternalCallError, InsufficientBalance, TokenError
from taxtoken.state.journal import Journal
from taxtoken.types.address import HexLike, is_zero, to_address, to_hex
from taxtoken.types.context import CallContext
from taxtoken.uint import checked_add

from .stipend import StipendMeter

log = logging.getLogger(__name__)

NATIVE = "native"

ReceiveHook = Callable[[CallContext, StipendMeter], None]


class Host:
    """
    Parameters
    ----------
    start_time : int
        Initial clock value (Unix seconds).
    """

    def __init__(self, *, start_time: int = 0) -> None:
        if start_time < 0:
            raise ValueError("start_time must be >= 0")
        self._now = int(start_time)
        self._lock = threading.RLock()
        self.state = Journal()
        self._contracts: Dict[bytes, Any] = {}
        self._receivers: Dict[bytes, ReceiveHook] = {}

    # ------------------------------------------------------------------ #
    # Clock
    # ------------------------------------------------------------------ #

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set_time(self, timestamp: int) -> None:
        if timestamp < 0:
            raise ValueError("timestamp must be >= 0")
        self._now = int(timestamp)

    def context(self, sender: HexLike, *, value: int = 0) -> CallContext:
        return CallContext(sender=sender, timestamp=self._now, value=value)

    # ------------------------------------------------------------------ #
    # World-state transactions
    # ------------------------------------------------------------------ #

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @contextmanager
    def atomic(self) -> Iterator[int]:
        """
        Run a block against a fresh world-state checkpoint: merged into the
        parent on success, discarded on any exception.
        """
        with self._lock:
            marker = self.state.checkpoint()
            try:
                yield marker
            except BaseException:
                self.state.revert_to(marker)
                raise
            self.state.commit_to(marker)
            if self.state.depth() == 1:
                self.state.flush()

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #

    def register_contract(self, address: HexLike, contract: Any) -> None:
        addr = to_address(address)
        if addr in self._contracts and self._contracts[addr] is not contract:
            raise ValueError(f"address already registered: {to_hex(addr)}")
        self._contracts[addr] = contract

    def contract_at(self, address: HexLike) -> Any:
        addr = to_address(address)
        try:
            return self._contracts[addr]
        except KeyError:
            raise ExternalCallError("no contract at address", reason="unknown_contract",
                                    data={"address": to_hex(addr)}) from None

    def register_receiver(self, address: HexLike, hook: Optional[ReceiveHook]) -> None:
        """Install (or, with None, remove) the receive hook of an address."""
        addr = to_address(address)
        if hook is None:
            self._receivers.pop(addr, None)
        else:
            self._receivers[addr] = hook

    # ------------------------------------------------------------------ #
    # Reference-currency value ledger
    # ------------------------------------------------------------------ #

    def native_balance(self, address: HexLike) -> int:
        return int(self.state.get(NATIVE, to_address(address), 0))

    def _set_native(self, addr: bytes, value: int) -> None:
        if value == 0:
            self.state.delete(NATIVE, addr)
        else:
            self.state.set(NATIVE, addr, value)

    def fund(self, address: HexLike, amount: int) -> None:
        """Mint reference currency out of thin air (test/simulation faucet)."""
        addr = to_address(address)
        with self.atomic():
            self._set_native(addr, checked_add(self.native_balance(addr), int(amount)))

    def send_value(
        self,
        sender: HexLike,
        to: HexLike,
        amount: int,
        *,
        stipend: Optional[int] = None,
    ) -> None:
        """
        Deliver `amount` reference currency from `sender` to `to` and run the
        recipient's receive hook under `stipend` (None = unbounded).
        """
        src, dst = to_address(sender), to_address(to)
        amount = int(amount)
        if amount < 0:
            raise AmountError("value must be non-negative")
        if is_zero(dst):
            raise ExternalCallError("value sent to zero address", reason="zero_address")

        with self.atomic():
            held = self.native_balance(src)
            if amount > held:
                raise InsufficientBalance(account=to_hex(src), balance=held, needed=amount)
            self._set_native(src, held - amount)
            self._set_native(dst, checked_add(self.native_balance(dst), amount))

            hook = self._receivers.get(dst)
            if hook is None:
                return
            meter = StipendMeter(stipend)
            ctx = CallContext(sender=src, timestamp=self._now, value=amount)
            try:
                hook(ctx, meter)
            except TokenError:
                log.debug("receive hook of %s failed", to_hex(dst))
                raise
            except Exception as e:
                raise ExternalCallError("receive hook raised", reason=type(e).__name__,
                                        data={"to": to_hex(dst)}) from e


__all__ = ["Host", "ReceiveHook", "NATIVE"]
