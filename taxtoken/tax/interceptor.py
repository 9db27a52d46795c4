"""
taxtoken.tax.interceptor — the single entry point for moving tokens.

Order of operations for every transfer (plain or on behalf):

1. validate addresses and amount
2. while liquidity is Pending, look for the first pair deposit
3. once Established and no conversion is running, convert held tax
4. exempt transfers (excluded party, or recipient not a designated pair) move
   the full amount
5. taxed sales move `tax` to the token and the remainder to the pair in one
   staged two-leg transfer
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from taxtoken.errors import AddressError, AmountError
from taxtoken.exchange.adapter import ExchangeAdapter
from taxtoken.state.ledger import Ledger
from taxtoken.state.sets import AddressSet
from taxtoken.types.address import is_zero
from taxtoken.types.context import CallContext

from .autoswap import AutoSwapController
from .liquidity import LiquidityMonitor
from .schedule import TransferTaxEngine

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferOutcome:
    sender: bytes
    recipient: bytes
    amount: int
    tax: int
    received: int
    rate: int
    taxed: bool


class TransferInterceptor:
    def __init__(
        self,
        ledger: Ledger,
        monitor: LiquidityMonitor,
        engine: TransferTaxEngine,
        controller: AutoSwapController,
        excluded: AddressSet,
        pairs: AddressSet,
        *,
        venue: Callable[[], ExchangeAdapter],
        treasury: Callable[[], bytes],
    ) -> None:
        self._ledger = ledger
        self._monitor = monitor
        self._engine = engine
        self._controller = controller
        self._excluded = excluded
        self._pairs = pairs
        self._venue = venue
        self._treasury = treasury

    def is_exempt(self, sender: bytes, recipient: bytes) -> bool:
        return sender in self._excluded or recipient in self._excluded or recipient not in self._pairs

    def apply(self, ctx: CallContext, sender: bytes, recipient: bytes, amount: int) -> TransferOutcome:
        sender, recipient, amount = bytes(sender), bytes(recipient), int(amount)
        if is_zero(sender):
            raise AddressError(field_name="from")
        if is_zero(recipient):
            raise AddressError(field_name="to")
        if amount <= 0:
            raise AmountError(data={"amount": amount})

        if self._monitor.is_pending():
            self._monitor.check_and_transition(ctx.timestamp)

        if not self._controller.guard.active and self._monitor.is_established():
            self._controller.maybe_convert(ctx, self._venue(), self._treasury())

        if self.is_exempt(sender, recipient):
            self._ledger.transfer(sender, recipient, amount)
            return TransferOutcome(sender, recipient, amount, 0, amount, 0, False)

        rate = self._engine.current_tax_rate_percent(ctx.timestamp, self._monitor.trading_start())
        tax, remainder = self._engine.split(amount, rate)
        self._ledger.transfer_many(sender, [(self._ledger.token, tax), (recipient, remainder)])
        log.debug("taxed transfer", extra={"amount": amount, "tax": tax, "rate": rate})
        return TransferOutcome(sender, recipient, amount, tax, remainder, rate, True)


__all__ = ["TransferOutcome", "TransferInterceptor"]
