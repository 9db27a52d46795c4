"""
taxtoken.tax.autoswap — converting held tax into reference currency.

Tax collected by the token sits on the token's own balance. Once liquidity is
established, every transfer gives the controller a chance to sell the whole
held balance through the venue, with proceeds paid straight to the treasury.

Rules
-----
* A guard blocks a second, nested conversion (the venue pulls the tokens with
  `transfer_from`, which re-enters the token). It is process-local, never
  journaled, and released on every exit path.
* The venue is approved for an unlimited allowance the first time it is used.
* Each conversion runs in its own nested checkpoint of both the token journal
  and the host world state. A failed automatic conversion reverts that
  checkpoint, logs a warning, and lets the surrounding transfer proceed.
* Manual variants (`burn_tax_tokens`, `force_convert`) are owner-gated, clip
  the request to the held balance and reject a zero result. A failed forced
  conversion raises.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from taxtoken.access import AccessControl, OwnerCapability
from taxtoken.config import SwapSettings
from taxtoken.errors import SwapInProgress, ZeroAmount
from taxtoken.exchange.adapter import (ConversionFailed, ConversionOk, ConversionResult,
                                       ExchangeAdapter, call_conversion)
from taxtoken.runtime.host import Host
from taxtoken.state.journal import Journal
from taxtoken.state.ledger import Ledger
from taxtoken.types.context import CallContext
from taxtoken.types.events import EVT_CONVERTED, TokenEvent
from taxtoken.uint import U256_MAX

log = logging.getLogger(__name__)


class SwapGuard:
    """Non-reentrant flag scoped to one conversion."""

    __slots__ = ("_active",)

    def __init__(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @contextmanager
    def hold(self) -> Iterator[None]:
        if self._active:
            raise SwapInProgress()
        self._active = True
        try:
            yield
        finally:
            self._active = False


class AutoSwapController:
    def __init__(
        self,
        journal: Journal,
        ledger: Ledger,
        host: Host,
        access: AccessControl,
        swap: Optional[SwapSettings] = None,
    ) -> None:
        self._j = journal
        self._ledger = ledger
        self._host = host
        self._access = access
        self.swap = swap or SwapSettings()
        self.guard = SwapGuard()

    @property
    def token(self) -> bytes:
        return self._ledger.token

    def held(self) -> int:
        return self._ledger.balance_of(self.token)

    # ------------------------------------------------------------------ #
    # Automatic path
    # ------------------------------------------------------------------ #

    def maybe_convert(
        self, ctx: CallContext, adapter: ExchangeAdapter, treasury: bytes
    ) -> Optional[ConversionResult]:
        """Convert the full held balance; failures are logged and discarded."""
        if self.guard.active:
            return None
        held = self.held()
        if held == 0:
            return None
        return self._convert(ctx, held, adapter, treasury, swallow=True)

    # ------------------------------------------------------------------ #
    # Manual path (owner-gated)
    # ------------------------------------------------------------------ #

    def burn_tax_tokens(self, cap: OwnerCapability, amount: int) -> int:
        self._access.check(cap)
        n = self._clip(amount)
        self._ledger.burn(self.token, n)
        log.info("burned held tax", extra={"amount": n})
        return n

    def force_convert(
        self,
        cap: OwnerCapability,
        ctx: CallContext,
        amount: int,
        adapter: ExchangeAdapter,
        treasury: bytes,
    ) -> ConversionOk:
        self._access.check(cap)
        if self.guard.active:
            raise SwapInProgress()
        n = self._clip(amount)
        return self._convert(ctx, n, adapter, treasury, swallow=False)  # type: ignore[return-value]

    def _clip(self, amount: int) -> int:
        held = self.held()
        n = min(int(amount), held)
        if n <= 0:
            raise ZeroAmount(requested=int(amount), held=held)
        return n

    # ------------------------------------------------------------------ #
    # Conversion
    # ------------------------------------------------------------------ #

    def _ensure_allowance(self, adapter: ExchangeAdapter) -> None:
        if self._ledger.allowance(self.token, adapter.address) != U256_MAX:
            self._ledger.approve(self.token, adapter.address, U256_MAX)

    def _convert(
        self,
        ctx: CallContext,
        amount: int,
        adapter: ExchangeAdapter,
        treasury: bytes,
        *,
        swallow: bool,
    ) -> ConversionResult:
        with self.guard.hold():
            self._ensure_allowance(adapter)
            jm = self._j.checkpoint()
            hm = self._host.state.checkpoint()
            try:
                result = call_conversion(
                    adapter,
                    ctx.with_sender(self.token),
                    amount,
                    min_out=self.swap.min_out,
                    path=[self.token, adapter.reference_currency_address()],
                    recipient=treasury,
                    deadline=ctx.timestamp + self.swap.deadline_secs,
                )
            except BaseException:
                self._rollback(jm, hm)
                raise

            if isinstance(result, ConversionFailed):
                self._rollback(jm, hm)
                log.warning(
                    "tax conversion failed",
                    extra={"amount": amount, "reason": result.reason, "swallowed": swallow},
                )
                if not swallow:
                    raise result.error
                return result

            self._j.commit_to(jm)
            self._host.state.commit_to(hm)
            self._j.emit(
                TokenEvent(
                    self.token,
                    EVT_CONVERTED,
                    {"amount_in": result.amount_in, "amount_out": result.amount_out, "treasury": treasury},
                )
            )
            log.info("converted held tax",
                     extra={"amount_in": result.amount_in, "amount_out": result.amount_out})
            return result

    def _rollback(self, jm: int, hm: int) -> None:
        self._host.state.revert_to(hm)
        self._j.revert_to(jm)


__all__ = ["SwapGuard", "AutoSwapController"]
