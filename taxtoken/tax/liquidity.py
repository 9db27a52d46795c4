"""
taxtoken.tax.liquidity — one-way detection of the first liquidity deposit.

The token starts `Pending(trading_start=deploy time)`. The first time any
designated pair is observed holding a positive token balance the state moves
to `Established(trading_start=now)`, which restarts the tax schedule clock.
There is no way back: later pair balances (including a pair draining to zero)
never reset the trading start.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from taxtoken.errors import LiquidityAlreadyEstablished
from taxtoken.state.journal import META, Journal
from taxtoken.state.ledger import Ledger
from taxtoken.state.sets import AddressSet
from taxtoken.types.events import EVT_LIQUIDITY, TokenEvent

log = logging.getLogger(__name__)

STATE_KEY = "liquidity"


@dataclass(frozen=True)
class Pending:
    trading_start: int

    @property
    def tag(self) -> str:
        return "pending"


@dataclass(frozen=True)
class Established:
    trading_start: int

    @property
    def tag(self) -> str:
        return "established"


LiquidityState = Union[Pending, Established]


class LiquidityMonitor:
    def __init__(self, journal: Journal, ledger: Ledger, pairs: AddressSet) -> None:
        self._j = journal
        self._ledger = ledger
        self._pairs = pairs

    def init(self, trading_start: int) -> None:
        self._j.set(META, STATE_KEY, Pending(int(trading_start)))

    def state(self) -> LiquidityState:
        st = self._j.get(META, STATE_KEY)
        if st is None:
            raise RuntimeError("liquidity state not initialized")
        return st

    def is_pending(self) -> bool:
        return isinstance(self.state(), Pending)

    def is_established(self) -> bool:
        return isinstance(self.state(), Established)

    def trading_start(self) -> int:
        return self.state().trading_start

    def check_and_transition(self, now: int) -> bool:
        """
        Move Pending → Established(now) if any designated pair holds tokens.
        Returns True when the transition happened.
        """
        if self.is_established():
            raise LiquidityAlreadyEstablished()
        for pair in self._pairs:
            if self._ledger.balance_of(pair) > 0:
                self._j.set(META, STATE_KEY, Established(int(now)))
                self._j.emit(
                    TokenEvent(self._ledger.token, EVT_LIQUIDITY, {"pair": pair, "trading_start": int(now)})
                )
                log.info("liquidity established", extra={"pair": pair, "trading_start": int(now)})
                return True
        return False


__all__ = ["Pending", "Established", "LiquidityState", "LiquidityMonitor", "STATE_KEY"]
