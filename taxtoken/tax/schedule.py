"""
taxtoken.tax.schedule — the sale-tax rate as a function of time since trading
started, and the floor-rounded tax split.
"""

from __future__ import annotations

from typing import Optional, Tuple

from taxtoken.config import TaxSchedule
from taxtoken.uint import percent_split


class TransferTaxEngine:
    def __init__(self, schedule: Optional[TaxSchedule] = None) -> None:
        self.schedule = schedule or TaxSchedule()

    def current_tax_rate_percent(self, now: int, trading_start: int) -> int:
        """Rate in whole percent; a clock before `trading_start` reads as zero elapsed."""
        return self.schedule.rate_for_elapsed(max(0, int(now) - int(trading_start)))

    @staticmethod
    def split(amount: int, rate: int) -> Tuple[int, int]:
        """(tax, remainder) with tax = floor(amount * rate / 100)."""
        return percent_split(amount, rate)


__all__ = ["TransferTaxEngine"]
