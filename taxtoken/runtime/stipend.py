"""
taxtoken.runtime.stipend — StipendMeter, the work budget of a receive hook.

When the host delivers reference currency to an address it invokes the
recipient's receive hook with a meter. A forward from the token to the
treasury passes a small fixed stipend (config `forward_stipend`, default
2300), so a treasury whose hook does more than a trivial amount of work
fails and the whole delivery is undone.

`StipendMeter(None)` is unbounded; used for top-level deliveries.
"""

from __future__ import annotations

from typing import Optional

from taxtoken.errors import ExternalCallError


class StipendExhausted(ExternalCallError):
    """A receive hook consumed more than its stipend."""

    def __init__(self, message: str = "stipend exhausted", *, reason: Optional[str] = None):
        super().__init__(message, reason=reason or "stipend")


class StipendMeter:
    """
    Deterministic work meter.

    Parameters
    ----------
    limit : Optional[int]
        Units available to the hook; None for unbounded.
    """

    __slots__ = ("_limit", "_used")

    def __init__(self, limit: Optional[int] = None) -> None:
        if limit is not None and int(limit) < 0:
            raise ValueError("stipend must be non-negative")
        self._limit: Optional[int] = None if limit is None else int(limit)
        self._used: int = 0

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def used(self) -> int:
        return self._used

    @property
    def bounded(self) -> bool:
        return self._limit is not None

    @property
    def remaining(self) -> Optional[int]:
        if self._limit is None:
            return None
        rem = self._limit - self._used
        return rem if rem > 0 else 0

    def debit(self, amount: int, *, reason: Optional[str] = None) -> None:
        """Consume `amount` units, raising StipendExhausted if too few remain."""
        amt = int(amount)
        if amt < 0:
            raise ValueError("stipend amount must be non-negative")
        rem = self.remaining
        if rem is not None and amt > rem:
            raise StipendExhausted(reason=reason)
        self._used += amt

    def try_debit(self, amount: int) -> bool:
        amt = int(amount)
        if amt < 0:
            return False
        rem = self.remaining
        if rem is not None and amt > rem:
            return False
        self._used += amt
        return True

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"StipendMeter(limit={self._limit}, used={self._used})"


__all__ = ["StipendMeter", "StipendExhausted"]
