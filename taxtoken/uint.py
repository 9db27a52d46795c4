"""
taxtoken.uint — checked u256 arithmetic for ledger balances.

Balances, allowances and supply are unsigned 256-bit integers. Python ints are
unbounded, so every write goes through these helpers to keep the envelope
explicit: "checked" variants raise instead of wrapping or clamping.

- Integer-only; no floats anywhere in the ledger.
- Rounding is always floor (`mul_div_down`), matching the tax split rule.
"""

from __future__ import annotations

from typing import Final, Tuple

from .errors import ArithmeticOverflow, InsufficientBalance

U256_MAX: Final[int] = (1 << 256) - 1

PERCENT: Final[int] = 100
BPS: Final[int] = 10_000


def is_u256(n: int) -> bool:
    """Return True iff 0 <= n <= U256_MAX."""
    return isinstance(n, int) and not isinstance(n, bool) and 0 <= n <= U256_MAX


def require_u256(*xs: int) -> None:
    for x in xs:
        if not is_u256(x):
            raise ArithmeticOverflow("value outside u256 range", data={"value": str(x)})


def checked_add(x: int, y: int) -> int:
    """x + y, raising ArithmeticOverflow past U256_MAX."""
    require_u256(x, y)
    z = x + y
    if z > U256_MAX:
        raise ArithmeticOverflow(data={"lhs": str(x), "rhs": str(y)})
    return z


def checked_sub(x: int, y: int) -> int:
    """x - y, raising InsufficientBalance when y > x."""
    require_u256(x, y)
    if y > x:
        raise InsufficientBalance(balance=x, needed=y)
    return x - y


def mul_div_down(a: int, b: int, d: int) -> int:
    """floor(a * b / d) for non-negative a, b and positive d."""
    require_u256(a, b)
    if d <= 0:
        raise ValueError("divisor must be positive")
    return (a * b) // d


def percent_split(amount: int, rate_percent: int) -> Tuple[int, int]:
    """
    Split `amount` into (part, rest) where part = floor(amount * rate / 100).

    part never exceeds amount for 0 <= rate <= 100, and part + rest == amount.
    """
    if not 0 <= rate_percent <= PERCENT:
        raise ValueError("rate_percent must be within [0, 100]")
    part = mul_div_down(amount, rate_percent, PERCENT)
    return part, amount - part


__all__ = [
    "U256_MAX",
    "PERCENT",
    "BPS",
    "is_u256",
    "require_u256",
    "checked_add",
    "checked_sub",
    "mul_div_down",
    "percent_split",
]
