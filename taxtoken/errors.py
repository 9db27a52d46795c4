"""
taxtoken.errors — typed failures for the tax token ledger.

Every public operation on the token either commits fully or raises one of the
exceptions below, in which case the journal is rolled back and no state change
is observable. Exceptions carry a stable machine `code` plus an optional,
JSON-friendly `data` payload so higher layers (CLI, logs) can render them.

Hierarchy
---------
TokenError (base)
 ├─ ValidationError          : malformed request (zero address, zero amount)
 │   ├─ AddressError
 │   └─ AmountError
 ├─ AuthorizationError       : privileged call by a non-owner
 ├─ StateError               : operation not allowed in the current state
 │   ├─ LiquidityAlreadyEstablished
 │   ├─ VenueLocked
 │   ├─ ZeroAmount
 │   └─ SwapInProgress
 ├─ LedgerArithmeticError    : balance math would go negative or overflow u256
 │   ├─ InsufficientBalance
 │   ├─ InsufficientAllowance
 │   └─ ArithmeticOverflow
 ├─ ExternalCallError        : the exchange venue failed a conversion
 └─ ValueForwardError        : incoming reference currency could not be forwarded

Notes
-----
* `ExternalCallError` raised by a venue during the *automatic* conversion is
  turned into a `ConversionFailed` value and discarded (see
  `taxtoken.exchange.adapter.call_conversion`). All other classes abort the call.
* The module imports nothing from the rest of the package so it can be used
  from the lowest layers without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class TokenError(Exception):
    """
    Base token error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'INSUFFICIENT_BALANCE').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "token error"
    code: str = "TOKEN_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _merge(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = dict(data or {})
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


# -------- validation ---------------------------------------------------------


class ValidationError(TokenError):
    def __init__(
        self,
        message: str = "invalid request",
        *,
        code: str = "VALIDATION",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, data=data)


class AddressError(ValidationError):
    """Sender, recipient, spender or treasury is the zero address."""

    def __init__(
        self,
        message: str = "zero address",
        *,
        field_name: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code="ZERO_ADDRESS", data=_merge(data, field=field_name))


class AmountError(ValidationError):
    def __init__(self, message: str = "amount must be positive", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="BAD_AMOUNT", data=data)


# -------- authorization -----------------------------------------------------


class AuthorizationError(TokenError):
    """Privileged operation attempted by someone other than the current owner."""

    def __init__(
        self,
        message: str = "caller is not the owner",
        *,
        caller: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="NOT_OWNER", data=_merge(data, caller=caller))


# -------- state ---------------------------------------------------------------


class StateError(TokenError):
    def __init__(
        self,
        message: str = "operation not allowed in current state",
        *,
        code: str = "STATE",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, data=data)


class LiquidityAlreadyEstablished(StateError):
    def __init__(self, message: str = "liquidity already established", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="LIQUIDITY_ESTABLISHED", data=data)


class VenueLocked(StateError):
    """The venue adapter may not change once trading has begun."""

    def __init__(self, message: str = "venue cannot change after liquidity is established", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VENUE_LOCKED", data=data)


class ZeroAmount(StateError):
    def __init__(
        self,
        message: str = "nothing to process",
        *,
        requested: Optional[int] = None,
        held: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code="ZERO_AMOUNT", data=_merge(data, requested=requested, held=held))


class SwapInProgress(StateError):
    def __init__(self, message: str = "conversion already in progress", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="SWAP_IN_PROGRESS", data=data)


# -------- arithmetic ----------------------------------------------------------


class LedgerArithmeticError(TokenError):
    def __init__(
        self,
        message: str = "ledger arithmetic error",
        *,
        code: str = "ARITHMETIC",
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, data=data)


class InsufficientBalance(LedgerArithmeticError):
    def __init__(
        self,
        message: str = "insufficient balance",
        *,
        account: Optional[str] = None,
        balance: Optional[int] = None,
        needed: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code="INSUFFICIENT_BALANCE",
            data=_merge(data, account=account, balance=balance, needed=needed),
        )


class InsufficientAllowance(LedgerArithmeticError):
    def __init__(
        self,
        message: str = "insufficient allowance",
        *,
        allowance: Optional[int] = None,
        needed: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code="INSUFFICIENT_ALLOWANCE",
            data=_merge(data, allowance=allowance, needed=needed),
        )


class ArithmeticOverflow(LedgerArithmeticError):
    def __init__(self, message: str = "u256 overflow", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="OVERFLOW", data=data)


# -------- external ------------------------------------------------------------


class ExternalCallError(TokenError):
    """
    Failure reported by (or raised from) the exchange venue.

    Usage:
        raise ExternalCallError("insufficient liquidity", reason="reserves")
    """

    def __init__(
        self,
        message: str = "external call failed",
        *,
        reason: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="EXTERNAL_CALL", data=_merge(data, reason=reason))


class ValueForwardError(TokenError):
    def __init__(
        self,
        message: str = "forwarding to treasury failed",
        *,
        to: Optional[str] = None,
        amount: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="FORWARD_FAILED", data=_merge(data, to=to, amount=amount))


__all__ = [
    "TokenError",
    "ValidationError",
    "AddressError",
    "AmountError",
    "AuthorizationError",
    "StateError",
    "LiquidityAlreadyEstablished",
    "VenueLocked",
    "ZeroAmount",
    "SwapInProgress",
    "LedgerArithmeticError",
    "InsufficientBalance",
    "InsufficientAllowance",
    "ArithmeticOverflow",
    "ExternalCallError",
    "ValueForwardError",
]
