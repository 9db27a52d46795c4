"""
taxtoken.exchange.adapter — the venue interface the token converts through.

The token never talks to a venue's internals. It approves the adapter's
`address` as a spender, asks `lookup_pool` / `create_pool` for the
token/reference pool, and calls `convert_to_reference_currency` with the usual
router parameters (amount in, minimum out, path, recipient, deadline) of a
fee-on-transfer-supporting swap.

`call_conversion` is the only place where an adapter failure is turned into a
`ConversionFailed` value; every other component lets errors propagate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

from taxtoken.errors import ExternalCallError, TokenError
from taxtoken.types.context import CallContext

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionOk:
    amount_in: int
    amount_out: int


@dataclass(frozen=True)
class ConversionFailed:
    error: ExternalCallError

    @property
    def reason(self) -> Optional[str]:
        return (self.error.data or {}).get("reason")


ConversionResult = Union[ConversionOk, ConversionFailed]


@runtime_checkable
class ExchangeAdapter(Protocol):
    """Venue collaborator (router + pool registry)."""

    @property
    def address(self) -> bytes:
        """Router address; the spender the token approves."""

    def pool_address(self) -> bytes:
        """Address of the venue's pool registry (factory)."""

    def reference_currency_address(self) -> bytes:
        ...

    def create_pool(self, token_a: bytes, token_b: bytes) -> bytes:
        ...

    def lookup_pool(self, token_a: bytes, token_b: bytes) -> Optional[bytes]:
        ...

    def convert_to_reference_currency(
        self,
        ctx: CallContext,
        amount: int,
        min_out: int,
        path: Sequence[bytes],
        recipient: bytes,
        deadline: int,
    ) -> ConversionResult:
        """
        Sell exactly `amount` of path[0] (pulled from ctx.sender via
        transfer_from) for at least `min_out` reference currency delivered to
        `recipient`. May raise, or return ConversionFailed.
        """


def call_conversion(
    adapter: ExchangeAdapter,
    ctx: CallContext,
    amount: int,
    *,
    min_out: int,
    path: Sequence[bytes],
    recipient: bytes,
    deadline: int,
) -> ConversionResult:
    """
    Invoke the adapter and normalize the outcome.

    Any failure raised by the venue (or by calls it makes back into the token)
    becomes `ConversionFailed(ExternalCallError)`; the original error is
    chained as `__cause__`. Only a malformed return value raises.
    """
    try:
        result = adapter.convert_to_reference_currency(
            ctx, amount, min_out, list(path), recipient, deadline
        )
    except ExternalCallError as e:
        return ConversionFailed(e)
    except TokenError as e:
        wrapped = ExternalCallError(e.message, reason=e.code.lower(), data=e.data)
        wrapped.__cause__ = e
        return ConversionFailed(wrapped)
    except Exception as e:
        wrapped = ExternalCallError(str(e) or "venue raised", reason=type(e).__name__)
        wrapped.__cause__ = e
        return ConversionFailed(wrapped)

    if isinstance(result, (ConversionOk, ConversionFailed)):
        return result
    raise TypeError(f"adapter returned {type(result).__name__}, expected a conversion result")


def resolve_pool(adapter: ExchangeAdapter, token: bytes, reference: bytes) -> bytes:
    """Existing token/reference pool on the venue, created if missing."""
    pool = adapter.lookup_pool(token, reference)
    if pool is None:
        pool = adapter.create_pool(token, reference)
        log.info("created pool on venue", extra={"pool": pool})
    return pool


__all__ = [
    "ConversionOk",
    "ConversionFailed",
    "ConversionResult",
    "ExchangeAdapter",
    "call_conversion",
    "resolve_pool",
]
