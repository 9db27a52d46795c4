"""
taxtoken.exchange.memory — constant-product venue living on a `Host`.

A small router + factory pair for simulations and tests. Pools hold the token
on the token's own ledger and the reference currency on the host's value
ledger; recorded reserves live in the host world-state journal so they roll
back with the call that moved them.

Swap math (x·y=k with an LP fee in basis points):

    in_net  = amount_in * (10_000 - fee_bps)
    out     = in_net * reserve_ref // (reserve_token * 10_000 + in_net)

The input amount is measured, not trusted: it is the pool's token balance
minus the recorded reserve after the pull, so tokens that tax transfers into
the pool are handled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from taxtoken.errors import ExternalCallError, ValidationError
from taxtoken.runtime.host import Host
from taxtoken.types.address import HexLike, derive_address, to_address, to_hex
from taxtoken.types.context import CallContext
from taxtoken.uint import BPS

from .adapter import ConversionOk

log = logging.getLogger(__name__)

RESERVES = "pool_reserves"


@dataclass(frozen=True)
class Pool:
    address: bytes
    token: bytes
    reference: bytes


def _pair_key(a: bytes, b: bytes) -> Tuple[bytes, bytes]:
    return (a, b) if a <= b else (b, a)


def quote_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """Constant-product output for `amount_in`, floor-rounded."""
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0
    in_net = amount_in * (BPS - fee_bps)
    return (in_net * reserve_out) // (reserve_in * BPS + in_net)


class InMemoryExchange:
    """
    Parameters
    ----------
    host : Host
    fee_bps : int
        LP fee, default 30 (0.30%).
    label : str
        Seed for the router/factory/reference addresses, so several venues can
        coexist on one host.
    """

    def __init__(self, host: Host, *, fee_bps: int = 30, label: str = "venue") -> None:
        if not 0 <= fee_bps < BPS:
            raise ValueError("fee_bps must be within [0, 10000)")
        self.host = host
        self.fee_bps = int(fee_bps)
        self.label = label
        self._address = derive_address(f"{label}:router")
        self._factory = derive_address(f"{label}:factory")
        self._reference = derive_address(f"{label}:reference")
        self._pools: Dict[Tuple[bytes, bytes], Pool] = {}
        host.register_contract(self._address, self)

    # ------------------------------------------------------------------ #
    # ExchangeAdapter surface
    # ------------------------------------------------------------------ #

    @property
    def address(self) -> bytes:
        return self._address

    def pool_address(self) -> bytes:
        return self._factory

    def reference_currency_address(self) -> bytes:
        return self._reference

    def create_pool(self, token_a: bytes, token_b: bytes) -> bytes:
        a, b = bytes(token_a), bytes(token_b)
        if a == b:
            raise ValidationError("identical pool tokens", code="IDENTICAL_TOKENS")
        key = _pair_key(a, b)
        if key in self._pools:
            raise ExternalCallError("pool exists", reason="pool_exists",
                                    data={"pool": to_hex(self._pools[key].address)})
        if self._reference not in key:
            raise ValidationError("pools must pair with the reference currency", code="BAD_PAIR")
        token = a if b == self._reference else b
        addr = derive_address(f"{self.label}:pool:{key[0].hex()}:{key[1].hex()}")
        self._pools[key] = Pool(address=addr, token=token, reference=self._reference)
        log.debug("pool created", extra={"pool": addr, "pair_token": token})
        return addr

    def lookup_pool(self, token_a: bytes, token_b: bytes) -> Optional[bytes]:
        pool = self._pools.get(_pair_key(bytes(token_a), bytes(token_b)))
        return pool.address if pool else None

    def convert_to_reference_currency(
        self,
        ctx: CallContext,
        amount: int,
        min_out: int,
        path: Sequence[bytes],
        recipient: bytes,
        deadline: int,
    ) -> ConversionOk:
        """Swap exact tokens for reference currency, supporting fee-on-transfer."""
        if ctx.timestamp > deadline:
            raise ExternalCallError("transaction expired", reason="expired",
                                    data={"deadline": deadline, "now": ctx.timestamp})
        if len(path) != 2 or bytes(path[1]) != self._reference:
            raise ExternalCallError("invalid path", reason="path")
        pool = self._pool_for(bytes(path[0]))
        token = self.host.contract_at(pool.token)
        r_token, r_ref = self.reserves(pool.address)

        with self.host.atomic():
            token.transfer_from(ctx.with_sender(self._address), ctx.sender, pool.address, amount)
            amount_in = token.balance_of(pool.address) - r_token
            out = quote_out(amount_in, r_token, r_ref, self.fee_bps)
            if out <= 0:
                raise ExternalCallError("insufficient liquidity", reason="liquidity",
                                        data={"amount_in": amount_in})
            if out < min_out:
                raise ExternalCallError("insufficient output amount", reason="slippage",
                                        data={"out": out, "min_out": min_out})
            self.host.send_value(pool.address, recipient, out)
            self._set_reserves(pool.address, r_token + amount_in, r_ref - out)

        log.debug("swapped", extra={"pool": pool.address, "amount_in": amount_in, "amount_out": out})
        return ConversionOk(amount_in=amount_in, amount_out=out)

    # ------------------------------------------------------------------ #
    # Liquidity
    # ------------------------------------------------------------------ #

    def add_liquidity(self, ctx: CallContext, token_address: HexLike,
                      amount_token: int, amount_ref: int) -> Tuple[int, int]:
        """
        Deposit `amount_token` (pulled via transfer_from; the provider must have
        approved `address`) plus `amount_ref` reference currency. Returns the
        pool's new reserves.
        """
        pool = self._pool_for(to_address(token_address))
        token = self.host.contract_at(pool.token)
        _, r_ref = self.reserves(pool.address)
        with self.host.atomic():
            token.transfer_from(ctx.with_sender(self._address), ctx.sender, pool.address, amount_token)
            self.host.send_value(ctx.sender, pool.address, amount_ref)
            reserves = (token.balance_of(pool.address), r_ref + int(amount_ref))
            self._set_reserves(pool.address, *reserves)
        log.info("liquidity added", extra={"pool": pool.address,
                                           "reserve_token": reserves[0], "reserve_ref": reserves[1]})
        return reserves

    def reserves(self, pool_address: HexLike) -> Tuple[int, int]:
        r = self.host.state.get(RESERVES, to_address(pool_address), (0, 0))
        return int(r[0]), int(r[1])

    def quote(self, token_address: HexLike, amount_in: int) -> int:
        pool = self._pool_for(to_address(token_address))
        r_token, r_ref = self.reserves(pool.address)
        return quote_out(amount_in, r_token, r_ref, self.fee_bps)

    def _set_reserves(self, pool: bytes, r_token: int, r_ref: int) -> None:
        self.host.state.set(RESERVES, pool, (int(r_token), int(r_ref)))

    def _pool_for(self, token: bytes) -> Pool:
        p = self._pools.get(_pair_key(token, self._reference))
        if p is None:
            raise ExternalCallError("no pool for token", reason="no_pool", data={"token": to_hex(token)})
        return p


__all__ = ["InMemoryExchange", "Pool", "quote_out"]
