"""
taxtoken.token — the TaxToken facade.

Wires the ledger, access control, liquidity monitor, tax engine, auto-swap
controller and transfer interceptor around one journal, and exposes the public
token surface. Every public method takes an explicit `CallContext` and runs
inside `_transaction`: host lock + nested journal checkpoint (token state and
host world state), committed on success and reverted on any exception.
Events reach the sink only when the outermost call commits.

Typical usage
-------------
    host = Host(start_time=1_700_000_000)
    venue = InMemoryExchange(host)
    token = TaxToken(host, venue, owner=deployer, treasury=treasury)
    token.transfer(host.context(deployer), alice, 1_000)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from typing import Any, Dict, Iterator, List, Optional

from taxtoken import logging as tlog
from taxtoken.access import AccessControl
from taxtoken.config import TokenConfig, get_config
from taxtoken.errors import (AddressError, InsufficientAllowance, ValueForwardError,
                             TokenError, VenueLocked)
from taxtoken.exchange.adapter import ConversionOk, ExchangeAdapter, resolve_pool
from taxtoken.runtime.host import Host
from taxtoken.runtime.stipend import StipendMeter
from taxtoken.state.events import EventSink, sink_from_path
from taxtoken.state.journal import EXCLUDED, META, PAIRS, Journal
from taxtoken.state.ledger import Ledger
from taxtoken.state.sets import AddressSet
from taxtoken.tax.autoswap import AutoSwapController
from taxtoken.tax.interceptor import TransferInterceptor, TransferOutcome
from taxtoken.tax.liquidity import LiquidityMonitor, LiquidityState
from taxtoken.tax.schedule import TransferTaxEngine
from taxtoken.types.address import HexLike, derive_address, is_zero, to_address, to_hex
from taxtoken.types.context import CallContext
from taxtoken.types.events import (EVT_EXCLUDED, EVT_FORWARDED, EVT_PAIR, EVT_TREASURY,
                                   EVT_VENUE, TokenEvent)
from taxtoken.uint import checked_add

log = logging.getLogger(__name__)

DEFAULT_SUPPLY = 1_500_000_000 * 10**18

NAME_KEY = "name"
SYMBOL_KEY = "symbol"
DECIMALS_KEY = "decimals"
TREASURY_KEY = "treasury"
VENUE_KEY = "venue"


class TaxToken:
    def __init__(
        self,
        host: Host,
        adapter: ExchangeAdapter,
        *,
        owner: HexLike,
        treasury: HexLike,
        name: str = "Tax Token",
        symbol: str = "TAX",
        decimals: int = 18,
        initial_supply: int = DEFAULT_SUPPLY,
        config: Optional[TokenConfig] = None,
        address: Optional[HexLike] = None,
        sink: Optional[EventSink] = None,
        timestamp: Optional[int] = None,
    ) -> None:
        owner_b = to_address(owner)
        addr = to_address(address) if address is not None else derive_address(f"taxtoken:{symbol}:{owner_b.hex()}")
        self._wire(host, addr, config, sink, symbol)

        ctx = CallContext(sender=owner_b, timestamp=host.now() if timestamp is None else timestamp)
        with self._transaction(ctx, "deploy"):
            self._j.set(META, NAME_KEY, str(name))
            self._j.set(META, SYMBOL_KEY, str(symbol))
            self._j.set(META, DECIMALS_KEY, int(decimals))
            self.access.init_owner(owner_b)
            self._set_treasury(to_address(treasury))
            self._set_excluded(owner_b, True)
            self._set_excluded(self.address, True)
            self._install_venue(adapter)
            self.monitor.init(ctx.timestamp)
            self.ledger.mint(owner_b, int(initial_supply))
        log.info("token deployed", extra={"token": self.address, "owner": owner_b,
                                          "supply": int(initial_supply)})

    def _wire(
        self,
        host: Host,
        address: bytes,
        config: Optional[TokenConfig],
        sink: Optional[EventSink],
        label: str,
    ) -> None:
        self.host = host
        self.address = address
        self.config = config or get_config()
        self.sink = sink if sink is not None else sink_from_path(self.config.events_path)
        self._label = label
        self._depth = 0
        self._seq = 0

        self._j = Journal()
        self.ledger = Ledger(self._j, address)
        self.access = AccessControl(self._j, address)
        self.excluded = AddressSet(self._j, EXCLUDED)
        self.pairs = AddressSet(self._j, PAIRS)
        self.monitor = LiquidityMonitor(self._j, self.ledger, self.pairs)
        self.engine = TransferTaxEngine(self.config.schedule)
        self.controller = AutoSwapController(self._j, self.ledger, host, self.access, self.config.swap)
        self.interceptor = TransferInterceptor(
            self.ledger,
            self.monitor,
            self.engine,
            self.controller,
            self.excluded,
            self.pairs,
            venue=self.venue_adapter,
            treasury=self.treasury,
        )
        host.register_contract(address, self)
        host.register_receiver(address, self.receive)

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    @property
    def journal(self) -> Journal:
        return self._j

    @contextmanager
    def _transaction(self, ctx: CallContext, op: str) -> Iterator[None]:
        with self.host.lock:
            outer = self._depth == 0
            scope = tlog.trace_scope(token=self._label, op=op, caller=ctx.sender) if outer else nullcontext()
            with scope:
                marker = self._j.checkpoint()
                self._depth += 1
                try:
                    with self.host.atomic():
                        yield
                except BaseException as e:
                    self._j.revert_to(marker)
                    if outer and isinstance(e, TokenError):
                        log.debug("call reverted", extra={"code": e.code})
                    raise
                finally:
                    self._depth -= 1
                self._j.commit_to(marker)
                if outer:
                    self._release(ctx, self._j.flush())

    def _release(self, ctx: CallContext, events: List[TokenEvent]) -> None:
        for evt in events:
            self.sink.append(evt, seq=self._seq, timestamp=ctx.timestamp)
            self._seq += 1

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def name(self) -> str:
        return str(self._j.get(META, NAME_KEY, ""))

    def symbol(self) -> str:
        return str(self._j.get(META, SYMBOL_KEY, ""))

    def decimals(self) -> int:
        return int(self._j.get(META, DECIMALS_KEY, 18))

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    def balance_of(self, account: HexLike) -> int:
        return self.ledger.balance_of(to_address(account))

    def allowance(self, owner: HexLike, spender: HexLike) -> int:
        return self.ledger.allowance(to_address(owner), to_address(spender))

    def owner(self) -> bytes:
        return self.access.owner()

    def treasury(self) -> bytes:
        return bytes(self._j.get(META, TREASURY_KEY))

    def venue_adapter(self) -> ExchangeAdapter:
        return self.host.contract_at(self._j.get(META, VENUE_KEY))

    def liquidity_state(self) -> LiquidityState:
        return self.monitor.state()

    def trading_start(self) -> int:
        return self.monitor.trading_start()

    def swap_in_progress(self) -> bool:
        return self.controller.guard.active

    def current_tax_rate_percent(self, now: Optional[int] = None) -> int:
        at = self.host.now() if now is None else int(now)
        return self.engine.current_tax_rate_percent(at, self.monitor.trading_start())

    def is_excluded(self, account: HexLike) -> bool:
        return to_address(account) in self.excluded

    def is_designated_pair(self, account: HexLike) -> bool:
        return to_address(account) in self.pairs

    # ------------------------------------------------------------------ #
    # Token operations
    # ------------------------------------------------------------------ #

    def transfer(self, ctx: CallContext, to: HexLike, amount: int) -> TransferOutcome:
        with self._transaction(ctx, "transfer"):
            return self.interceptor.apply(ctx, ctx.sender, to_address(to), amount)

    def transfer_from(self, ctx: CallContext, owner: HexLike, to: HexLike, amount: int) -> TransferOutcome:
        with self._transaction(ctx, "transfer_from"):
            src = to_address(owner)
            self.ledger.spend_allowance(src, ctx.sender, int(amount))
            return self.interceptor.apply(ctx, src, to_address(to), amount)

    def approve(self, ctx: CallContext, spender: HexLike, amount: int) -> bool:
        with self._transaction(ctx, "approve"):
            self.ledger.approve(ctx.sender, to_address(spender), int(amount))
        return True

    def increase_allowance(self, ctx: CallContext, spender: HexLike, added: int) -> bool:
        with self._transaction(ctx, "increase_allowance"):
            sp = to_address(spender)
            current = self.ledger.allowance(ctx.sender, sp)
            self.ledger.approve(ctx.sender, sp, checked_add(current, int(added)))
        return True

    def decrease_allowance(self, ctx: CallContext, spender: HexLike, subtracted: int) -> bool:
        with self._transaction(ctx, "decrease_allowance"):
            sp = to_address(spender)
            current = self.ledger.allowance(ctx.sender, sp)
            if int(subtracted) > current:
                raise InsufficientAllowance("decreased allowance below zero",
                                            allowance=current, needed=int(subtracted))
            self.ledger.approve(ctx.sender, sp, current - int(subtracted))
        return True

    def burn(self, ctx: CallContext, amount: int) -> None:
        with self._transaction(ctx, "burn"):
            self.ledger.burn(ctx.sender, int(amount))

    # ------------------------------------------------------------------ #
    # Admin
    # ------------------------------------------------------------------ #

    def set_excluded(self, ctx: CallContext, account: HexLike, excluded: bool) -> None:
        with self._transaction(ctx, "set_excluded"):
            self.access.authorize(ctx)
            self._set_excluded(to_address(account), bool(excluded))

    def set_designated_pair(self, ctx: CallContext, pair: HexLike, designated: bool) -> None:
        with self._transaction(ctx, "set_designated_pair"):
            self.access.authorize(ctx)
            addr = to_address(pair)
            if is_zero(addr):
                raise AddressError(field_name="pair")
            self._set_pair(addr, bool(designated))

    def set_treasury(self, ctx: CallContext, treasury: HexLike) -> None:
        with self._transaction(ctx, "set_treasury"):
            self.access.authorize(ctx)
            self._set_treasury(to_address(treasury))

    def set_venue_adapter(self, ctx: CallContext, adapter: ExchangeAdapter) -> bytes:
        """Swap the venue while liquidity is Pending; returns the designated pool."""
        with self._transaction(ctx, "set_venue_adapter"):
            self.access.authorize(ctx)
            if self.monitor.is_established():
                raise VenueLocked()
            return self._install_venue(adapter)

    def burn_tax_tokens(self, ctx: CallContext, amount: int) -> int:
        with self._transaction(ctx, "burn_tax_tokens"):
            cap = self.access.authorize(ctx)
            return self.controller.burn_tax_tokens(cap, amount)

    def force_convert(self, ctx: CallContext, amount: int) -> ConversionOk:
        with self._transaction(ctx, "force_convert"):
            cap = self.access.authorize(ctx)
            return self.controller.force_convert(cap, ctx, amount, self.venue_adapter(), self.treasury())

    def transfer_ownership(self, ctx: CallContext, new_owner: HexLike) -> None:
        with self._transaction(ctx, "transfer_ownership"):
            cap = self.access.authorize(ctx)
            self.access.transfer_ownership(cap, to_address(new_owner))

    def renounce_ownership(self, ctx: CallContext) -> None:
        with self._transaction(ctx, "renounce_ownership"):
            cap = self.access.authorize(ctx)
            self.access.renounce_ownership(cap)

    # ------------------------------------------------------------------ #
    # Incoming reference currency
    # ------------------------------------------------------------------ #

    def receive(self, ctx: CallContext, meter: StipendMeter) -> None:
        """Forward everything delivered to the token on to the treasury."""
        if ctx.value == 0:
            return
        with self._transaction(ctx, "receive"):
            treasury = self.treasury()
            try:
                self.host.send_value(self.address, treasury, ctx.value, stipend=self.config.forward_stipend)
            except TokenError as e:
                log.warning("forward to treasury failed", extra={"to": treasury, "code": e.code})
                raise ValueForwardError(to=to_hex(treasury), amount=ctx.value) from e
            self._j.emit(TokenEvent(self.address, EVT_FORWARDED,
                                    {"from": ctx.sender, "to": treasury, "value": ctx.value}))

    # ------------------------------------------------------------------ #
    # Internals (no authorization; callers check)
    # ------------------------------------------------------------------ #

    def _set_excluded(self, account: bytes, flag: bool) -> None:
        self.excluded.set(account, flag)
        self._j.emit(TokenEvent(self.address, EVT_EXCLUDED, {"account": account, "excluded": flag}))
        log.info("exclusion changed", extra={"account": account, "excluded": flag})

    def _set_pair(self, pair: bytes, flag: bool) -> None:
        self.pairs.set(pair, flag)
        self._j.emit(TokenEvent(self.address, EVT_PAIR, {"pair": pair, "designated": flag}))
        log.info("designated pair changed", extra={"pair": pair, "designated": flag})

    def _set_treasury(self, treasury: bytes) -> None:
        # receive() forwards to the treasury, so the token cannot be its own.
        if is_zero(treasury) or treasury == self.address:
            raise AddressError(field_name="treasury")
        prev = self._j.get(META, TREASURY_KEY)
        self._j.set(META, TREASURY_KEY, treasury)
        self._j.emit(TokenEvent(self.address, EVT_TREASURY, {"previous": prev, "new": treasury}))
        log.info("treasury changed", extra={"treasury": treasury})

    def _install_venue(self, adapter: ExchangeAdapter) -> bytes:
        self.host.register_contract(adapter.address, adapter)
        prev = self._j.get(META, VENUE_KEY)
        self._j.set(META, VENUE_KEY, bytes(adapter.address))
        pool = resolve_pool(adapter, self.address, adapter.reference_currency_address())
        self._j.emit(TokenEvent(self.address, EVT_VENUE,
                                {"previous": prev, "new": adapter.address, "pool": pool}))
        self._set_pair(pool, True)
        return pool

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def event_seq(self) -> int:
        return self._seq

    def describe(self) -> Dict[str, Any]:
        st = self.liquidity_state()
        return {
            "address": to_hex(self.address),
            "name": self.name(),
            "symbol": self.symbol(),
            "decimals": self.decimals(),
            "total_supply": self.total_supply(),
            "owner": to_hex(self.owner()),
            "treasury": to_hex(self.treasury()),
            "liquidity": {"state": st.tag, "trading_start": st.trading_start},
            "tax_rate_percent": self.current_tax_rate_percent(),
        }

    def __repr__(self) -> str:
        return f"TaxToken({self._label}@{to_hex(self.address)})"


__all__ = ["TaxToken", "DEFAULT_SUPPLY"]
