"""
Shared fixtures for the token tests.

Addresses are derived from readable tags (sha3_256 → 20 bytes) so failures
print stable values. The default deployment mirrors production: 1.5B supply to
an excluded deployer, the venue pool designated, liquidity Pending.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

import pytest

from taxtoken.config import TokenConfig, load_config
from taxtoken.errors import ExternalCallError
from taxtoken.exchange.adapter import ConversionOk
from taxtoken.exchange.memory import InMemoryExchange
from taxtoken.runtime.host import Host
from taxtoken.state.events import InMemoryEventSink
from taxtoken.token import TaxToken
from taxtoken.types.address import derive_address
from taxtoken.types.context import CallContext

START = 1_700_000_000
DAY = 86_400
SUPPLY = 1_500_000_000

DEPLOYER = derive_address("test:deployer")
TREASURY = derive_address("test:treasury")
ALICE = derive_address("test:alice")
BOB = derive_address("test:bob")
CAROL = derive_address("test:carol")

LIQ_TOKENS = 1_000_000
LIQ_REF = 1_000_000_000


def make_config(**overrides: Any) -> TokenConfig:
    return load_config(env={}, overrides=overrides)


def deploy(host: Host, venue: Any, *, config: Optional[TokenConfig] = None,
           sink: Optional[InMemoryEventSink] = None) -> TaxToken:
    return TaxToken(
        host,
        venue,
        owner=DEPLOYER,
        treasury=TREASURY,
        initial_supply=SUPPLY,
        config=config or make_config(),
        sink=sink if sink is not None else InMemoryEventSink(),
    )


def seed_liquidity(host: Host, venue: InMemoryExchange, token: TaxToken,
                   tokens: int = LIQ_TOKENS, ref: int = LIQ_REF) -> None:
    """Deployer deposits into the pool; the next transfer establishes liquidity."""
    host.fund(DEPLOYER, ref)
    token.approve(host.context(DEPLOYER), venue.address, tokens)
    venue.add_liquidity(host.context(DEPLOYER), token.address, tokens, ref)


class ScriptedVenue:
    """
    ExchangeAdapter whose conversion is a test-supplied callable:
        behaviour(venue, ctx, amount, min_out, path, recipient, deadline)
    The default pulls the tokens into the pool and reports zero output.
    """

    def __init__(self, host: Host, behaviour: Optional[Callable[..., Any]] = None,
                 label: str = "scripted") -> None:
        self.host = host
        self.behaviour = behaviour or ScriptedVenue.pull_only
        self._address = derive_address(f"{label}:router")
        self._factory = derive_address(f"{label}:factory")
        self._reference = derive_address(f"{label}:reference")
        self._pools: dict = {}
        self.calls: List[int] = []

    @property
    def address(self) -> bytes:
        return self._address

    def pool_address(self) -> bytes:
        return self._factory

    def reference_currency_address(self) -> bytes:
        return self._reference

    def create_pool(self, token_a: bytes, token_b: bytes) -> bytes:
        addr = derive_address(f"scripted-pool:{token_a.hex()}")
        self._pools[token_a] = addr
        return addr

    def lookup_pool(self, token_a: bytes, token_b: bytes) -> Optional[bytes]:
        return self._pools.get(token_a)

    def convert_to_reference_currency(self, ctx: CallContext, amount: int, min_out: int,
                                      path: Any, recipient: bytes, deadline: int) -> Any:
        self.calls.append(amount)
        return self.behaviour(self, ctx, amount, min_out, path, recipient, deadline)

    @staticmethod
    def pull_only(venue: "ScriptedVenue", ctx: CallContext, amount: int, *_: Any) -> ConversionOk:
        token = venue.host.contract_at(ctx.sender)
        pool = venue._pools[ctx.sender]
        token.transfer_from(ctx.with_sender(venue.address), ctx.sender, pool, amount)
        return ConversionOk(amount_in=amount, amount_out=0)

    @staticmethod
    def always_fail(venue: "ScriptedVenue", ctx: CallContext, amount: int, *_: Any) -> Any:
        raise ExternalCallError("venue offline", reason="offline")


@pytest.fixture
def host() -> Host:
    return Host(start_time=START)


@pytest.fixture
def venue(host: Host) -> InMemoryExchange:
    return InMemoryExchange(host)


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def token(host: Host, venue: InMemoryExchange, sink: InMemoryEventSink) -> TaxToken:
    return deploy(host, venue, sink=sink)


@pytest.fixture
def pool(token: TaxToken, venue: InMemoryExchange) -> bytes:
    p = venue.lookup_pool(token.address, venue.reference_currency_address())
    assert p is not None
    return p


@pytest.fixture
def established(host: Host, venue: InMemoryExchange, token: TaxToken, pool: bytes) -> TaxToken:
    """Liquidity seeded and detected; alice holds 100_000 tokens."""
    seed_liquidity(host, venue, token)
    token.transfer(host.context(DEPLOYER), ALICE, 100_000)
    assert token.monitor.is_established()
    return token


def supply_conserved(token: TaxToken) -> bool:
    return token.ledger.sum_of_balances() == token.total_supply()
