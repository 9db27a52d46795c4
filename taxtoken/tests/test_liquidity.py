import pytest

from taxtoken.errors import LiquidityAlreadyEstablished
from taxtoken.tax.liquidity import Established, Pending

from .conftest import ALICE, BOB, DAY, DEPLOYER, LIQ_TOKENS, START, seed_liquidity


def test_starts_pending_at_deploy_time(token):
    assert token.liquidity_state() == Pending(START)


def test_deposit_is_detected_on_next_transfer(host, venue, token, pool, sink):
    seed_liquidity(host, venue, token)
    # The deposit itself moved tokens after the check ran.
    assert token.monitor.is_pending()
    assert token.balance_of(pool) == LIQ_TOKENS

    host.advance(3 * DAY)
    token.transfer(host.context(DEPLOYER), ALICE, 10)
    assert token.liquidity_state() == Established(START + 3 * DAY)
    assert "LiquidityEstablished" in sink.names()


def test_check_without_pair_balance_is_noop(host, token):
    assert token.monitor.check_and_transition(host.now()) is False
    assert token.monitor.is_pending()


def test_check_after_established_raises(established, host):
    with pytest.raises(LiquidityAlreadyEstablished):
        established.monitor.check_and_transition(host.now())


def test_trading_start_never_resets(established, host, pool):
    start = established.trading_start()
    host.advance(10 * DAY)
    established.transfer(host.context(ALICE), pool, 1_000)
    established.transfer(host.context(DEPLOYER), BOB, 5)
    assert established.trading_start() == start


def test_any_designated_pair_counts(host, token):
    other = bytes.fromhex("11" * 20)
    token.set_designated_pair(host.context(DEPLOYER), other, True)
    token.transfer(host.context(DEPLOYER), other, 1)
    host.advance(DAY)
    token.transfer(host.context(DEPLOYER), ALICE, 1)
    assert token.liquidity_state() == Established(START + DAY)


def test_schedule_clock_restarts_at_establishment(host, venue, token, pool):
    token.transfer(host.context(DEPLOYER), ALICE, 10_000)
    host.advance(400 * DAY)
    assert token.current_tax_rate_percent() == 5

    seed_liquidity(host, venue, token)
    token.transfer(host.context(DEPLOYER), BOB, 1)
    assert token.current_tax_rate_percent() == 10

    host.advance(DAY)
    out = token.transfer(host.context(ALICE), pool, 1_000)
    assert out.rate == 10
