import pytest

from taxtoken.exchange.memory import InMemoryExchange
from taxtoken.runtime.host import Host
from taxtoken.state import snapshot
from taxtoken.tax.liquidity import Established

from .conftest import ALICE, BOB, DEPLOYER, START, TREASURY, make_config


def test_dumps_is_deterministic(established):
    assert snapshot.dumps(established) == snapshot.dumps(established)


def test_restore_roundtrip(established, host, pool):
    token = established
    token.approve(host.context(ALICE), BOB, 77)
    token.transfer(host.context(ALICE), pool, 1_000)
    blob = snapshot.dumps(token)

    host2 = Host(start_time=host.now())
    InMemoryExchange(host2)
    copy = snapshot.restore(host2, blob, config=make_config())

    assert copy.address == token.address
    assert copy.name() == token.name() and copy.symbol() == token.symbol()
    assert copy.total_supply() == token.total_supply()
    for who in (DEPLOYER, ALICE, BOB, pool, token.address):
        assert copy.balance_of(who) == token.balance_of(who)
    assert copy.allowance(ALICE, BOB) == 77
    assert copy.owner() == DEPLOYER
    assert copy.treasury() == TREASURY
    assert copy.is_excluded(DEPLOYER) and copy.is_designated_pair(pool)
    assert isinstance(copy.liquidity_state(), Established)
    assert copy.trading_start() == token.trading_start()
    assert snapshot.dumps(copy) == blob


def test_restored_token_keeps_working(established, host):
    blob = snapshot.dumps(established)
    host2 = Host(start_time=START)
    InMemoryExchange(host2)
    copy = snapshot.restore(host2, blob, config=make_config())
    copy.transfer(host2.context(ALICE), BOB, 5)
    assert copy.balance_of(BOB) == 5


def test_malformed_snapshot():
    with pytest.raises(snapshot.SnapshotError):
        snapshot.loads(b"\xa2\x61")  # truncated map
    with pytest.raises(snapshot.SnapshotError):
        snapshot.loads(b"\xa1\x61v\x02")  # {"v": 2}
