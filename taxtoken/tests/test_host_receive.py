import pytest

from taxtoken.errors import ExternalCallError, InsufficientBalance, ValueForwardError
from taxtoken.runtime.host import Host
from taxtoken.runtime.stipend import StipendExhausted, StipendMeter

from .conftest import ALICE, BOB, TREASURY


def test_clock():
    h = Host(start_time=100)
    assert h.advance(50) == 150
    with pytest.raises(ValueError):
        h.advance(-1)
    assert h.context(ALICE).timestamp == 150


def test_send_value_moves_and_checks_balance():
    h = Host()
    h.fund(ALICE, 10)
    h.send_value(ALICE, BOB, 4)
    assert (h.native_balance(ALICE), h.native_balance(BOB)) == (6, 4)
    with pytest.raises(InsufficientBalance):
        h.send_value(ALICE, BOB, 7)
    assert h.native_balance(ALICE) == 6


def test_failing_hook_undoes_delivery():
    h = Host()
    h.fund(ALICE, 10)

    def hook(ctx, meter):
        raise KeyError("nope")

    h.register_receiver(BOB, hook)
    with pytest.raises(ExternalCallError):
        h.send_value(ALICE, BOB, 5)
    assert h.native_balance(ALICE) == 10
    assert h.native_balance(BOB) == 0


def test_stipend_meter():
    m = StipendMeter(100)
    m.debit(60)
    assert m.remaining == 40
    assert not m.try_debit(41)
    with pytest.raises(StipendExhausted):
        m.debit(41)
    assert StipendMeter(None).try_debit(10**9)


def test_token_forwards_received_value(host, token, sink):
    host.fund(ALICE, 1_000)
    host.send_value(ALICE, token.address, 700)
    assert host.native_balance(token.address) == 0
    assert host.native_balance(TREASURY) == 700
    rec = list(sink.get_events(name="ProceedsForwarded"))[-1]
    assert rec.args == {"from": ALICE, "to": TREASURY, "value": 700}


def test_cheap_treasury_hook_fits_stipend(host, token):
    seen = []

    def hook(ctx, meter):
        meter.debit(500)
        seen.append(ctx.value)

    host.register_receiver(TREASURY, hook)
    host.fund(ALICE, 10)
    host.send_value(ALICE, token.address, 10)
    assert seen == [10]


def test_expensive_treasury_hook_aborts_deposit(host, token, sink):
    def hook(ctx, meter):
        meter.debit(5_000, reason="storage write")

    host.register_receiver(TREASURY, hook)
    host.fund(ALICE, 10)
    before = len(sink)
    with pytest.raises(ValueForwardError):
        host.send_value(ALICE, token.address, 10)
    assert host.native_balance(ALICE) == 10
    assert host.native_balance(token.address) == 0
    assert host.native_balance(TREASURY) == 0
    assert len(sink) == before
