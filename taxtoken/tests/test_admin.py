import pytest

from taxtoken.errors import AddressError, AuthorizationError, VenueLocked
from taxtoken.exchange.memory import InMemoryExchange
from taxtoken.types.address import ZERO_ADDRESS

from .conftest import ALICE, BOB, CAROL, DEPLOYER, TREASURY


def test_admin_ops_reject_non_owner(host, token, pool):
    ctx = host.context(ALICE)
    with pytest.raises(AuthorizationError):
        token.set_excluded(ctx, ALICE, True)
    with pytest.raises(AuthorizationError):
        token.set_designated_pair(ctx, BOB, True)
    with pytest.raises(AuthorizationError):
        token.set_treasury(ctx, ALICE)
    with pytest.raises(AuthorizationError):
        token.set_venue_adapter(ctx, InMemoryExchange(host, label="rogue"))
    with pytest.raises(AuthorizationError):
        token.transfer_ownership(ctx, ALICE)
    assert not token.is_excluded(ALICE)
    assert token.treasury() == TREASURY


def test_set_excluded_toggles_and_emits(host, token, sink):
    token.set_excluded(host.context(DEPLOYER), ALICE, True)
    assert token.is_excluded(ALICE)
    token.set_excluded(host.context(DEPLOYER), ALICE, False)
    assert not token.is_excluded(ALICE)
    evts = [r.args for r in sink.get_events(name="ExcludedChanged") if r.args["account"] == ALICE]
    assert [e["excluded"] for e in evts] == [True, False]


def test_set_designated_pair(host, token):
    token.set_designated_pair(host.context(DEPLOYER), CAROL, True)
    assert token.is_designated_pair(CAROL)
    with pytest.raises(AddressError):
        token.set_designated_pair(host.context(DEPLOYER), ZERO_ADDRESS, True)


def test_set_treasury(host, token, sink):
    token.set_treasury(host.context(DEPLOYER), CAROL)
    assert token.treasury() == CAROL
    last = list(sink.get_events(name="TreasuryChanged"))[-1]
    assert last.args == {"previous": TREASURY, "new": CAROL}

    with pytest.raises(AddressError):
        token.set_treasury(host.context(DEPLOYER), ZERO_ADDRESS)
    assert token.treasury() == CAROL


def test_token_cannot_be_its_own_treasury(host, token):
    with pytest.raises(AddressError):
        token.set_treasury(host.context(DEPLOYER), token.address)
    assert token.treasury() == TREASURY

    host.fund(ALICE, 10)
    host.send_value(ALICE, token.address, 10)
    assert host.native_balance(TREASURY) == 10
    assert host.native_balance(token.address) == 0


def test_venue_swap_while_pending(host, token, pool):
    v2 = InMemoryExchange(host, label="venue2")
    new_pool = token.set_venue_adapter(host.context(DEPLOYER), v2)
    assert token.venue_adapter() is v2
    assert new_pool == v2.lookup_pool(token.address, v2.reference_currency_address())
    assert token.is_designated_pair(new_pool)
    # the old pool stays designated until the owner says otherwise
    assert token.is_designated_pair(pool)


def test_venue_swap_reuses_existing_pool(host, token):
    v2 = InMemoryExchange(host, label="venue2")
    existing = v2.create_pool(token.address, v2.reference_currency_address())
    assert token.set_venue_adapter(host.context(DEPLOYER), v2) == existing


def test_venue_locked_once_established(established, host, venue):
    with pytest.raises(VenueLocked):
        established.set_venue_adapter(host.context(DEPLOYER), InMemoryExchange(host, label="late"))
    assert established.venue_adapter() is venue


def test_transfer_ownership(host, token):
    token.transfer_ownership(host.context(DEPLOYER), ALICE)
    assert token.owner() == ALICE
    with pytest.raises(AuthorizationError):
        token.set_excluded(host.context(DEPLOYER), BOB, True)
    token.set_excluded(host.context(ALICE), BOB, True)
    assert token.is_excluded(BOB)


def test_stale_capability_rejected(host, token):
    cap = token.access.authorize(host.context(DEPLOYER))
    token.access.check(cap)
    token.transfer_ownership(host.context(DEPLOYER), ALICE)
    with pytest.raises(AuthorizationError):
        token.access.check(cap)


def test_transfer_ownership_to_zero_rejected(host, token):
    with pytest.raises(AddressError):
        token.transfer_ownership(host.context(DEPLOYER), ZERO_ADDRESS)
    assert token.owner() == DEPLOYER


def test_renounce_ownership(host, token):
    token.renounce_ownership(host.context(DEPLOYER))
    assert token.owner() == ZERO_ADDRESS
    with pytest.raises(AuthorizationError):
        token.set_treasury(host.context(DEPLOYER), ALICE)
