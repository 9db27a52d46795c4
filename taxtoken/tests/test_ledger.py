import pytest

from taxtoken.errors import (AddressError, ArithmeticOverflow, InsufficientAllowance,
                             InsufficientBalance)
from taxtoken.state.journal import Journal
from taxtoken.state.ledger import Ledger
from taxtoken.types.address import ZERO_ADDRESS
from taxtoken.uint import U256_MAX, percent_split

TOKEN = b"\x70" * 20
A = b"\x0a" * 20
B = b"\x0b" * 20
C = b"\x0c" * 20


@pytest.fixture
def ledger() -> Ledger:
    lg = Ledger(Journal(), TOKEN)
    lg.mint(A, 1_000)
    return lg


def test_transfer_and_supply(ledger):
    ledger.transfer(A, B, 300)
    assert (ledger.balance_of(A), ledger.balance_of(B)) == (700, 300)
    assert ledger.sum_of_balances() == ledger.total_supply() == 1_000


def test_self_transfer_is_noop(ledger):
    ledger.transfer(A, A, 1_000)
    assert ledger.balance_of(A) == 1_000


def test_multi_leg_all_or_nothing(ledger):
    with pytest.raises(InsufficientBalance):
        ledger.transfer_many(A, [(B, 600), (C, 401)])
    assert ledger.balance_of(A) == 1_000
    assert ledger.balance_of(B) == 0
    ledger.transfer_many(A, [(B, 600), (C, 400)])
    assert (ledger.balance_of(A), ledger.balance_of(B), ledger.balance_of(C)) == (0, 600, 400)
    assert ledger.holders() == [B, C]


def test_zero_addresses_rejected(ledger):
    with pytest.raises(AddressError):
        ledger.transfer(A, ZERO_ADDRESS, 1)
    with pytest.raises(AddressError):
        ledger.approve(A, ZERO_ADDRESS, 1)
    with pytest.raises(AddressError):
        ledger.mint(ZERO_ADDRESS, 1)


def test_mint_overflow(ledger):
    with pytest.raises(ArithmeticOverflow):
        ledger.mint(B, U256_MAX)
    assert ledger.total_supply() == 1_000


def test_allowance_spending(ledger):
    ledger.approve(A, B, 50)
    ledger.spend_allowance(A, B, 20)
    assert ledger.allowance(A, B) == 30
    with pytest.raises(InsufficientAllowance):
        ledger.spend_allowance(A, B, 31)


def test_unlimited_allowance_not_decremented(ledger):
    ledger.approve(A, B, U256_MAX)
    ledger.spend_allowance(A, B, 999)
    assert ledger.allowance(A, B) == U256_MAX


def test_burn(ledger):
    ledger.burn(A, 400)
    assert ledger.total_supply() == 600
    with pytest.raises(InsufficientBalance):
        ledger.burn(A, 601)


@pytest.mark.parametrize("amount, rate, expected", [(1000, 10, (100, 900)), (19, 10, (1, 18)),
                                                    (1, 5, (0, 1)), (7, 100, (7, 0)), (7, 0, (0, 7))])
def test_percent_split(amount, rate, expected):
    assert percent_split(amount, rate) == expected


def test_percent_split_bounds():
    with pytest.raises(ValueError):
        percent_split(10, 101)
