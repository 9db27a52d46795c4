"""
taxtoken.state.ledger — balances, allowances and supply over the journal.

The ledger is deliberately dumb: it moves amounts between accounts with
u256-checked arithmetic and emits `Transfer` / `Approval` events. Tax,
exclusion and conversion rules live above it (taxtoken.tax.*).

Every method either completes all its writes or raises before the first one,
so callers never observe a half-applied leg. Multi-leg transfers stage the
full set of balance changes first and write them afterwards.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Tuple

from taxtoken.errors import AddressError, InsufficientAllowance, InsufficientBalance
from taxtoken.types.address import ZERO_ADDRESS, is_zero, to_hex
from taxtoken.types.events import EVT_APPROVAL, EVT_TRANSFER, TokenEvent
from taxtoken.uint import U256_MAX, checked_add, checked_sub, require_u256

from .journal import ALLOWANCES, BALANCES, META, Journal

TOTAL_SUPPLY_KEY = "total_supply"


class Ledger:
    """
    Account balance table + allowance table + total supply.

    Parameters
    ----------
    journal : Journal
        Shared journaled store.
    token : bytes
        Address of the token contract (used as the emitting address of events).
    """

    def __init__(self, journal: Journal, token: bytes) -> None:
        self._j = journal
        self.token = bytes(token)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def balance_of(self, account: bytes) -> int:
        return int(self._j.get(BALANCES, bytes(account), 0))

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return int(self._j.get(ALLOWANCES, (bytes(owner), bytes(spender)), 0))

    def total_supply(self) -> int:
        return int(self._j.get(META, TOTAL_SUPPLY_KEY, 0))

    def balances(self) -> Iterator[Tuple[bytes, int]]:
        for k, v in self._j.items(BALANCES):
            yield k, int(v)

    def allowances(self) -> Iterator[Tuple[Tuple[bytes, bytes], int]]:
        for k, v in self._j.items(ALLOWANCES):
            yield k, int(v)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def _set_balance(self, account: bytes, value: int) -> None:
        if value == 0:
            self._j.delete(BALANCES, account)
        else:
            self._j.set(BALANCES, account, value)

    def _emit_transfer(self, sender: bytes, recipient: bytes, amount: int) -> None:
        self._j.emit(
            TokenEvent(self.token, EVT_TRANSFER, {"from": sender, "to": recipient, "value": amount})
        )

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> None:
        """Move `amount` from sender to recipient (self-transfers allowed)."""
        self.transfer_many(sender, [(recipient, amount)])

    def transfer_many(self, sender: bytes, legs: Iterable[Tuple[bytes, int]]) -> None:
        """
        Move several amounts out of one sender atomically.

        All resulting balances are computed before anything is written; any
        shortfall or overflow raises with state untouched.
        """
        sender = bytes(sender)
        legs = [(bytes(r), int(a)) for r, a in legs]
        if is_zero(sender):
            raise AddressError(field_name="from")
        for r, a in legs:
            if is_zero(r):
                raise AddressError(field_name="to")
            require_u256(a)

        staged: Dict[bytes, int] = {}

        def _cur(addr: bytes) -> int:
            return staged[addr] if addr in staged else self.balance_of(addr)

        total = 0
        for _, a in legs:
            total = checked_add(total, a)
        held = _cur(sender)
        if total > held:
            raise InsufficientBalance(account=to_hex(sender), balance=held, needed=total)
        staged[sender] = held - total
        for r, a in legs:
            staged[r] = checked_add(_cur(r), a)

        for addr, value in staged.items():
            self._set_balance(addr, value)
        for r, a in legs:
            self._emit_transfer(sender, r, a)

    def approve(self, owner: bytes, spender: bytes, amount: int) -> None:
        owner, spender = bytes(owner), bytes(spender)
        if is_zero(owner):
            raise AddressError(field_name="owner")
        if is_zero(spender):
            raise AddressError(field_name="spender")
        require_u256(amount)
        key = (owner, spender)
        if amount == 0:
            self._j.delete(ALLOWANCES, key)
        else:
            self._j.set(ALLOWANCES, key, amount)
        self._j.emit(
            TokenEvent(self.token, EVT_APPROVAL, {"owner": owner, "spender": spender, "value": amount})
        )

    def spend_allowance(self, owner: bytes, spender: bytes, amount: int) -> None:
        """Consume allowance; an allowance of U256_MAX is unlimited and left as is."""
        current = self.allowance(owner, spender)
        if current == U256_MAX:
            return
        if amount > current:
            raise InsufficientAllowance(allowance=current, needed=amount)
        key = (bytes(owner), bytes(spender))
        remaining = current - amount
        if remaining == 0:
            self._j.delete(ALLOWANCES, key)
        else:
            self._j.set(ALLOWANCES, key, remaining)

    def mint(self, account: bytes, amount: int) -> None:
        account = bytes(account)
        if is_zero(account):
            raise AddressError(field_name="to")
        supply = checked_add(self.total_supply(), amount)
        balance = checked_add(self.balance_of(account), amount)
        self._j.set(META, TOTAL_SUPPLY_KEY, supply)
        self._set_balance(account, balance)
        self._emit_transfer(ZERO_ADDRESS, account, amount)

    def burn(self, account: bytes, amount: int) -> None:
        account = bytes(account)
        if is_zero(account):
            raise AddressError(field_name="from")
        held = self.balance_of(account)
        if amount > held:
            raise InsufficientBalance(account=to_hex(account), balance=held, needed=amount)
        balance = checked_sub(held, amount)
        supply = checked_sub(self.total_supply(), amount)
        self._set_balance(account, balance)
        self._j.set(META, TOTAL_SUPPLY_KEY, supply)
        self._emit_transfer(account, ZERO_ADDRESS, amount)

    # ------------------------------------------------------------------ #
    # Checks
    # ------------------------------------------------------------------ #

    def sum_of_balances(self) -> int:
        return sum(v for _, v in self.balances())

    def holders(self) -> List[bytes]:
        return [k for k, _ in self.balances()]


__all__ = ["Ledger", "TOTAL_SUPPLY_KEY"]
