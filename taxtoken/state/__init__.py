"""Journaled token state: tables, ledger, sets, event sinks and snapshots."""

from .journal import Journal
from .ledger import Ledger
from .sets import AddressSet

__all__ = ["Journal", "Ledger", "AddressSet"]
