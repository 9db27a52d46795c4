"""Execution environment: clock, value ledger, contract registry, stipends."""

from .host import Host
from .stipend import StipendExhausted, StipendMeter

__all__ = ["Host", "StipendMeter", "StipendExhausted"]
