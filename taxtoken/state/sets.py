"""
taxtoken.state.sets — journaled address sets (exclusions, designated pairs).
"""

from __future__ import annotations

from typing import Iterator, List

from .journal import Journal


class AddressSet:
    """Membership table keyed by address; absent means False."""

    def __init__(self, journal: Journal, table: str) -> None:
        self._j = journal
        self.table = table

    def __contains__(self, addr: object) -> bool:
        if not isinstance(addr, (bytes, bytearray)):
            return False
        return bool(self._j.get(self.table, bytes(addr), False))

    def __iter__(self) -> Iterator[bytes]:
        for k, v in self._j.items(self.table):
            if v:
                yield k

    def members(self) -> List[bytes]:
        return list(self)

    def set(self, addr: bytes, flag: bool) -> bool:
        """Set membership; returns True if it changed."""
        addr = bytes(addr)
        if (addr in self) == bool(flag):
            return False
        if flag:
            self._j.set(self.table, addr, True)
        else:
            self._j.delete(self.table, addr)
        return True


__all__ = ["AddressSet"]
