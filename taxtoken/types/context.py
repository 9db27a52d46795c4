"""
taxtoken.types.context — the call context threaded through every operation.

There is no ambient `msg.sender` or clock: each public call receives a
`CallContext` naming who is calling, the time the call executes at, and how
much reference-currency value accompanies it. The host builds these
(`Host.context(sender)`); tests may construct them directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .address import HexLike, to_address, to_hex


@dataclass(frozen=True)
class CallContext:
    """
    Attributes:
        sender:    bytes    — caller address
        timestamp: int >= 0 — Unix seconds at which the call executes
        value:     int >= 0 — reference currency delivered with the call
    """
    sender: bytes
    timestamp: int
    value: int = 0

    def __init__(self, *, sender: HexLike, timestamp: int, value: int = 0):
        if timestamp < 0:
            raise ValueError("timestamp must be >= 0")
        if value < 0:
            raise ValueError("value must be >= 0")
        object.__setattr__(self, "sender", to_address(sender))
        object.__setattr__(self, "timestamp", int(timestamp))
        object.__setattr__(self, "value", int(value))

    def with_sender(self, sender: HexLike) -> "CallContext":
        """Same instant, different caller (used for calls a contract makes)."""
        return CallContext(sender=sender, timestamp=self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {"sender": to_hex(self.sender), "timestamp": self.timestamp, "value": self.value}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CallContext":
        return cls(sender=d["sender"], timestamp=int(d["timestamp"]), value=int(d.get("value", 0)))


__all__ = ["CallContext"]
