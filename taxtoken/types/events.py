"""
taxtoken.types.events — the event record emitted by the token.

`TokenEvent` carries the emitting contract address, an event name
(b"Transfer", b"TreasuryChanged", ...) and a flat mapping of arguments.
Events are observational only; they never feed back into state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .address import to_hex


def _jsonable(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return to_hex(bytes(v))
    return v


@dataclass(frozen=True)
class TokenEvent:
    address: bytes
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": to_hex(self.address),
            "name": self.name,
            "args": {k: _jsonable(v) for k, v in self.args.items()},
        }


# Canonical event names.
EVT_TRANSFER = "Transfer"
EVT_APPROVAL = "Approval"
EVT_EXCLUDED = "ExcludedChanged"
EVT_PAIR = "DesignatedPairChanged"
EVT_TREASURY = "TreasuryChanged"
EVT_VENUE = "VenueAdapterChanged"
EVT_OWNERSHIP = "OwnershipTransferred"
EVT_LIQUIDITY = "LiquidityEstablished"
EVT_CONVERTED = "TaxConverted"
EVT_FORWARDED = "ProceedsForwarded"


__all__ = [
    "TokenEvent",
    "EVT_TRANSFER",
    "EVT_APPROVAL",
    "EVT_EXCLUDED",
    "EVT_PAIR",
    "EVT_TREASURY",
    "EVT_VENUE",
    "EVT_OWNERSHIP",
    "EVT_LIQUIDITY",
    "EVT_CONVERTED",
    "EVT_FORWARDED",
]
