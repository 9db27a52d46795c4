"""Plain value types shared across the package (addresses, call context, events)."""

from .address import ZERO_ADDRESS, derive_address, is_zero, to_address, to_hex
from .context import CallContext
from .events import TokenEvent

__all__ = [
    "ZERO_ADDRESS",
    "derive_address",
    "is_zero",
    "to_address",
    "to_hex",
    "CallContext",
    "TokenEvent",
]
