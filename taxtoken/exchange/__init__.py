"""Exchange venue interface and the in-memory constant-product venue."""

from .adapter import (ConversionFailed, ConversionOk, ExchangeAdapter,
                      call_conversion, resolve_pool)
from .memory import InMemoryExchange

__all__ = [
    "ConversionOk",
    "ConversionFailed",
    "ExchangeAdapter",
    "call_conversion",
    "resolve_pool",
    "InMemoryExchange",
]
