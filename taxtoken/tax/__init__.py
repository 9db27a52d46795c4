"""Tax rules: schedule, liquidity detection, auto-conversion, transfer routing."""

from .autoswap import AutoSwapController, SwapGuard
from .interceptor import TransferInterceptor, TransferOutcome
from .liquidity import Established, LiquidityMonitor, Pending
from .schedule import TransferTaxEngine

__all__ = [
    "AutoSwapController",
    "SwapGuard",
    "TransferInterceptor",
    "TransferOutcome",
    "Established",
    "LiquidityMonitor",
    "Pending",
    "TransferTaxEngine",
]
