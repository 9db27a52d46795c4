"""
taxtoken.config — runtime configuration for the tax token.

This module centralizes knobs for:
  • the sale-tax schedule (tier boundaries and rates)
  • conversion parameters (min-out, deadline offset)
  • the reference-currency forward stipend
  • the in-memory exchange fee
  • where committed events are written (optional JSONL file)

Configuration may be provided via environment variables. Safe defaults match
the production token so a local run works out of the box.

Environment variables (all optional):
  TAXTOKEN_FORWARD_STIPEND       -> stipend units for forwarding value (default: 2300)
  TAXTOKEN_SWAP_DEADLINE_SECS    -> deadline offset added to `now` (default: 0)
  TAXTOKEN_SWAP_MIN_OUT          -> minimum reference-currency out (default: 0)
  TAXTOKEN_EXCHANGE_FEE_BPS      -> in-memory venue LP fee in bps (default: 30)
  TAXTOKEN_EVENTS_PATH           -> append committed events to this JSONL file
  TAXTOKEN_LOG_LEVEL             -> logging level for the CLI (default: INFO)
  TAXTOKEN_LOG_FORMAT            -> json|text (default: auto)

Programmatic usage:
    from taxtoken.config import get_config
    cfg = get_config()
    rate = cfg.schedule.rate_for_elapsed(86400 * 100)   # 7
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

DAY_SECONDS = 86_400

# ----------------------------- helpers -------------------------------------


def _int_env(value: Optional[str], default: int, *, name: str) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value.strip(), 0)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class TaxSchedule:
    """
    Step schedule of the sale-tax rate.

    `tiers` is an ordered tuple of (elapsed_lt_seconds, rate_percent); the first
    tier whose bound exceeds the elapsed time applies, otherwise `floor_rate`.
    """
    tiers: Tuple[Tuple[int, int], ...] = (
        (90 * DAY_SECONDS, 10),
        (365 * DAY_SECONDS, 7),
    )
    floor_rate: int = 5

    def rate_for_elapsed(self, elapsed: int) -> int:
        elapsed = max(0, int(elapsed))
        for bound, rate in self.tiers:
            if elapsed < bound:
                return rate
        return self.floor_rate

    def rates(self) -> Tuple[int, ...]:
        return tuple(r for _, r in self.tiers) + (self.floor_rate,)


@dataclass(frozen=True)
class SwapSettings:
    min_out: int = 0
    deadline_secs: int = 0


@dataclass(frozen=True)
class TokenConfig:
    schedule: TaxSchedule = field(default_factory=TaxSchedule)
    swap: SwapSettings = field(default_factory=SwapSettings)
    forward_stipend: int = 2_300
    exchange_fee_bps: int = 30
    events_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, object]:
        d = asdict(self)
        d["events_path"] = str(self.events_path) if self.events_path else None
        return d


# ------------------------------ loader --------------------------------------


def _validate_schedule(s: TaxSchedule) -> TaxSchedule:
    last_bound = -1
    last_rate = 101
    for bound, rate in s.tiers:
        if bound <= last_bound:
            raise ValueError("tax tier bounds must be strictly increasing")
        if not 0 <= rate <= 100:
            raise ValueError("tax rates must be within [0, 100]")
        if rate > last_rate:
            raise ValueError("tax rates must be non-increasing")
        last_bound, last_rate = bound, rate
    if not 0 <= s.floor_rate <= min(last_rate, 100):
        raise ValueError("floor_rate must be within [0, last tier rate]")
    return s


def _validate(cfg: TokenConfig) -> TokenConfig:
    _validate_schedule(cfg.schedule)
    if cfg.forward_stipend < 0:
        raise ValueError("forward_stipend must be ≥ 0")
    if not 0 <= cfg.exchange_fee_bps < 10_000:
        raise ValueError("exchange_fee_bps must be within [0, 10000)")
    if cfg.swap.min_out < 0:
        raise ValueError("swap min_out must be ≥ 0")
    if cfg.swap.deadline_secs < 0:
        raise ValueError("swap deadline_secs must be ≥ 0")
    return cfg


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, Path, TaxSchedule]]] = None,
) -> TokenConfig:
    """
    Build a TokenConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'schedule', 'forward_stipend', 'exchange_fee_bps', 'swap_min_out',
          'swap_deadline_secs', 'events_path'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    schedule = overrides.get("schedule") or TaxSchedule()
    if not isinstance(schedule, TaxSchedule):
        raise TypeError("schedule override must be a TaxSchedule")

    swap = SwapSettings(
        min_out=int(
            overrides.get(
                "swap_min_out",
                _int_env(env.get("TAXTOKEN_SWAP_MIN_OUT"), 0, name="TAXTOKEN_SWAP_MIN_OUT"),
            )
        ),
        deadline_secs=int(
            overrides.get(
                "swap_deadline_secs",
                _int_env(env.get("TAXTOKEN_SWAP_DEADLINE_SECS"), 0, name="TAXTOKEN_SWAP_DEADLINE_SECS"),
            )
        ),
    )

    events_raw = overrides.get("events_path", env.get("TAXTOKEN_EVENTS_PATH"))
    events_path = Path(str(events_raw)).expanduser() if events_raw else None

    cfg = TokenConfig(
        schedule=schedule,
        swap=swap,
        forward_stipend=int(
            overrides.get(
                "forward_stipend",
                _int_env(env.get("TAXTOKEN_FORWARD_STIPEND"), 2_300, name="TAXTOKEN_FORWARD_STIPEND"),
            )
        ),
        exchange_fee_bps=int(
            overrides.get(
                "exchange_fee_bps",
                _int_env(env.get("TAXTOKEN_EXCHANGE_FEE_BPS"), 30, name="TAXTOKEN_EXCHANGE_FEE_BPS"),
            )
        ),
        events_path=events_path,
    )
    return _validate(cfg)


@lru_cache(maxsize=1)
def get_config() -> TokenConfig:
    """Cached global config for application bootstraps and the CLI."""
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def summary(cfg: Optional[TokenConfig] = None) -> str:
    """Return a one-line summary of the most important knobs."""
    cfg = cfg or get_config()
    tiers = ",".join(f"<{b // DAY_SECONDS}d:{r}%" for b, r in cfg.schedule.tiers)
    return (
        "taxtoken{"
        f"tiers=[{tiers},floor:{cfg.schedule.floor_rate}%], "
        f"stipend={cfg.forward_stipend}, fee_bps={cfg.exchange_fee_bps}, "
        f"min_out={cfg.swap.min_out}, deadline=+{cfg.swap.deadline_secs}s, "
        f"events={cfg.events_path or '-'}"
        "}"
    )


__all__ = [
    "DAY_SECONDS",
    "TaxSchedule",
    "SwapSettings",
    "TokenConfig",
    "load_config",
    "get_config",
    "summary",
]
