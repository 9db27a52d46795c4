"""
taxtoken.state.snapshot — canonical CBOR export/restore of committed token state.

The document is a plain map (text keys, byte-string addresses, integer
amounts) encoded with cbor2 in canonical mode, so two tokens with identical
state always serialize to identical bytes.

Layout
------
{
  "v": 1,
  "address": bstr,
  "meta": {"name", "symbol", "decimals", "total_supply", "owner", "treasury",
           "venue", "liquidity": {"state": "pending"|"established", "trading_start"}},
  "balances":   [[addr, amount], ...],
  "allowances": [[owner, spender, amount], ...],
  "excluded":   [addr, ...],
  "pairs":      [addr, ...],
  "seq": int
}

Only committed state is exported; call it between public operations.
The host world state (reference-currency balances, pool reserves) is not part
of the token and is not included.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import cbor2

from taxtoken.config import TokenConfig

from .journal import ALLOWANCES, BALANCES, EXCLUDED, META, PAIRS

if TYPE_CHECKING:  # pragma: no cover
    from taxtoken.runtime.host import Host
    from taxtoken.state.events import EventSink
    from taxtoken.token import TaxToken

SNAPSHOT_VERSION = 1


class SnapshotError(ValueError):
    pass


def export_state(token: "TaxToken") -> Dict[str, Any]:
    if not token.journal.is_clean():
        raise SnapshotError("cannot snapshot while a call is in flight")
    tables = token.journal.base_tables()
    meta = tables[META]
    liq = meta["liquidity"]
    return {
        "v": SNAPSHOT_VERSION,
        "address": token.address,
        "meta": {
            "name": meta["name"],
            "symbol": meta["symbol"],
            "decimals": meta["decimals"],
            "total_supply": meta.get("total_supply", 0),
            "owner": meta["owner"],
            "treasury": meta["treasury"],
            "venue": meta["venue"],
            "liquidity": {"state": liq.tag, "trading_start": liq.trading_start},
        },
        "balances": [[a, v] for a, v in sorted(tables[BALANCES].items())],
        "allowances": [[o, s, v] for (o, s), v in sorted(tables[ALLOWANCES].items())],
        "excluded": sorted(a for a, f in tables[EXCLUDED].items() if f),
        "pairs": sorted(a for a, f in tables[PAIRS].items() if f),
        "seq": token.event_seq,
    }


def dumps(token: "TaxToken") -> bytes:
    return cbor2.dumps(export_state(token), canonical=True)


def loads(blob: bytes) -> Dict[str, Any]:
    try:
        doc = cbor2.loads(blob)
    except cbor2.CBORDecodeError as e:
        raise SnapshotError(f"malformed snapshot: {e}") from e
    if not isinstance(doc, dict) or doc.get("v") != SNAPSHOT_VERSION:
        raise SnapshotError("unsupported snapshot version")
    for key in ("address", "meta", "balances", "allowances", "excluded", "pairs"):
        if key not in doc:
            raise SnapshotError(f"snapshot missing {key!r}")
    return doc


def restore(
    host: "Host",
    blob: bytes,
    *,
    config: Optional[TokenConfig] = None,
    sink: Optional["EventSink"] = None,
) -> "TaxToken":
    """
    Rebuild a token from `dumps()` output on `host`. The venue recorded in the
    snapshot must already be registered on the host.
    """
    from taxtoken.tax.liquidity import Established, Pending
    from taxtoken.token import TaxToken

    doc = loads(blob)
    meta = doc["meta"]
    liq = meta["liquidity"]
    if liq["state"] == "pending":
        state: Any = Pending(int(liq["trading_start"]))
    elif liq["state"] == "established":
        state = Established(int(liq["trading_start"]))
    else:
        raise SnapshotError(f"unknown liquidity state {liq['state']!r}")

    token = TaxToken.__new__(TaxToken)
    token._wire(host, bytes(doc["address"]), config, sink, str(meta["symbol"]))
    j = token.journal
    for key in ("name", "symbol", "decimals", "total_supply"):
        j.set(META, key, meta[key])
    for key in ("owner", "treasury", "venue"):
        j.set(META, key, bytes(meta[key]))
    j.set(META, "liquidity", state)
    for addr, amount in doc["balances"]:
        j.set(BALANCES, bytes(addr), int(amount))
    for owner, spender, amount in doc["allowances"]:
        j.set(ALLOWANCES, (bytes(owner), bytes(spender)), int(amount))
    for addr in doc["excluded"]:
        j.set(EXCLUDED, bytes(addr), True)
    for addr in doc["pairs"]:
        j.set(PAIRS, bytes(addr), True)
    j.flush()
    token._seq = int(doc.get("seq", 0))
    return token


__all__ = ["SNAPSHOT_VERSION", "SnapshotError", "export_state", "dumps", "loads", "restore"]
