"""
taxtoken.state.events — pluggable sinks for committed token events.

Events are staged in the journal with the writes that produced them and are
handed to a sink only after the outermost public call commits. Three backends:

- InMemoryEventSink: keeps every record in RAM (tests, simulations).
- JsonlEventSink: append-only JSONL file; one record per line.
- NullEventSink: drops everything.

Ordering: `seq` strictly increases across appended records; the token assigns
it in commit order.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from taxtoken.types.events import TokenEvent

log = logging.getLogger(__name__)


def _h2b(h: str) -> bytes:
    if h.startswith(("0x", "0X")):
        h = h[2:]
    return bytes.fromhex(h)


def _decode_arg(v: Any) -> Any:
    # Addresses round-trip as 0x-prefixed 20-byte hex; everything else is kept.
    if isinstance(v, str) and v.startswith("0x") and len(v) == 42:
        return _h2b(v)
    return v


# =============================================================================
# Public data model
# =============================================================================


@dataclass(frozen=True)
class EventRecord:
    """
    A committed event with its position.

    Fields
    ------
    seq : int
        Monotonic sequence number assigned at commit.
    timestamp : int
        Timestamp of the call that emitted the event.
    event : TokenEvent
    """

    seq: int
    timestamp: int
    event: TokenEvent

    @property
    def name(self) -> str:
        return self.event.name

    @property
    def args(self) -> Dict[str, Any]:
        return dict(self.event.args)

    def to_dict(self) -> Dict[str, Any]:
        d = self.event.to_dict()
        d.update({"seq": self.seq, "timestamp": self.timestamp})
        return d


@runtime_checkable
class EventSink(Protocol):
    def append(self, event: TokenEvent, *, seq: int, timestamp: int) -> EventRecord:
        """Append a single committed event. Returns the stored record."""

    def get_events(
        self,
        *,
        name: Optional[str] = None,
        address: Optional[bytes] = None,
        from_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        """Iterate matching records in ascending `seq` order."""

    def flush(self) -> None:
        """Force persistence, if applicable."""

    def close(self) -> None:
        """Release resources."""


def _matches(
    rec: EventRecord,
    name: Optional[str],
    address: Optional[bytes],
    from_seq: Optional[int],
) -> bool:
    if from_seq is not None and rec.seq < from_seq:
        return False
    if name is not None and rec.name != name:
        return False
    if address is not None and rec.event.address != address:
        return False
    return True


# =============================================================================
# In-memory sink
# =============================================================================


class InMemoryEventSink(EventSink):
    """Thread-safe in-memory sink. Unbounded; meant for tests and the CLI."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []

    def append(self, event: TokenEvent, *, seq: int, timestamp: int) -> EventRecord:
        rec = EventRecord(seq=seq, timestamp=timestamp, event=event)
        with self._lock:
            self._records.append(rec)
        return rec

    def get_events(
        self,
        *,
        name: Optional[str] = None,
        address: Optional[bytes] = None,
        from_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        with self._lock:
            records = list(self._records)
        n = 0
        for rec in records:
            if not _matches(rec, name, address, from_seq):
                continue
            yield rec
            n += 1
            if limit is not None and n >= limit:
                break

    def names(self) -> List[str]:
        """Event names in commit order (handy in assertions)."""
        with self._lock:
            return [r.name for r in self._records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def flush(self) -> None:
        return

    def close(self) -> None:
        with self._lock:
            self._records.clear()


# =============================================================================
# JSONL sink
# =============================================================================


class JsonlEventSink(EventSink):
    """
    Append-only JSONL sink.

    Format (one object per line)
    ----------------------------
    {"seq": 7, "timestamp": 1700000000, "address": "0x…", "name": "Transfer",
     "args": {"from": "0x…", "to": "0x…", "value": 100}}
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = os.fspath(path)
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        self._fh = open(self._path, "a+", encoding="utf-8", buffering=1)
        self._lock = threading.RLock()

    @staticmethod
    def _encode(rec: EventRecord) -> str:
        return json.dumps(rec.to_dict(), separators=(",", ":"), default=str)

    @staticmethod
    def _decode(line: str) -> EventRecord:
        obj = json.loads(line)
        event = TokenEvent(
            address=_h2b(obj["address"]),
            name=str(obj["name"]),
            args={k: _decode_arg(v) for k, v in obj.get("args", {}).items()},
        )
        return EventRecord(seq=int(obj["seq"]), timestamp=int(obj["timestamp"]), event=event)

    def append(self, event: TokenEvent, *, seq: int, timestamp: int) -> EventRecord:
        rec = EventRecord(seq=seq, timestamp=timestamp, event=event)
        line = self._encode(rec)
        with self._lock:
            self._fh.write(line + "\n")
        return rec

    def get_events(
        self,
        *,
        name: Optional[str] = None,
        address: Optional[bytes] = None,
        from_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        with self._lock:
            self._fh.flush()
            self._fh.seek(0)
            lines = self._fh.readlines()
        count = 0
        for line in lines:
            if not line.strip():
                continue
            try:
                rec = self._decode(line)
            except (ValueError, KeyError, TypeError) as e:
                log.warning("skipping malformed event line: %s (%r)", line[:120], e)
                continue
            if _matches(rec, name, address, from_seq):
                yield rec
                count += 1
                if limit is not None and count >= limit:
                    break

    def flush(self) -> None:
        with self._lock:
            self._fh.flush()
            os.fsync(self._fh.fileno())

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.flush()
                self._fh.close()

    def __repr__(self) -> str:
        return f"JsonlEventSink({self._path!r})"


# =============================================================================
# Null sink
# =============================================================================


class NullEventSink(EventSink):
    """A sink that drops everything."""

    def append(self, event: TokenEvent, *, seq: int, timestamp: int) -> EventRecord:
        return EventRecord(seq=seq, timestamp=timestamp, event=event)

    def get_events(self, **_: Any) -> Iterable[EventRecord]:
        return iter(())

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


def sink_from_path(path: Optional[str | os.PathLike[str]]) -> EventSink:
    """JSONL sink for a configured path, in-memory otherwise."""
    return JsonlEventSink(path) if path else InMemoryEventSink()


__all__ = [
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
    "sink_from_path",
]
