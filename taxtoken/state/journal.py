"""
taxtoken.state.journal — journaled table store with nested checkpoints.

All persistent token state (balances, allowances, exclusion set, designated
pairs, metadata) lives in a handful of named tables inside one base mapping.
Writes never touch the base directly: they go to the top overlay of a stack of
copy-on-write layers, and reads consult overlays top → base.

Events are staged alongside writes in the same overlay, so reverting a layer
discards the events it emitted and committing merges them into the parent.
Only when the root layer is applied to the base are events released to the
caller (see `flush()`).

Intended usage
--------------
    j = Journal()
    j.begin()
    j.set("bal", addr, 100)
    j.emit(evt)
    j.commit()               # merged into the root layer
    events = j.flush()       # root applied to base; returns committed events

Tables are plain strings; keys are any hashable, orderable value (bytes,
tuples of bytes, short strings).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (Any, Dict, Hashable, Iterator, List, MutableMapping,
                    Optional, Tuple)

from taxtoken.types.events import TokenEvent

# Table names used by the ledger and the token facade.
BALANCES = "bal"
ALLOWANCES = "allow"
EXCLUDED = "excl"
PAIRS = "pair"
META = "meta"

TABLES = (BALANCES, ALLOWANCES, EXCLUDED, PAIRS, META)


class _Deleted:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return "<deleted>"


_DELETED = _Deleted()


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `writes`: table → key → value, where `_DELETED` marks a staged deletion.
    - `events`: events emitted while this layer was on top.
    """

    writes: Dict[str, Dict[Hashable, Any]] = field(default_factory=dict)
    events: List[TokenEvent] = field(default_factory=list)

    def lookup(self, table: str, key: Hashable) -> Tuple[bool, Any]:
        t = self.writes.get(table)
        if t is None or key not in t:
            return False, None
        return True, t[key]

    def put(self, table: str, key: Hashable, value: Any) -> None:
        self.writes.setdefault(table, {})[key] = value

    def is_empty(self) -> bool:
        return not self.events and not any(self.writes.values())


class Journal:
    """
    A copy-on-write journal with nested checkpoints.

    Parameters
    ----------
    base : MutableMapping[str, Dict]
        The committed tables. Created empty when omitted.

    API highlights
    --------------
    - get() / set() / delete() / items()
    - emit()
    - begin() / commit() / revert()
    - checkpoint() / commit_to(marker) / revert_to(marker)
    - flush(): apply everything to the base and return the committed events
    """

    def __init__(self, base: Optional[MutableMapping[str, Dict[Hashable, Any]]] = None) -> None:
        self._base: MutableMapping[str, Dict[Hashable, Any]] = base if base is not None else {}
        for t in TABLES:
            self._base.setdefault(t, {})
        # Root layer always present.
        self._layers: List[_Overlay] = [_Overlay()]

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of overlays (>= 1)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> List[TokenEvent]:
        """
        Merge the top overlay into its parent. When only the root remains it is
        applied to the base and its events are returned; otherwise returns [].
        """
        if len(self._layers) == 1:
            root = self._layers[0]
            self._apply_to_base(root)
            self._layers[0] = _Overlay()
            return list(root.events)

        top = self._layers.pop()
        self._merge_layers(self._layers[-1], top)
        return []

    def revert(self) -> None:
        """Discard the top overlay (or clear it if it's the root)."""
        if len(self._layers) > 1:
            self._layers.pop()
        else:
            self._layers[0] = _Overlay()

    def checkpoint(self) -> int:
        """Alias for `begin()` returning a marker token (current depth)."""
        return self.begin()

    def commit_to(self, marker: int) -> None:
        """
        Commit repeatedly until the layer opened by `checkpoint()` (returned as
        `marker`) has been merged into its parent. Never applies the root.
        """
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) >= marker and len(self._layers) > 1:
            self.commit()

    def revert_to(self, marker: int) -> None:
        """
        Revert repeatedly until the layer opened by `checkpoint()` (returned as
        `marker`) has been discarded. Never clears the root.
        """
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) >= marker and len(self._layers) > 1:
            self.revert()

    def flush(self) -> List[TokenEvent]:
        """Commit every open layer down to the base; return the released events."""
        self.commit_to(1)
        return self.commit()

    # ------------------------------------------------------------------ #
    # Reads & writes
    # ------------------------------------------------------------------ #

    def get(self, table: str, key: Hashable, default: Any = None) -> Any:
        for layer in reversed(self._layers):
            hit, value = layer.lookup(table, key)
            if hit:
                return default if value is _DELETED else value
        return self._base.get(table, {}).get(key, default)

    def set(self, table: str, key: Hashable, value: Any) -> None:
        self._layers[-1].put(table, key, value)

    def delete(self, table: str, key: Hashable) -> None:
        self._layers[-1].put(table, key, _DELETED)

    def contains(self, table: str, key: Hashable) -> bool:
        return self.get(table, key, _DELETED) is not _DELETED

    def items(self, table: str) -> Iterator[Tuple[Hashable, Any]]:
        """Visible (key, value) pairs of a table, sorted by key."""
        visible: Dict[Hashable, Any] = dict(self._base.get(table, {}))
        for layer in self._layers:
            for k, v in layer.writes.get(table, {}).items():
                if v is _DELETED:
                    visible.pop(k, None)
                else:
                    visible[k] = v
        for k in sorted(visible.keys()):
            yield k, visible[k]

    def emit(self, event: TokenEvent) -> None:
        self._layers[-1].events.append(event)

    def pending_events(self) -> List[TokenEvent]:
        """Events staged in all layers, oldest first (not yet released)."""
        out: List[TokenEvent] = []
        for layer in self._layers:
            out.extend(layer.events)
        return out

    # ------------------------------------------------------------------ #
    # Internal merge/apply
    # ------------------------------------------------------------------ #

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        for table, writes in src.writes.items():
            dt = dst.writes.setdefault(table, {})
            dt.update(writes)
        dst.events.extend(src.events)

    def _apply_to_base(self, layer: _Overlay) -> None:
        for table, writes in layer.writes.items():
            bt = self._base.setdefault(table, {})
            for k, v in writes.items():
                if v is _DELETED:
                    bt.pop(k, None)
                else:
                    bt[k] = v

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def base_tables(self) -> Dict[str, Dict[Hashable, Any]]:
        """Shallow copy of the committed tables."""
        return {t: dict(v) for t, v in self._base.items()}

    def is_clean(self) -> bool:
        """True when nothing is staged in any layer."""
        return len(self._layers) == 1 and self._layers[0].is_empty()


__all__ = [
    "Journal",
    "BALANCES",
    "ALLOWANCES",
    "EXCLUDED",
    "PAIRS",
    "META",
    "TABLES",
]
