import pytest

from taxtoken.state.journal import BALANCES, META, Journal
from taxtoken.types.events import TokenEvent

A = b"\x0a" * 20
B = b"\x0b" * 20
T = b"\x77" * 20


def evt(n: int) -> TokenEvent:
    return TokenEvent(T, "Transfer", {"value": n})


def test_reads_fall_through_to_base():
    j = Journal({BALANCES: {A: 5}})
    assert j.get(BALANCES, A) == 5
    assert j.get(BALANCES, B, 0) == 0


def test_commit_merges_and_flush_applies():
    base = {}
    j = Journal(base)
    j.begin()
    j.set(BALANCES, A, 10)
    j.emit(evt(1))
    assert j.commit() == []
    assert base[BALANCES] == {}
    assert j.get(BALANCES, A) == 10
    assert j.flush() == [evt(1)]
    assert base[BALANCES] == {A: 10}
    assert j.is_clean()


def test_revert_discards_writes_and_events():
    j = Journal()
    j.begin()
    j.set(BALANCES, A, 1)
    j.emit(evt(1))
    j.revert()
    assert j.get(BALANCES, A) is None
    assert j.pending_events() == []


def test_nested_checkpoints():
    j = Journal()
    outer = j.checkpoint()
    j.set(BALANCES, A, 1)
    j.emit(evt(1))
    inner = j.checkpoint()
    j.set(BALANCES, A, 2)
    j.set(BALANCES, B, 3)
    j.emit(evt(2))
    j.revert_to(inner)
    assert j.get(BALANCES, A) == 1
    assert j.get(BALANCES, B) is None
    assert j.depth() == outer
    j.commit_to(outer)
    assert j.depth() == 1
    assert j.flush() == [evt(1)]


def test_deletes_shadow_lower_layers():
    j = Journal({BALANCES: {A: 5, B: 6}})
    j.begin()
    j.delete(BALANCES, A)
    assert not j.contains(BALANCES, A)
    assert list(j.items(BALANCES)) == [(B, 6)]
    j.flush()
    assert j.base_tables()[BALANCES] == {B: 6}


def test_items_sorted_with_overlay_precedence():
    j = Journal({META: {"b": 1}})
    j.begin()
    j.set(META, "a", 2)
    j.set(META, "b", 3)
    assert list(j.items(META)) == [("a", 2), ("b", 3)]


def test_bad_marker():
    j = Journal()
    with pytest.raises(ValueError):
        j.commit_to(0)
    with pytest.raises(ValueError):
        j.revert_to(0)
