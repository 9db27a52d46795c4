from taxtoken.state.events import InMemoryEventSink, JsonlEventSink, NullEventSink, sink_from_path
from taxtoken.types.events import TokenEvent

T = b"\x70" * 20
A = b"\x0a" * 20


def _evt(name="Transfer", value=1):
    return TokenEvent(T, name, {"from": A, "to": T, "value": value})


def test_memory_filters():
    s = InMemoryEventSink()
    s.append(_evt(value=1), seq=0, timestamp=10)
    s.append(_evt("Approval", 2), seq=1, timestamp=11)
    s.append(_evt(value=3), seq=2, timestamp=12)
    assert [r.seq for r in s.get_events(name="Transfer")] == [0, 2]
    assert [r.seq for r in s.get_events(from_seq=1, limit=1)] == [1]
    assert s.names() == ["Transfer", "Approval", "Transfer"]


def test_jsonl_persists_and_decodes(tmp_path):
    path = tmp_path / "logs" / "events.jsonl"
    s = JsonlEventSink(path)
    s.append(_evt(value=5), seq=0, timestamp=99)
    s.flush()
    with open(path, "a", encoding="utf-8") as fh:
        fh.write("not json\n")
    s.close()

    again = JsonlEventSink(path)
    recs = list(again.get_events())
    again.close()
    assert len(recs) == 1
    assert recs[0].event == _evt(value=5)
    assert recs[0].timestamp == 99


def test_null_sink_and_factory(tmp_path):
    n = NullEventSink()
    n.append(_evt(), seq=0, timestamp=0)
    assert list(n.get_events()) == []
    assert isinstance(sink_from_path(None), InMemoryEventSink)
    j = sink_from_path(tmp_path / "x.jsonl")
    assert isinstance(j, JsonlEventSink)
    j.close()
