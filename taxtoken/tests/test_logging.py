import io
import json
import logging

from taxtoken import logging as tlog


def test_trace_scope_restores_context():
    tlog.clear_context()
    with tlog.trace_scope(op="transfer") as tid:
        assert tlog.context()["trace_id"] == tid
        assert tlog.context()["op"] == "transfer"
    assert tlog.context() == {}


def test_json_formatter_includes_context_and_extras():
    rec = logging.LogRecord("taxtoken.test", logging.INFO, __file__, 1, "converted", (), None)
    rec.amount_in = 100
    rec.pool = b"\x01" * 2
    with tlog.trace_scope("abc123", caller=b"\xaa"):
        payload = json.loads(tlog.JSONFormatter().format(rec))
    assert payload["msg"] == "converted"
    assert payload["trace_id"] == "abc123"
    assert payload["caller"] == "0xaa"
    assert payload["amount_in"] == 100
    assert payload["pool"] == "0x0101"


def test_configure_text_stream():
    buf = io.StringIO()
    tlog.configure(json=False, level="debug", stream=buf)
    try:
        tlog.get_logger("taxtoken.x").info("hello", extra={"amount": 3})
        line = buf.getvalue()
        assert "hello" in line and "amount=3" in line and "INFO" in line
    finally:
        root = logging.getLogger("taxtoken")
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(logging.NOTSET)
