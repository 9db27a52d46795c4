import json
import logging

import pytest
from typer.testing import CliRunner

from taxtoken.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger("taxtoken")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(logging.NOTSET)


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_version_reports_source_and_deps():
    from taxtoken import __version__

    out = _json(runner.invoke(app, ["--log-level", "ERROR", "version"]))
    assert out["version"] == __version__
    assert set(out["deps"]) == {"cbor2", "typer"}
    assert out["deps"]["typer"]
    assert isinstance(out["stale_install"], bool)


def test_schedule_at_day():
    out = _json(runner.invoke(app, ["--log-level", "ERROR", "schedule", "--days", "100"]))
    assert out == {"days": 100.0, "rate_percent": 7}


def test_schedule_table():
    rows = _json(runner.invoke(app, ["--log-level", "ERROR", "schedule"]))
    assert [r["rate_percent"] for r in rows] == [10, 7, 5]
    assert rows[-1]["to_day"] is None


def test_schedule_rejects_negative_days():
    result = runner.invoke(app, ["--log-level", "ERROR", "schedule", "--days", "-1"])
    assert result.exit_code == 2


def test_config_json(monkeypatch):
    monkeypatch.setenv("TAXTOKEN_FORWARD_STIPEND", "4000")
    out = _json(runner.invoke(app, ["--log-level", "ERROR", "config", "--json"]))
    assert out["forward_stipend"] == 4000


SCENARIO = {
    "start_time": 1_700_000_000,
    "supply": 10_000_000,
    "native": {"deployer": 10**12},
    "steps": [
        {"op": "approve", "from": "deployer", "spender": "venue", "amount": 1_000_000},
        {"op": "add_liquidity", "from": "deployer", "tokens": 1_000_000, "value": 10**9},
        {"op": "transfer", "from": "deployer", "to": "alice", "amount": 10_000},
        {"op": "transfer", "from": "alice", "to": "pool", "amount": 1_000},
        {"op": "transfer", "from": "alice", "to": "bob", "amount": 10},
        {"op": "transfer", "from": "bob", "to": "carol", "amount": 50},
    ],
}


def test_simulate(tmp_path):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(SCENARIO), encoding="utf-8")
    out = _json(runner.invoke(app, ["--log-level", "ERROR", "simulate", "--scenario", str(path)]))

    steps = out["steps"]
    assert [s["ok"] for s in steps] == [True, True, True, True, True, False]
    assert steps[3]["result"] == {"tax": 100, "received": 900, "rate": 10}
    assert steps[5]["error"]["code"] == "INSUFFICIENT_BALANCE"
    assert out["balances"]["alice"] == 10_000 - 1_000 - 10
    assert out["balances"]["token"] == 0
    assert out["native"]["treasury"] > 0
    assert out["token"]["liquidity"]["state"] == "established"
    assert "TaxConverted" in out["events"]


def test_simulate_strict_stops(tmp_path):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(SCENARIO), encoding="utf-8")
    result = runner.invoke(app, ["--log-level", "ERROR", "simulate", "--strict", "--scenario", str(path)])
    assert result.exit_code == 1


def test_simulate_bad_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    result = runner.invoke(app, ["--log-level", "ERROR", "simulate", "--scenario", str(path)])
    assert result.exit_code == 2
