"""
taxtoken.cli.main — command line entry point.

Commands:
  - taxtoken schedule    Tax rate for a given number of days since trading start
  - taxtoken simulate    Run a JSON scenario against an in-memory host + venue
  - taxtoken config      Print the resolved configuration
  - taxtoken version     Print version information

Scenario files
--------------
    {
      "start_time": 1700000000,
      "supply": 1000000000,
      "native": {"deployer": 1000000000000000000000},
      "steps": [
        {"op": "approve", "from": "deployer", "spender": "venue", "amount": 1000000},
        {"op": "add_liquidity", "from": "deployer", "tokens": 1000000, "value": 1000000000},
        {"op": "transfer", "from": "deployer", "to": "alice", "amount": 5000},
        {"op": "advance", "days": 1},
        {"op": "transfer", "from": "alice", "to": "pool", "amount": 1000}
      ]
    }

Names map to stable addresses; "token", "venue" and "pool" name the deployed
contracts, and 0x-prefixed hex is used verbatim.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer

from taxtoken import logging as tlog
from taxtoken.config import DAY_SECONDS, TokenConfig, get_config, load_config, summary
from taxtoken.errors import TokenError
from taxtoken.exchange.memory import InMemoryExchange
from taxtoken.runtime.host import Host
from taxtoken.state.events import InMemoryEventSink
from taxtoken.tax.schedule import TransferTaxEngine
from taxtoken.token import TaxToken
from taxtoken.types.address import derive_address, to_address
from taxtoken.version import version_metadata

app = typer.Typer(help="Transfer-tax token toolkit (schedule, simulate, config)")


def _pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, default=str)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", envvar="TAXTOKEN_LOG_LEVEL",
                                  help="Logging level"),
    log_json: Optional[bool] = typer.Option(None, "--log-json/--log-text",
                                            help="Force JSON or text logs (default: auto)"),
) -> None:
    tlog.configure(json=log_json, level=log_level)


@app.command()
def version() -> None:
    """Print version information."""
    typer.echo(_pretty(version_metadata()))


@app.command()
def schedule(
    days: Optional[float] = typer.Option(None, "--days", "-d", help="Days elapsed since trading start"),
) -> None:
    """
    Print the tax rate at an elapsed time, or the full tier table.

    Examples:
      taxtoken schedule --days 100
      taxtoken schedule
    """
    engine = TransferTaxEngine(get_config().schedule)
    if days is not None:
        if days < 0:
            typer.echo("Error: --days must be >= 0", err=True)
            raise typer.Exit(2)
        rate = engine.current_tax_rate_percent(int(days * DAY_SECONDS), 0)
        typer.echo(_pretty({"days": days, "rate_percent": rate}))
        return

    rows: List[Dict[str, Any]] = []
    lower = 0
    for bound, rate in engine.schedule.tiers:
        rows.append({"from_day": lower // DAY_SECONDS, "to_day": bound // DAY_SECONDS, "rate_percent": rate})
        lower = bound
    rows.append({"from_day": lower // DAY_SECONDS, "to_day": None, "rate_percent": engine.schedule.floor_rate})
    typer.echo(_pretty(rows))


@app.command("config")
def show_config(
    as_json: bool = typer.Option(False, "--json", help="Print the full config as JSON"),
) -> None:
    """Print the configuration resolved from TAXTOKEN_* environment variables."""
    cfg = load_config()
    if as_json:
        typer.echo(_pretty(cfg.to_dict()))
    else:
        typer.echo(summary(cfg))


# ---------------------------------------------------------------------------
# simulate
# ---------------------------------------------------------------------------


class Scenario:
    """Name-resolving wrapper that executes scenario steps against one token."""

    def __init__(self, doc: Dict[str, Any], cfg: TokenConfig) -> None:
        self.doc = doc
        self.host = Host(start_time=int(doc.get("start_time", 1_700_000_000)))
        self.venue = InMemoryExchange(self.host, fee_bps=cfg.exchange_fee_bps)
        self.sink = InMemoryEventSink()
        self.names: Dict[str, bytes] = {}
        deployer = self.resolve(doc.get("deployer", "deployer"))
        treasury = self.resolve(doc.get("treasury", "treasury"))
        kwargs: Dict[str, Any] = {}
        if "supply" in doc:
            kwargs["initial_supply"] = int(doc["supply"])
        self.token = TaxToken(self.host, self.venue, owner=deployer, treasury=treasury,
                              config=cfg, sink=self.sink, **kwargs)
        self.names.update({
            "token": self.token.address,
            "venue": self.venue.address,
            "pool": self.venue.lookup_pool(self.token.address, self.venue.reference_currency_address()),
        })
        for name, amount in doc.get("native", {}).items():
            self.host.fund(self.resolve(name), int(amount))

        self._ops: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "transfer": self._transfer,
            "transfer_from": self._transfer_from,
            "approve": self._approve,
            "add_liquidity": self._add_liquidity,
            "advance": self._advance,
            "burn": self._burn,
            "burn_tax_tokens": self._burn_tax_tokens,
            "force_convert": self._force_convert,
            "set_excluded": self._set_excluded,
            "set_designated_pair": self._set_designated_pair,
            "set_treasury": self._set_treasury,
            "send_value": self._send_value,
        }

    def resolve(self, name: str) -> bytes:
        if name.startswith("0x"):
            return to_address(name)
        if name not in self.names:
            self.names[name] = derive_address(f"scenario:{name}")
        return self.names[name]

    def ctx(self, step: Dict[str, Any]):
        return self.host.context(self.resolve(step["from"]))

    def _transfer(self, s: Dict[str, Any]) -> Any:
        out = self.token.transfer(self.ctx(s), self.resolve(s["to"]), int(s["amount"]))
        return {"tax": out.tax, "received": out.received, "rate": out.rate}

    def _transfer_from(self, s: Dict[str, Any]) -> Any:
        out = self.token.transfer_from(self.ctx(s), self.resolve(s["owner"]), self.resolve(s["to"]),
                                       int(s["amount"]))
        return {"tax": out.tax, "received": out.received, "rate": out.rate}

    def _approve(self, s: Dict[str, Any]) -> Any:
        return self.token.approve(self.ctx(s), self.resolve(s["spender"]), int(s["amount"]))

    def _add_liquidity(self, s: Dict[str, Any]) -> Any:
        r_token, r_ref = self.venue.add_liquidity(self.ctx(s), self.token.address,
                                                  int(s["tokens"]), int(s["value"]))
        return {"reserve_token": r_token, "reserve_ref": r_ref}

    def _advance(self, s: Dict[str, Any]) -> Any:
        secs = int(s.get("seconds", 0)) + int(float(s.get("days", 0)) * DAY_SECONDS)
        return {"now": self.host.advance(secs)}

    def _burn(self, s: Dict[str, Any]) -> Any:
        self.token.burn(self.ctx(s), int(s["amount"]))

    def _burn_tax_tokens(self, s: Dict[str, Any]) -> Any:
        return {"burned": self.token.burn_tax_tokens(self.ctx(s), int(s["amount"]))}

    def _force_convert(self, s: Dict[str, Any]) -> Any:
        res = self.token.force_convert(self.ctx(s), int(s["amount"]))
        return {"amount_in": res.amount_in, "amount_out": res.amount_out}

    def _set_excluded(self, s: Dict[str, Any]) -> Any:
        self.token.set_excluded(self.ctx(s), self.resolve(s["account"]), bool(s.get("excluded", True)))

    def _set_designated_pair(self, s: Dict[str, Any]) -> Any:
        self.token.set_designated_pair(self.ctx(s), self.resolve(s["pair"]), bool(s.get("designated", True)))

    def _set_treasury(self, s: Dict[str, Any]) -> Any:
        self.token.set_treasury(self.ctx(s), self.resolve(s["treasury"]))

    def _send_value(self, s: Dict[str, Any]) -> Any:
        self.host.send_value(self.resolve(s["from"]), self.resolve(s["to"]), int(s["amount"]))

    def run_step(self, step: Dict[str, Any]) -> Dict[str, Any]:
        op = step.get("op")
        fn = self._ops.get(str(op))
        if fn is None:
            raise typer.BadParameter(f"unknown scenario op: {op!r}")
        try:
            result = fn(step)
        except TokenError as e:
            return {"op": op, "ok": False, "error": e.to_dict()}
        out: Dict[str, Any] = {"op": op, "ok": True}
        if result is not None:
            out["result"] = result
        return out

    def report(self, steps: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "token": self.token.describe(),
            "steps": steps,
            "balances": {n: self.token.balance_of(a) for n, a in sorted(self.names.items())},
            "native": {n: self.host.native_balance(a) for n, a in sorted(self.names.items())},
            "events": self.sink.names(),
        }


@app.command()
def simulate(
    scenario: Path = typer.Option(..., "--scenario", "-s", exists=True, dir_okay=False, readable=True,
                                  help="Scenario JSON file"),
    strict: bool = typer.Option(False, "--strict", help="Stop at the first failing step (exit 1)"),
) -> None:
    """
    Run a scenario and print final balances as JSON.

    Examples:
      taxtoken simulate --scenario examples/sale.json
    """
    try:
        doc = json.loads(scenario.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        typer.echo(f"Error: invalid scenario JSON: {e}", err=True)
        raise typer.Exit(2)

    cfg = load_config()
    with tlog.trace_scope(op="simulate"):
        sim = Scenario(doc, cfg)
        steps: List[Dict[str, Any]] = []
        for step in doc.get("steps", []):
            res = sim.run_step(step)
            steps.append(res)
            if strict and not res["ok"]:
                typer.echo(_pretty(sim.report(steps)))
                raise typer.Exit(1)
    typer.echo(_pretty(sim.report(steps)))


if __name__ == "__main__":
    app()
