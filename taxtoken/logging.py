"""
taxtoken.logging
----------------

Structured logging for the token runtime and CLI:
- JSON or concise (optionally colored) text formats
- Context-local fields via `contextvars` (trace_id, token, op, caller)
- Safe value coercion (bytes → hex, Paths → str, dataclasses → dict)
- Stdlib only

Usage
-----
    from taxtoken import logging as tlog

    tlog.configure(json=False, level="INFO")  # once, at process start
    log = tlog.get_logger(__name__)

    with tlog.trace_scope():
        tlog.bind(op="transfer")
        log.info("transfer applied")

Library modules keep using `logging.getLogger(__name__)`; the token binds
`trace_id`/`op`/`caller` around every outermost public call so those fields
show up on every record emitted underneath.
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_TAXTOKEN_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = ("trace_id", "token", "op", "caller")

_LEVEL_TO_INT = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}

# Attributes every LogRecord carries; anything else is a caller-supplied extra.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


# ----------------------------
# Context
# ----------------------------


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def unbind(*keys: str) -> None:
    cur = dict(_LOG_CONTEXT.get())
    for k in keys:
        cur.pop(k, None)
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None, **fields: Any) -> Iterator[str]:
    """
    Ensure a trace_id (plus any extra fields) for the duration of the scope.
    Restores the prior context on exit.
    """
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or prev.get("trace_id") or short_uuid()
    try:
        bind(trace_id=tid, **fields)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


# ----------------------------
# Formatters
# ----------------------------


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Path):
        return str(v)
    if isinstance(v, _dt.datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=_dt.timezone.utc)
        return v.isoformat()
    if is_dataclass(v) and not isinstance(v, type):
        return {k: _coerce_value(x) for k, x in asdict(v).items()}
    return str(v)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _coerce_value(v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RECORD_ATTRS
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, separators=(",", ":"), default=str)


class TextFormatter(logging.Formatter):
    """
    One line per record:
      2026-01-05T12:34:56.789+00:00 | INFO  | taxtoken.tax.autoswap | trace_id=ab12 op=transfer | converted held tax
    """

    _COLORS = {
        logging.DEBUG: "\x1b[90m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[1m\x1b[35m",
    }

    def __init__(self, stream: Optional[io.TextIOBase] = None):
        super().__init__()
        self._color = _supports_color(stream) if stream is not None else False

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)

        lvl = f"{record.levelname:<5}"
        if self._color:
            lvl = f"{self._COLORS.get(record.levelno, '')}{lvl}\x1b[0m"

        line = f"{_utcnow_iso()} | {lvl} | {record.name}"
        if ctx_str:
            line += f" | {ctx_str}"
        if extras:
            line += f" {extras}"
        line += f" | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


def _supports_color(stream: Any) -> bool:
    try:
        return bool(stream.isatty()) and os.environ.get("NO_COLOR") is None
    except (AttributeError, ValueError):
        return False


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: Any = None,
    file_path: Optional[Path | str] = None,
) -> None:
    """
    Configure the `taxtoken` logger hierarchy.

    json=None picks the format from TAXTOKEN_LOG_FORMAT, falling back to text on
    a TTY and JSON otherwise. An optional file handler always writes JSON.
    """
    stream = stream if stream is not None else sys.stderr
    chosen_json = _decide_json(json, stream)
    lvl = _coerce_level(level)

    root = logging.getLogger("taxtoken")
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(lvl)
    console.setFormatter(JSONFormatter() if chosen_json else TextFormatter(stream))
    root.addHandler(console)

    if file_path:
        p = Path(file_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(p, encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(JSONFormatter())
        root.addHandler(fh)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "taxtoken")


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return _LEVEL_TO_INT.get(level.strip().upper(), logging.INFO)


def _decide_json(json_flag: Optional[bool], stream: Any) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get("TAXTOKEN_LOG_FORMAT", "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    return not _supports_color(stream)


__all__ = [
    "DEFAULT_CONTEXT_KEYS",
    "context",
    "bind",
    "unbind",
    "clear_context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "get_logger",
]
