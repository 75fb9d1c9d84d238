# listing_watch/logging_utils.py
"""
Structured JSONL logs: one activity stream and one error stream, one file per
day per stream under LOG_DIR (<prefix>-YYYY-MM-DD.jsonl).

Every record is redacted before it is serialized:
  - values under secret-looking keys are replaced wholesale
  - webhook URLs and bearer tokens inside any string are scrubbed

Env (read on every write so tests and the CLI can redirect):
  LOG_DIR                 default ./local/logs
  ACTIVITY_LOG_PREFIX     default activity
  ERROR_LOG_PREFIX        default error
  ACTIVITY_LOG_MAX_BYTES  size rotation threshold for both streams; <=0 disables
"""

from __future__ import annotations

import contextlib
import datetime as _dt
import json
import os
import re
import socket
from dataclasses import dataclass
from typing import Any

REDACTED = "***REDACTED***"

_SECRET_KEY = re.compile(r"password|token|api_?key|secret|webhook|authorization|cookie", re.IGNORECASE)
_WEBHOOK_URL = re.compile(r"(https?://[^\s'\"]*/webhooks/)[^\s'\"]+", re.IGNORECASE)
_BEARER = re.compile(r"(bearer\s+)\S+", re.IGNORECASE)

_HOST = socket.gethostname()
_PID = os.getpid()


@dataclass(frozen=True)
class _Stream:
    prefix_env: str
    default_prefix: str

    def path(self) -> str:
        prefix = os.getenv(self.prefix_env, self.default_prefix)
        day = _dt.date.today().isoformat()
        return os.path.join(os.getenv("LOG_DIR", "./local/logs"), f"{prefix}-{day}.jsonl")


ACTIVITY = _Stream("ACTIVITY_LOG_PREFIX", "activity")
ERROR = _Stream("ERROR_LOG_PREFIX", "error")


# ---- Public API --------------------------------------------------------------


def write_activity_log(record: dict[str, Any]) -> None:
    """
    Append one activity record. The caller's dict is never mutated.
    Raises on unrecoverable I/O errors; logging_bridge decides what to do then.
    """
    _append(ACTIVITY, record)


def write_error_log(record: dict[str, Any]) -> None:
    _append(ERROR, record)


def get_activity_log_path() -> str:
    return ACTIVITY.path()


def get_error_log_path() -> str:
    return ERROR.path()


def redact(value: Any) -> Any:
    """Redacted deep copy of dicts/lists/tuples; strings are scrubbed in place of copying."""
    if isinstance(value, dict):
        return {
            k: REDACTED if isinstance(k, str) and _SECRET_KEY.search(k) else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v) for v in value)
    if isinstance(value, str):
        return _BEARER.sub(rf"\1{REDACTED}", _WEBHOOK_URL.sub(rf"\1{REDACTED}", value))
    return value


# ---- Internals ---------------------------------------------------------------


def _max_bytes() -> int:
    try:
        return int(os.getenv("ACTIVITY_LOG_MAX_BYTES", "0"))
    except ValueError:
        return 0


def _rotate_if_full(path: str) -> None:
    limit = _max_bytes()
    if limit <= 0:
        return
    try:
        full = os.path.getsize(path) >= limit
    except FileNotFoundError:
        return
    if full:
        stamp = _dt.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        with contextlib.suppress(FileNotFoundError):
            os.replace(path, f"{path}.{stamp}")


def _encode(record: dict[str, Any]) -> bytes:
    body = redact(record)
    meta = body.get("_meta") if isinstance(body.get("_meta"), dict) else {}
    body["_meta"] = {**meta, "host": _HOST, "pid": _PID}
    line = json.dumps(body, ensure_ascii=False, separators=(",", ":"), default=str)
    return (line + "\n").encode("utf-8")


def _append(stream: _Stream, record: dict[str, Any]) -> None:
    """
    Single-line append with O_APPEND so concurrent writers never interleave.
    Serialization happens before any file is touched. One retry on OSError
    covers a log dir removed between mkdir and open.
    """
    data = _encode(record)
    path = stream.path()

    for attempt in (1, 2):
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        _rotate_if_full(path)
        try:
            fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
        except OSError:
            if attempt == 2:
                raise
            continue
        try:
            os.write(fd, data)
        finally:
            os.close(fd)
        return
