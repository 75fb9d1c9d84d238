from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from listing_watch import logging_utils as _logging_backend

from .utils import now_iso


def _emit(write: Callable[[dict[str, Any]], None], logger_name: str, level: int, record: dict[str, Any]) -> None:
    payload = {"ts": now_iso(), **record}
    try:
        write(payload)
        return
    except Exception:
        logging.getLogger(logger_name).debug("structured log write failed", exc_info=True)
    # The JSONL writer redacts for itself; the stdlib fallback has to be told.
    logging.getLogger(logger_name).log(level, _logging_backend.redact(payload))


def activity(record: dict[str, Any]) -> None:
    """Append to the activity log; on write failure, log at INFO via stdlib logging."""
    _emit(_logging_backend.write_activity_log, "listing_watch.activity", logging.INFO, record)


def error(record: dict[str, Any]) -> None:
    """Append to the error log; on write failure, log at ERROR via stdlib logging."""
    _emit(_logging_backend.write_error_log, "listing_watch.error", logging.ERROR, record)
