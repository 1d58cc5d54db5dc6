from __future__ import annotations

import copy
import logging
from typing import Any

from service import logging_utils as _backend

# Keys that should be redacted from structured logs
_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "smtp_password",
    "authorization",
    "auth",
    "bearer",
}


def _redact_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-copy record and redact obvious secret-like fields at top level.
    The backend does a deep pass as well.
    """
    redacted = copy.copy(record)
    for k in list(redacted.keys()):
        lk = str(k).lower()
        if lk in _REDACT_KEYS or lk.startswith("smtp_") or lk.endswith("_secret"):
            redacted[k] = "***REDACTED***"
    return redacted


def activity(record: dict[str, Any]) -> None:
    """
    Write an activity record (JSONL) and mirror it to the stdlib logger at DEBUG.
    Log I/O failures are reported through stdlib logging and never raised.
    """
    payload = _redact_record(record)
    logging.getLogger("vacancy_watch.activity").debug("%s", payload)
    try:
        _backend.write_activity_log(payload)
    except (OSError, TypeError, ValueError):
        logging.getLogger("vacancy_watch.activity").warning("activity log write failed", exc_info=True)


def error(record: dict[str, Any]) -> None:
    """
    Write an error record (JSONL) and mirror it to the stdlib logger at WARNING.
    """
    payload = _redact_record(record)
    logging.getLogger("vacancy_watch.error").warning("%s", payload)
    try:
        _backend.write_error_log(payload)
    except (OSError, TypeError, ValueError):
        logging.getLogger("vacancy_watch.error").error("error log write failed", exc_info=True)
