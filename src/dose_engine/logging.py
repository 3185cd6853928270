"""Structured log output for the dose engine CLI.

Every record handled by the installed handler carries the user namespace
and the timezone used for day grouping, so a reconcile or calendar log line
can be read back without knowing which store or zone produced it. Call
sites attach their own fields as ``dose_*`` extras.
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

EXTRA_PREFIX = "dose_"
_CONTEXT_KEYS = ("dose_user_id", "dose_timezone", "dose_timezone_assumed")


class DoseContextFilter(logging.Filter):
    """Stamp user and timezone context onto records that do not carry it."""

    def __init__(self, user_id: str | None, timezone_context: dict[str, Any] | None) -> None:
        super().__init__()
        context = timezone_context or {}
        self._defaults = {
            "dose_user_id": user_id,
            "dose_timezone": context.get("timezone") or "system_local",
            "dose_timezone_assumed": bool(context.get("assumed", False)),
        }

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self._defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    ``context`` holds the user/timezone stamp, ``fields`` the remaining
    ``dose_*`` extras with the prefix stripped.
    """

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {}
        fields: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if not key.startswith(EXTRA_PREFIX):
                continue
            name = key[len(EXTRA_PREFIX):]
            if key in _CONTEXT_KEYS:
                context[name] = value
            else:
                fields[name] = value

        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if context:
            entry["context"] = context
        if fields:
            entry["fields"] = fields
        if record.exc_info and record.exc_info[1] is not None:
            entry["error"] = {
                "type": type(record.exc_info[1]).__name__,
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }
        return json.dumps(entry, default=str)


def setup_logging(
    log_format: str,
    level: int = logging.INFO,
    *,
    user_id: str | None = None,
    timezone_context: dict[str, Any] | None = None,
) -> logging.Handler:
    """Replace root handlers with one stderr handler in ``json`` or ``text`` form."""
    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(DoseContextFilter(user_id, timezone_context))
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s [user=%(dose_user_id)s tz=%(dose_timezone)s]: "
                "%(message)s"
            )
        )
    root.addHandler(handler)
    return handler
