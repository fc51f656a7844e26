from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from leadops.context import get_actor_id, get_correlation_id
from leadops.core.config import get_settings


# Structured fields allowed into the "fields" object; anything else passed via
# ``extra`` (phone numbers, names) is dropped from the JSON line.
LOGGED_FIELDS = frozenset(
    {
        "method",
        "path",
        "status_code",
        "duration_ms",
        "enquiry_id",
        "job_order_id",
        "job_lead_id",
        "follow_up_id",
        "call_log_id",
        "worker_id",
        "notification_id",
        "count",
        "mode",
        "status",
        "previous_status",
        "error_kind",
        "event_name",
        "error",
    }
)
_MAX_ERROR_LENGTH = 500

_base_factory = logging.getLogRecordFactory()


def _contextual_record(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    record.correlation_id = get_correlation_id()
    record.actor_id = get_actor_id()
    return record


def _structured_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {key: value for key, value in vars(record).items() if key in LOGGED_FIELDS and value is not None}
    if isinstance(fields.get("error"), str):
        fields["error"] = fields["error"][:_MAX_ERROR_LENGTH]
    if record.exc_info:
        fields["exception"] = logging.Formatter().formatException(record.exc_info)
    return fields


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line with the request correlation id at top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
            "actor_id": getattr(record, "actor_id", None),
            "fields": _structured_fields(record),
        }
        return json.dumps(payload, default=str)


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if getattr(root, "_leadops_configured", False):
        return

    if level is None:
        level = get_settings().log_level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    logging.setLogRecordFactory(_contextual_record)
    root.handlers = [handler]
    root.setLevel(resolved)
    root._leadops_configured = True  # type: ignore[attr-defined]
