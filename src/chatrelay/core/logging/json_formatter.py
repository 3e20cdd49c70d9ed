from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone

from .context import get_log_context
from .redact import redact_string

# Base keys that extra_fields may not overwrite.
_RESERVED = frozenset({"ts_iso_utc", "level", "logger", "msg"})


def _scrub(value: object) -> object:
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return {key: _scrub(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    return value


class JSONFormatter(logging.Formatter):
    """One JSON object per line; every string that reaches the output is passed through ``redact_string``."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, object] = {
            "ts_iso_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update(get_log_context())

        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            line.update({key: value for key, value in fields.items() if key not in _RESERVED})

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            line["exc_type"] = exc_type.__name__
            line["exc_msg"] = str(exc_value)
            line["stack"] = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

        return json.dumps(_scrub(line), separators=(",", ":"), ensure_ascii=False, default=str)
