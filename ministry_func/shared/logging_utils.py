# ministry_func/shared/logging_utils.py

"""Logging helpers used by the Azure Function implementation."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Any, Dict
from uuid import UUID

LOG_LEVEL_ENV = "MINISTRY_LOG_LEVEL"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("x", logging.INFO, "x", 0, "x", None, None)).keys()
) | {"message", "asctime"}


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _json_safe(obj: Any) -> Any:
    """
    Convert common non-JSON-serializable types to JSON-safe representations.
    This function is used by JsonFormatter to guarantee logging never crashes.
    """
    if isinstance(obj, (datetime, date, time)):
        try:
            return obj.isoformat()
        except Exception:
            return str(obj)
    if isinstance(obj, timedelta):
        return obj.total_seconds()

    if isinstance(obj, (UUID, Path)):
        return str(obj)

    # Audio payloads end up here; never dump them into the log stream
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return {"__bytes__": True, "len": len(obj)}

    if isinstance(obj, (set, frozenset)):
        return [_json_safe(x) for x in obj]

    if isinstance(obj, dict):
        return {str(k): _json_safe(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [_json_safe(x) for x in obj]

    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    return str(obj)


def _json_dumps(payload: Dict[str, Any]) -> str:
    """
    Safe json.dumps that uses _json_safe for unknown types
    and never raises out of the logger.
    """
    try:
        return json.dumps(payload, ensure_ascii=False, default=_json_safe)
    except Exception as exc:  # pragma: no cover
        try:
            return json.dumps(
                {
                    "timestamp": _utc_stamp(),
                    "level": payload.get("level", "INFO"),
                    "message": f"[logging-fallback] {payload.get('message', '')}",
                    "logger": payload.get("logger", "ministry"),
                    "fallback_error": str(exc),
                },
                ensure_ascii=False,
            )
        except Exception:
            return '{"level":"ERROR","message":"logging serialization failure","logger":"ministry"}'


class JsonFormatter(logging.Formatter):
    """Formats log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": _utc_stamp(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            try:
                payload["exception"] = self.formatException(record.exc_info)
            except Exception:
                payload["exception"] = "unable to format exception"

        # Merge structured extras passed via ``extra=``
        extras = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}
        if extras:
            try:
                payload.update(_json_safe(extras))
            except Exception:
                payload["extra"] = str(extras)

        return _json_dumps(payload)


def _build_handler() -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())
    return handler


def get_json_logger(name: str = "ministry") -> logging.Logger:
    """Return a module-level logger configured for JSON output."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(_build_handler())
        level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
        logger.setLevel(getattr(logging, level_name, logging.INFO))
        logger.propagate = False
    return logger


def log_exception(logger: logging.Logger, message: str, **context: Any) -> None:
    """Helper to log an exception with structured context."""
    context.setdefault("extra", {})
    context["extra"].setdefault("event", "exception")
    logger.exception(message, **context)
