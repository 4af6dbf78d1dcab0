"""Validation helpers for the Azure Function request pipeline."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable

import azure.functions as func

EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")


class ValidationError(ValueError):
    """Raised when the HTTP request payload is invalid."""


class NotFoundError(LookupError):
    """Raised when a route or stored record does not exist."""


def parse_request_payload(req: func.HttpRequest) -> Dict[str, Any]:
    """Return the JSON object body of *req* or raise :class:`ValidationError`."""

    try:
        data = req.get_json()
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON.") from exc

    if not isinstance(data, dict):
        raise ValidationError("Request JSON must be an object.")
    return data


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def require_fields(data: Dict[str, Any], fields: Iterable[str], message: str | None = None) -> Dict[str, str]:
    """Return stripped values for *fields*, raising if any is missing or blank."""

    resolved: Dict[str, str] = {}
    missing = []
    for field in fields:
        value = clean_text(data.get(field))
        if not value:
            missing.append(field)
            continue
        resolved[field] = value

    if missing:
        raise ValidationError(message or "Missing required fields: " + ", ".join(missing))
    return resolved


def is_valid_email(value: str) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value))
