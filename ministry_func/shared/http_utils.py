"""Response helpers shared by the HTTP-triggered functions."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

import azure.functions as func

from .config import ConfigurationError
from .generation import UpstreamError
from .logging_utils import log_exception
from .store import ContentStoreError
from .tokens import UNAUTHORIZED, AuthError
from .validators import NotFoundError, ValidationError, parse_request_payload


def json_response(payload: Any, status: int = 200, headers: Optional[Dict[str, str]] = None) -> func.HttpResponse:
    if status == 204:
        return func.HttpResponse(status_code=204, headers=headers)
    return func.HttpResponse(body=json.dumps(payload), status_code=status, mimetype="application/json", headers=headers)


def text_response(body: str, status: int = 200, mimetype: str = "text/plain") -> func.HttpResponse:
    return func.HttpResponse(body=body, status_code=status, mimetype=mimetype)


def optional_payload(req: func.HttpRequest) -> Dict[str, Any]:
    """Like :func:`parse_request_payload`, but an empty body yields ``{}``."""
    if not req.get_body():
        return {}
    return parse_request_payload(req)


def client_ip(req: func.HttpRequest) -> str:
    forwarded = req.headers.get("x-forwarded-for") or ""
    # Azure front ends append the port: "203.0.113.7:51234"
    first = forwarded.split(",")[0].strip()
    if first.count(":") == 1:
        first = first.split(":")[0]
    return first or req.headers.get("x-client-ip") or ""


def handle_request(
    logger: logging.Logger,
    handler: Callable[[], func.HttpResponse],
    *,
    failure_message: str = "An error occurred processing your request.",
    log_context: Optional[Dict[str, Any]] = None,
) -> func.HttpResponse:
    """Run *handler* and translate the error taxonomy into HTTP responses."""
    context = dict(log_context or {})
    try:
        return handler()
    except AuthError as exc:
        # Login and token failures look identical to the caller
        logger.warning("Unauthorized request", extra={"event": "unauthorized", "reason": str(exc), **context})
        return json_response({"error": UNAUTHORIZED}, 401)
    except ValidationError as exc:
        logger.warning("Invalid request payload", extra={"event": "request_invalid", "error": str(exc), **context})
        return json_response({"error": str(exc)}, 400)
    except NotFoundError as exc:
        logger.info("Not found", extra={"event": "not_found", "error": str(exc), **context})
        return json_response({"error": str(exc)}, 404)
    except ConfigurationError:
        log_exception(logger, "Function configuration missing", extra={"event": "config_error", **context})
        return json_response({"error": "Server configuration error."}, 500)
    except (UpstreamError, ContentStoreError):
        log_exception(logger, "Upstream failure", extra={"event": "upstream_error", **context})
        return json_response({"error": failure_message}, 500)
    except Exception:  # pragma: no cover - runtime error path
        log_exception(logger, "Request execution failed", extra={"event": "request_failed", **context})
        return json_response({"error": failure_message}, 500)
