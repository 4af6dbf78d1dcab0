"""HTTP-triggered Azure Function exposing the authenticated admin API."""

from __future__ import annotations

import azure.functions as func

from ..shared import get_json_logger, get_services, handle_request, json_response, optional_payload

LOGGER = get_json_logger("ministry.HttpAdmin")


def main(req: func.HttpRequest) -> func.HttpResponse:
    path = req.route_params.get("path") or ""
    log_context = {"method": req.method, "path": path}
    LOGGER.info("HttpAdmin triggered", extra={"event": "start", **log_context})

    def _handle() -> func.HttpResponse:
        body = optional_payload(req) if req.method in ("POST", "PUT") else {}
        result = get_services().admin.dispatch(req.method, path, req.headers.get("authorization"), body)
        return json_response(result.payload, result.status)

    return handle_request(LOGGER, _handle, log_context=log_context)
