"""Newsletter sign-up endpoint."""

from __future__ import annotations

import azure.functions as func

from ..shared import get_json_logger, get_services, handle_request, json_response, parse_request_payload

LOGGER = get_json_logger("ministry.HttpSubscribe")


def main(req: func.HttpRequest) -> func.HttpResponse:
    LOGGER.info("HttpSubscribe triggered", extra={"event": "start"})

    def _handle() -> func.HttpResponse:
        status, body = get_services().subscriptions.subscribe(parse_request_payload(req))
        return json_response(body, status)

    return handle_request(LOGGER, _handle, failure_message="Could not subscribe. Please try again later.")
