"""Contact form endpoint."""

from __future__ import annotations

import azure.functions as func

from ..shared import client_ip, get_json_logger, get_services, handle_request, json_response, parse_request_payload

LOGGER = get_json_logger("ministry.HttpContact")


def main(req: func.HttpRequest) -> func.HttpResponse:
    LOGGER.info("HttpContact triggered", extra={"event": "start"})

    def _handle() -> func.HttpResponse:
        record = get_services().contact.submit(
            parse_request_payload(req),
            ip=client_ip(req),
            user_agent=req.headers.get("user-agent") or "",
        )
        return json_response({"ok": True, "id": record["id"]})

    return handle_request(LOGGER, _handle, failure_message="Failed to save message.")
