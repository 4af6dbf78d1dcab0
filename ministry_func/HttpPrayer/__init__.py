"""Prayer wall: public listing and moderated submissions."""

from __future__ import annotations

import azure.functions as func

from ..shared import (
    client_ip,
    get_json_logger,
    get_services,
    handle_request,
    json_response,
    parse_request_payload,
)

LOGGER = get_json_logger("ministry.HttpPrayer")

SUBMITTED_MESSAGE = "Prayer request submitted."


def main(req: func.HttpRequest) -> func.HttpResponse:
    LOGGER.info("HttpPrayer triggered", extra={"event": "start", "method": req.method})

    def _handle() -> func.HttpResponse:
        prayers = get_services().prayers
        if req.method == "GET":
            return json_response(prayers.list_public())

        data = parse_request_payload(req)
        result = prayers.submit(data.get("firstName"), data.get("requestText"), client_ip(req))
        # Held submissions are indistinguishable from published ones to the client
        return json_response({"success": True, "message": SUBMITTED_MESSAGE}, 201 if result.published else 200)

    return handle_request(LOGGER, _handle, failure_message="Failed to process prayer request.")
