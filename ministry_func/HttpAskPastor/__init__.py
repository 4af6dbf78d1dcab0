"""Ask-the-pastor endpoint backed by the generation client."""

from __future__ import annotations

import azure.functions as func

from ..shared import get_json_logger, get_services, handle_request, json_response, parse_request_payload

LOGGER = get_json_logger("ministry.HttpAskPastor")


def main(req: func.HttpRequest) -> func.HttpResponse:
    LOGGER.info("HttpAskPastor triggered", extra={"event": "start"})

    def _handle() -> func.HttpResponse:
        data = parse_request_payload(req)
        return json_response({"response": get_services().pastor.answer(data.get("question"))})

    return handle_request(LOGGER, _handle, failure_message="Failed to get response from AI.")
