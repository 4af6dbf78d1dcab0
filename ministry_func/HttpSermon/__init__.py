"""Public sermon endpoints: ``/api/sermon`` (latest) and ``/api/sermons`` (archive)."""

from __future__ import annotations

import azure.functions as func

from ..shared import get_json_logger, get_services, handle_request, json_response

LOGGER = get_json_logger("ministry.HttpSermon")


def main(req: func.HttpRequest) -> func.HttpResponse:
    kind = req.route_params.get("kind") or "sermon"
    LOGGER.info("HttpSermon triggered", extra={"event": "start", "kind": kind})

    def _handle() -> func.HttpResponse:
        sermons = get_services().sermons
        if kind == "sermons":
            return json_response([item.to_dict() for item in sermons.archive()])
        return json_response(sermons.get().to_dict())

    return handle_request(
        LOGGER,
        _handle,
        failure_message="Failed to load sermon.",
        log_context={"kind": kind},
    )
