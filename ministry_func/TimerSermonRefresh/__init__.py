"""Timer-triggered Function that keeps the weekly sermon current."""

from __future__ import annotations

import azure.functions as func

from ..shared import ContentStoreError, UpstreamError, get_json_logger, get_services, log_exception

LOGGER = get_json_logger("ministry.TimerSermonRefresh")


def main(timer: func.TimerRequest) -> None:
    LOGGER.info("TimerSermonRefresh triggered", extra={"event": "start", "past_due": timer.past_due})
    try:
        item = get_services().sermons.refresh()
    except (UpstreamError, ContentStoreError):
        # The next tick retries
        log_exception(LOGGER, "Scheduled sermon refresh failed", extra={"event": "sermon_refresh_error"})
        return

    if item is None:
        LOGGER.info("Sermon already current", extra={"event": "sermon_refresh_skipped"})
    else:
        LOGGER.info("Sermon refreshed", extra={"event": "sermon_refreshed", "id": item.id})
