"""Serves the stored RSS feed and sitemap documents."""

from __future__ import annotations

import azure.functions as func

from ..shared import NotFoundError, get_json_logger, get_services, handle_request, text_response
from ..shared.posts import RSS_KEY, SITEMAP_KEY

LOGGER = get_json_logger("ministry.HttpFeed")

FEEDS = {
    "rss": (RSS_KEY, "application/rss+xml"),
    "sitemap.xml": (SITEMAP_KEY, "application/xml"),
}


def main(req: func.HttpRequest) -> func.HttpResponse:
    name = req.route_params.get("feed") or "rss"
    LOGGER.info("HttpFeed triggered", extra={"event": "start", "feed": name})

    def _handle() -> func.HttpResponse:
        if name not in FEEDS:
            raise NotFoundError(f"Unknown feed: {name}")
        key, mimetype = FEEDS[name]
        document = get_services().posts.feed(key)
        if document is None:
            raise NotFoundError("Feed not generated yet")
        return text_response(document, mimetype=mimetype)

    return handle_request(LOGGER, _handle, log_context={"feed": name})
