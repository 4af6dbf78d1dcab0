"""Contact form capture with an optional email webhook notification."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import requests
from requests import RequestException

from .logging_utils import get_json_logger, log_exception
from .posts import make_id
from .release import iso_millis
from .store import ContentStore
from .validators import clean_text

CONTACT_PREFIX = "contact:"
WEBHOOK_TIMEOUT = 15


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactService:
    def __init__(
        self,
        store: ContentStore,
        *,
        webhook_url: str = "",
        notify_email: str = "",
        session: Optional[requests.Session] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.webhook_url = webhook_url
        self.notify_email = notify_email
        self._session = session or requests.Session()
        self._clock = clock
        self._logger = get_json_logger("ministry.contact")

    def submit(self, payload: Dict[str, Any], ip: str = "", user_agent: str = "") -> Dict[str, Any]:
        record_id = CONTACT_PREFIX + make_id()
        record = {
            "id": record_id,
            "name": clean_text(payload.get("name")),
            "email": clean_text(payload.get("email")),
            "message": clean_text(payload.get("message")),
            "page": clean_text(payload.get("page")),
            "formId": clean_text(payload.get("formId")),
            "trackingId": clean_text(payload.get("trackingId")),
            "ua": user_agent,
            "ip": ip,
            "createdAt": iso_millis(self._clock()),
        }
        self.store.put_json(record_id, record)
        self._logger.info("Contact saved", extra={"event": "contact_saved", "id": record_id, "page": record["page"]})

        if self.webhook_url:
            self._notify(record)
        return record

    def _notify(self, record: Dict[str, Any]) -> bool:
        body = {
            "subject": f"New site contact: {record['name'] or '(no name)'} - {record['page']}",
            "text": (
                f"{record['message']}\n\nFrom: {record['name']} <{record['email']}>\n"
                f"Page: {record['page']}\nForm: {record['formId']}\nIP: {record['ip']}"
            ),
            "to": self.notify_email,
        }
        try:
            response = self._session.post(self.webhook_url, json=body, timeout=WEBHOOK_TIMEOUT)
            response.raise_for_status()
        except RequestException:
            # The record is already stored; a failed notification is not fatal
            log_exception(self._logger, "Email webhook failed", extra={"event": "contact_webhook_error", "id": record["id"]})
            return False
        self._logger.info("Email webhook sent", extra={"event": "contact_webhook_ok", "id": record["id"], "status_code": response.status_code})
        return True
