"""Newsletter sign-up through the Sender.net subscribers API."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import requests
from requests import RequestException

from .logging_utils import get_json_logger, log_exception
from .validators import clean_text, is_valid_email

SENDER_SUBSCRIBERS_URL = "https://api.sender.net/v2/subscribers"
HONEYPOT_FIELD = "ministry_solution"
REQUEST_TIMEOUT = 15

THANKS = "Thank you for subscribing!"


def _reply(success: bool, message: str) -> Dict[str, Any]:
    return {"success": success, "message": message}


class SubscriptionService:
    def __init__(
        self,
        api_key: str,
        weekly_group: str,
        daily_group: str,
        *,
        session: Optional[requests.Session] = None,
        url: str = SENDER_SUBSCRIBERS_URL,
    ) -> None:
        self.api_key = api_key
        self.weekly_group = weekly_group
        self.daily_group = daily_group
        self.url = url
        self._session = session or requests.Session()
        self._logger = get_json_logger("ministry.subscriptions")

    def subscribe(self, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """Return ``(status, body)`` for a sign-up form submission."""
        if payload.get(HONEYPOT_FIELD):
            # Bots get the same answer as people
            self._logger.info("Honeypot triggered", extra={"event": "subscribe_honeypot"})
            return 200, _reply(True, THANKS)

        email = clean_text(payload.get("email"))
        if not is_valid_email(email):
            return 400, _reply(False, "Please enter a valid email address.")
        if not payload.get("consent"):
            return 400, _reply(False, "You must agree to be contacted.")

        if not self.api_key:
            self._logger.error("Sender API key missing", extra={"event": "subscribe_config_error"})
            return 500, _reply(False, "Server configuration error.")

        groups = []
        if payload.get("weekly"):
            groups.append(self.weekly_group)
        if payload.get("daily"):
            groups.append(self.daily_group)
        if not groups:
            return 400, _reply(False, "Please select at least one newsletter.")

        try:
            response = self._session.post(
                self.url,
                json={"email": email, "groups": groups, "trigger_automation": True},
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json",
                },
                timeout=REQUEST_TIMEOUT,
            )
        except RequestException:
            log_exception(self._logger, "Sender request failed", extra={"event": "subscribe_transport_error"})
            return 502, _reply(False, "Could not subscribe. Please try again later.")

        if not response.ok:
            self._logger.error(
                "Sender API error",
                extra={"event": "subscribe_upstream_error", "status_code": response.status_code, "body": response.text[:500]},
            )
            return response.status_code, _reply(False, "Could not subscribe. Please try again later.")

        self._logger.info("Subscriber added", extra={"event": "subscribe_ok", "groups": groups})
        return 200, _reply(True, THANKS)
