"""AI moderation and audit logging for prayer wall submissions."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .generation import GenerationClient
from .logging_utils import get_json_logger, log_exception
from .release import iso_millis, parse_iso
from .store import ContentStore, ContentStoreError
from .validators import NotFoundError, ValidationError, clean_text

APPROVE = "APPROVE"
REJECT = "REJECT"
PUBLISH_FAILED = "APPROVE_UNPUBLISHED"

PRAYER_PREFIX = "prayer:"
LOG_PREFIX = "log:"
PRAYER_TTL_SECONDS = 604_800  # 7 days
ADMIN_LOG_LIMIT = 100

MODERATION_PROMPT = (
    "You are a content moderator for a Christian church's public prayer wall. Analyze the following "
    "prayer request. Determine if it is spam, contains inappropriate content (profanity, hate speech, "
    "violence), or includes sensitive personal identifiable information (like last names, addresses, "
    "phone numbers, emails). Respond with only a single word: APPROVE if the request is a genuine, "
    "safe-for-public prayer request. Respond with only a single word: REJECT if it violates any of the "
    'rules. Prayer Request: "{text}"'
)


@dataclass(frozen=True)
class ModerationResult:
    published: bool
    decision: str
    log_id: str
    prayer_id: Optional[str] = None


def parse_decision(raw: Optional[str]) -> str:
    """Map a classifier reply onto APPROVE/REJECT; anything unclear is REJECT."""
    if not raw:
        return REJECT
    word = re.sub(r"[^A-Z]", "", raw.strip().upper())
    return APPROVE if word == APPROVE else REJECT


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModerationGate:
    """Classify a submission, always audit it, publish it only when approved."""

    def __init__(
        self,
        public_store: ContentStore,
        log_store: ContentStore,
        generator: GenerationClient,
        *,
        model: Optional[str] = None,
        prayer_ttl_seconds: int = PRAYER_TTL_SECONDS,
        log_ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.public_store = public_store
        self.log_store = log_store
        self.generator = generator
        self.model = model
        self.prayer_ttl_seconds = prayer_ttl_seconds
        self.log_ttl_seconds = log_ttl_seconds
        self._clock = clock
        self._logger = get_json_logger("ministry.moderation")

    def classify(self, text: str) -> str:
        try:
            raw = self.generator.generate_text(
                MODERATION_PROMPT.format(text=text),
                temperature=0.0,
                max_tokens=10,
                model=self.model,
                purpose="moderation",
            )
        except Exception:
            # Fail closed on timeouts, provider errors and anything unexpected
            log_exception(self._logger, "Moderation call failed; rejecting", extra={"event": "moderation_error"})
            return REJECT
        decision = parse_decision(raw)
        self._logger.info("Moderation decision", extra={"event": "moderation_decision", "decision": decision})
        return decision

    def submit(
        self,
        first_name: Any,
        request_text: Any,
        source_ip: str = "",
        now: Optional[datetime] = None,
    ) -> ModerationResult:
        first_name = clean_text(first_name)
        request_text = clean_text(request_text)
        if not first_name or not request_text:
            raise ValidationError("Missing first name or request text.")

        decision = self.classify(request_text)
        timestamp = iso_millis(now or self._clock())

        log_id = f"{LOG_PREFIX}{timestamp}:{uuid.uuid4().hex[:8]}"
        log_entry = {
            "timestamp": timestamp,
            "firstName": first_name,
            "requestText": request_text,
            "moderationStatus": decision,
            "sourceIp": source_ip or "",
        }
        # Written before any public record so every submission is audited
        self.log_store.put_json(log_id, log_entry, ttl_seconds=self.log_ttl_seconds)

        if decision != APPROVE:
            self._logger.info("Prayer held", extra={"event": "prayer_rejected", "log_id": log_id})
            return ModerationResult(published=False, decision=decision, log_id=log_id)

        prayer_id = str(uuid.uuid4())
        record = {
            "id": prayer_id,
            "firstName": first_name,
            "requestText": request_text,
            "createdAt": timestamp,
        }
        try:
            self.public_store.put_json(PRAYER_PREFIX + prayer_id, record, ttl_seconds=self.prayer_ttl_seconds)
        except ContentStoreError:
            log_exception(self._logger, "Public prayer write failed", extra={"event": "prayer_publish_error", "log_id": log_id})
            self._mark_publish_failed(log_id, log_entry)
            raise
        self._logger.info("Prayer published", extra={"event": "prayer_published", "log_id": log_id, "prayer_id": prayer_id})
        return ModerationResult(published=True, decision=decision, log_id=log_id, prayer_id=prayer_id)

    def _mark_publish_failed(self, log_id: str, log_entry: Dict[str, Any]) -> None:
        # An APPROVE log entry must always have a matching public record
        failed = {**log_entry, "moderationStatus": PUBLISH_FAILED}
        try:
            self.log_store.put_json(log_id, failed, ttl_seconds=self.log_ttl_seconds)
        except ContentStoreError:
            log_exception(self._logger, "Could not mark log entry unpublished", extra={"event": "prayer_log_mark_error", "log_id": log_id})

    # --- listings -------------------------------------------------------------

    def list_public(self) -> List[Dict[str, Any]]:
        prayers = [value for _, value in self.public_store.load_all(PRAYER_PREFIX) if isinstance(value, dict)]
        return sorted(prayers, key=lambda p: str(p.get("createdAt") or ""), reverse=True)

    def list_logs(self, limit: int = ADMIN_LOG_LIMIT) -> List[Dict[str, Any]]:
        # Keys start with the UTC timestamp, so key order is submission order
        keys = sorted(self.log_store.list(LOG_PREFIX), reverse=True)
        entries = []
        for key in keys[:limit]:
            value = self.log_store.get_json(key)
            if isinstance(value, dict):
                entries.append({**value, "id": key})
        return entries

    def delete_log(self, log_id: str) -> None:
        """Delete a log entry and, for approved ones, its public prayer."""
        entry = self.log_store.get_json(log_id) if log_id.startswith(LOG_PREFIX) else None
        if entry is None:
            raise NotFoundError(f"Prayer log not found: {log_id}")

        if entry.get("moderationStatus") == APPROVE:
            removed = self._delete_public_match(str(entry.get("timestamp") or ""))
            self._logger.info("Public prayer cleanup", extra={"event": "prayer_public_cleanup", "log_id": log_id, "removed": removed})

        self.log_store.delete(log_id)
        self._logger.info("Prayer log deleted", extra={"event": "prayer_log_deleted", "log_id": log_id})

    def _delete_public_match(self, timestamp: str) -> Optional[str]:
        try:
            target = parse_iso(timestamp)
        except ValueError:
            return None
        for key, value in self.public_store.load_all(PRAYER_PREFIX):
            try:
                created = parse_iso(str(value.get("createdAt") or ""))
            except ValueError:
                continue
            if created == target:
                self.public_store.delete(key)
                return key
        return None
