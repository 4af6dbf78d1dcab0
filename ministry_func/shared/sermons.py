"""Weekly sermon cache: serve the stored sermon, regenerate once per release window."""

from __future__ import annotations

import base64
import random
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .background import BackgroundScheduler
from .generation import GenerationClient, UpstreamError, parse_generated_json
from .logging_utils import get_json_logger, log_exception
from .models import GeneratedItem, newest_first
from .release import SERMON_KEY_PREFIX, ReleaseScheduler, iso_millis
from .store import ContentStore, ContentStoreError
from .validators import NotFoundError

SERMON_TTL_SECONDS = 5_616_000  # ~65 days
LOCK_PREFIX = "lock:"
LOCK_TTL_SECONDS = 300

SERMON_THEMES = [
    "a key passage from the book of Romans",
    "a key passage from the Gospel of John",
    "the concept of faith as described in the book of Hebrews",
    "a parable from the Gospel of Luke",
    "the theme of grace in the book of Ephesians",
    "a Psalm of praise and its meaning for today's believer",
    "the importance of fellowship from the book of Acts",
]

SERMON_PROMPT = (
    "You are an AI assistant, Pastor AIden, creating a weekly sermon for a Baptist resource website. "
    "Your theology must strictly align with Southern Baptist and Independent Baptist beliefs, using the "
    "King James Version of the Bible for all scripture references. Generate a full, expositional sermon "
    "of approximately 2,500 words based on {theme}. The sermon should be structured with a clear "
    "introduction, 3-4 main points with sub-points, and a concluding call to action or reflection. "
    "Your response MUST be a JSON object with the following schema: "
    '{{"topic": "A short, engaging topic for the sermon (e.g., \'The Power of Grace\')",'
    '"title": "A formal title for the sermon (e.g., \'Unwavering Hope in Romans 8\')",'
    '"text": "The full text of the sermon, formatted with newline characters (\\n\\n) between paragraphs."}}'
)

REQUIRED_SERMON_FIELDS = ("topic", "title", "text")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SermonCache:
    """Generate-or-serve policy for the weekly sermon archive.

    Items live under ``sermon:<YYYY-MM-DD>`` (the local date of the release
    window they belong to) or ``sermon:<timestamp>`` when forced by an
    admin. A read that finds the newest item older than the current release
    window returns it anyway and regenerates in the background.
    """

    def __init__(
        self,
        store: ContentStore,
        generator: GenerationClient,
        release: ReleaseScheduler,
        background: BackgroundScheduler,
        *,
        ttl_seconds: int = SERMON_TTL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
        chooser: Callable[[List[str]], str] = random.choice,
    ) -> None:
        self.store = store
        self.generator = generator
        self.release = release
        self.background = background
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._choose = chooser
        self._logger = get_json_logger("ministry.sermons")

    # --- reads ----------------------------------------------------------------

    def list_items(self) -> List[GeneratedItem]:
        items = [GeneratedItem.from_dict(value, key) for key, value in self.store.load_all(SERMON_KEY_PREFIX)]
        return newest_first(items)

    def get(self, now: Optional[datetime] = None) -> GeneratedItem:
        """Return the current sermon, generating synchronously on a cold start."""
        return self._serve(now or self._clock())[0]

    def archive(self, now: Optional[datetime] = None) -> List[GeneratedItem]:
        """Same policy as :meth:`get`, but return every stored sermon newest first."""
        return self._serve(now or self._clock())

    def _serve(self, now: datetime) -> List[GeneratedItem]:
        window = self.release.current_release_window(now)
        bucket = self.release.bucket_key(window)
        items = self.list_items()

        if not items:
            self._logger.info("Sermon archive empty; generating", extra={"event": "sermon_cold_start", "key": bucket})
            return [self._generate_and_store(bucket)]

        latest = items[0]
        if self.is_stale(latest, window):
            self._logger.info(
                "Sermon stale; scheduling regeneration",
                extra={"event": "sermon_stale", "latest_id": latest.id, "latest_created": latest.created_at, "window": window, "key": bucket},
            )
            self._schedule_regeneration(bucket)
        return items

    @staticmethod
    def is_stale(item: GeneratedItem, window: datetime) -> bool:
        try:
            return item.created < window
        except ValueError:
            return True

    # --- background regeneration ----------------------------------------------

    def _schedule_regeneration(self, key: str) -> bool:
        lock_key = LOCK_PREFIX + key
        try:
            if self.store.get(lock_key) is not None:
                self._logger.info("Regeneration already in flight", extra={"event": "sermon_regen_locked", "key": key})
                return False
            self.store.put(lock_key, iso_millis(self._clock()), ttl_seconds=LOCK_TTL_SECONDS)
        except ContentStoreError:
            log_exception(self._logger, "Regeneration lock unavailable; proceeding", extra={"event": "sermon_lock_error", "key": key})

        self.background.schedule(self._regenerate, key)
        return True

    def _regenerate(self, key: str) -> Optional[GeneratedItem]:
        try:
            return self._generate_and_store(key)
        except (UpstreamError, ContentStoreError):
            # The stale item stays in place until the next read retries
            log_exception(self._logger, "Background sermon regeneration failed", extra={"event": "sermon_regen_error", "key": key})
            return None
        finally:
            try:
                self.store.delete(LOCK_PREFIX + key)
            except ContentStoreError:
                self._logger.warning("Lock release failed", extra={"event": "sermon_unlock_error", "key": key})

    # --- admin operations -----------------------------------------------------

    def force_generate(self, now: Optional[datetime] = None) -> GeneratedItem:
        key = self.release.timestamp_key(now or self._clock())
        self._logger.info("Forced sermon generation", extra={"event": "sermon_force", "key": key})
        return self._generate_and_store(key)

    def refresh(self, now: Optional[datetime] = None) -> Optional[GeneratedItem]:
        """Regenerate synchronously when the archive is empty or stale; used by the timer."""
        now = now or self._clock()
        window = self.release.current_release_window(now)
        items = self.list_items()
        if items and not self.is_stale(items[0], window):
            return None
        return self._generate_and_store(self.release.bucket_key(window))

    def delete(self, item_id: str) -> None:
        if not item_id.startswith(SERMON_KEY_PREFIX) or not self.store.delete(item_id):
            raise NotFoundError(f"Sermon not found: {item_id}")
        self._logger.info("Sermon deleted", extra={"event": "sermon_deleted", "id": item_id})

    def delete_all(self) -> int:
        keys = self.store.list(SERMON_KEY_PREFIX)
        deleted = sum(1 for key in keys if self.store.delete(key))
        self._logger.info("Sermon archive cleared", extra={"event": "sermon_archive_cleared", "deleted": deleted})
        return deleted

    # --- generation -----------------------------------------------------------

    def _generate_and_store(self, key: str) -> GeneratedItem:
        item = self.generate_item(key)
        self.store.put_json(key, item.to_dict(), ttl_seconds=self.ttl_seconds)
        self._logger.info(
            "Sermon stored",
            extra={"event": "sermon_stored", "key": key, "title": item.title, "has_audio": item.audio_data is not None},
        )
        return item

    def generate_item(self, key: str) -> GeneratedItem:
        sermon = self._generate_sermon_text()
        return GeneratedItem(
            id=key,
            title=sermon["title"],
            topic=sermon["topic"],
            text=sermon["text"],
            audio_data=self._generate_audio(sermon["text"]),
            created_at=iso_millis(self._clock()),
            generated=True,
        )

    def _generate_sermon_text(self) -> Dict[str, Any]:
        theme = self._choose(SERMON_THEMES)
        raw = self.generator.generate_text(
            SERMON_PROMPT.format(theme=theme),
            json_mode=True,
            temperature=0.7,
            purpose="sermon",
        )
        data = parse_generated_json(raw)
        missing = [f for f in REQUIRED_SERMON_FIELDS if not isinstance(data.get(f), str) or not data[f].strip()]
        if missing:
            raise UpstreamError("AI sermon is missing fields: " + ", ".join(missing))
        return {f: data[f].strip() for f in REQUIRED_SERMON_FIELDS}

    def _generate_audio(self, text: str) -> Optional[str]:
        try:
            audio = self.generator.synthesize_speech(text)
        except Exception:
            # Text-only sermons are still published
            log_exception(self._logger, "Audio generation failed, continuing with text-only sermon", extra={"event": "sermon_audio_error"})
            return None
        if not audio:
            return None
        return base64.b64encode(audio).decode("ascii")
