"""Weekly release window arithmetic for generated sermons."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

SERMON_KEY_PREFIX = "sermon:"


def iso_millis(instant: datetime) -> str:
    """Render *instant* as UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` accepted) into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ReleaseScheduler:
    """Finds the most recent weekly release instant in a civil timezone.

    The computation is done on local calendar dates, then localised with
    ``zoneinfo``; adding fixed UTC offsets instead would shift the result
    by a day around daylight-saving changes.
    """

    def __init__(self, tz_name: str = "America/New_York", weekday: int = 6, release_time: time = time(8, 45)) -> None:
        if not 0 <= weekday <= 6:
            raise ValueError("weekday must be 0 (Monday) .. 6 (Sunday)")
        self.tz = ZoneInfo(tz_name)
        self.weekday = weekday
        self.release_time = release_time

    def _localize(self, day: date) -> datetime:
        # A release time inside a spring-forward gap does not exist locally;
        # the UTC round trip moves it to the real instant after the gap
        local = datetime.combine(day, self.release_time, tzinfo=self.tz)
        return local.astimezone(timezone.utc).astimezone(self.tz)

    def current_release_window(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local_now = now.astimezone(self.tz)

        days_back = (local_now.weekday() - self.weekday) % 7
        window = self._localize(local_now.date() - timedelta(days=days_back))
        # Target weekday but before the release time: last week's window applies
        if window.astimezone(timezone.utc) > now.astimezone(timezone.utc):
            window = self._localize(window.date() - timedelta(days=7))
        return window

    def bucket_key(self, window: datetime) -> str:
        return f"{SERMON_KEY_PREFIX}{window.astimezone(self.tz).date().isoformat()}"

    @staticmethod
    def timestamp_key(instant: datetime) -> str:
        return f"{SERMON_KEY_PREFIX}{iso_millis(instant)}"
