"""Process configuration for the ministry Function app.

Settings are read from the environment exactly once (see
:func:`ministry_func.shared.services.get_services`) and handed to the
components that need them. Business logic never reads ``os.environ``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from typing import List, Mapping, Optional

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

DEFAULT_POST_TEMPLATE = (
    "Write a short local blog post (3-5 short paragraphs) about {topic} "
    "for a small-town audience. Tone: friendly, helpful."
)


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or malformed."""


@dataclass(frozen=True)
class AdminIdentity:
    username: str
    password: str
    role: str


@dataclass(frozen=True)
class Settings:
    admin_secret: str
    super_admin: AdminIdentity
    site_admin: AdminIdentity
    token_max_age_seconds: Optional[int]

    openai_api_key: str
    text_model: str
    moderation_model: str
    tts_model: str
    tts_voice: str
    generation_timeout_seconds: float

    store_backend: str
    storage_connection: str
    sermon_container: str
    prayer_container: str
    prayer_log_container: str
    blog_container: str
    analytics_container: str

    release_timezone: str
    release_weekday: int
    release_time: time

    sermon_ttl_seconds: int
    prayer_ttl_seconds: int
    prayer_log_ttl_seconds: Optional[int]

    sender_api_key: str
    sender_weekly_group: str
    sender_daily_group: str
    email_webhook_url: str
    notify_email: str

    site_base_url: str
    site_title: str
    post_prompt_template: str

    @property
    def admin_identities(self) -> List[AdminIdentity]:
        return [self.super_admin, self.site_admin]


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _parse_release_time(raw: str) -> time:
    try:
        hours, minutes = raw.split(":", 1)
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ConfigurationError(f"SERMON_RELEASE_TIME must look like HH:MM, got {raw!r}") from exc


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from *environ* (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ

    store_backend = _get(env, "CONTENT_STORE_BACKEND", "blob").lower()
    if store_backend not in ("blob", "memory"):
        raise ConfigurationError(f"CONTENT_STORE_BACKEND must be 'blob' or 'memory', got {store_backend!r}")

    required = [
        "ADMIN_SECRET",
        "SUPERADMIN_USERNAME",
        "SUPERADMIN_PASSWORD",
        "SITEADMIN_USERNAME",
        "SITEADMIN_PASSWORD",
        "OPENAI_API_KEY",
    ]
    if store_backend == "blob":
        required.append("CONTENT_STORAGE_CONNECTION")

    missing = [name for name in required if not _get(env, name)]
    if missing:
        raise ConfigurationError("Missing required environment variables: " + ", ".join(sorted(missing)))

    weekday_name = _get(env, "SERMON_RELEASE_WEEKDAY", "sunday").lower()
    if weekday_name not in WEEKDAYS:
        raise ConfigurationError(f"SERMON_RELEASE_WEEKDAY must be a weekday name, got {weekday_name!r}")

    max_age = _get_int(env, "TOKEN_MAX_AGE_SECONDS", 0)
    log_ttl_days = _get_int(env, "PRAYER_LOG_TTL_DAYS", 365)

    return Settings(
        admin_secret=_get(env, "ADMIN_SECRET"),
        super_admin=AdminIdentity(_get(env, "SUPERADMIN_USERNAME"), _get(env, "SUPERADMIN_PASSWORD"), "super"),
        site_admin=AdminIdentity(_get(env, "SITEADMIN_USERNAME"), _get(env, "SITEADMIN_PASSWORD"), "site"),
        token_max_age_seconds=max_age or None,
        openai_api_key=_get(env, "OPENAI_API_KEY"),
        text_model=_get(env, "MINISTRY_TEXT_MODEL", "gpt-4.1"),
        moderation_model=_get(env, "MINISTRY_MODERATION_MODEL", "gpt-4.1-mini"),
        tts_model=_get(env, "MINISTRY_TTS_MODEL", "gpt-4o-mini-tts"),
        tts_voice=_get(env, "MINISTRY_TTS_VOICE", "onyx"),
        generation_timeout_seconds=float(_get_int(env, "GENERATION_TIMEOUT_SECONDS", 25)),
        store_backend=store_backend,
        storage_connection=_get(env, "CONTENT_STORAGE_CONNECTION"),
        sermon_container=_get(env, "SERMON_CONTAINER", "mbsermon"),
        prayer_container=_get(env, "PRAYER_CONTAINER", "mbpray"),
        prayer_log_container=_get(env, "PRAYER_LOG_CONTAINER", "mbpray-logs"),
        blog_container=_get(env, "BLOG_CONTAINER", "blog"),
        analytics_container=_get(env, "ANALYTICS_CONTAINER", "analytics"),
        release_timezone=_get(env, "SERMON_RELEASE_TIMEZONE", "America/New_York"),
        release_weekday=WEEKDAYS[weekday_name],
        release_time=_parse_release_time(_get(env, "SERMON_RELEASE_TIME", "08:45")),
        sermon_ttl_seconds=_get_int(env, "SERMON_TTL_SECONDS", 5_616_000),
        prayer_ttl_seconds=_get_int(env, "PRAYER_TTL_SECONDS", 604_800),
        prayer_log_ttl_seconds=log_ttl_days * 86_400 if log_ttl_days > 0 else None,
        sender_api_key=_get(env, "SENDER_API_KEY"),
        sender_weekly_group=_get(env, "SENDER_WEEKLY_GROUP_ID", "avJD68"),
        sender_daily_group=_get(env, "SENDER_DAILY_GROUP_ID", "YdwgZ6r"),
        email_webhook_url=_get(env, "EMAIL_WEBHOOK_URL"),
        notify_email=_get(env, "NOTIFY_EMAIL"),
        site_base_url=_get(env, "SITE_BASE_URL", "https://example.com").rstrip("/"),
        site_title=_get(env, "SITE_TITLE", "Alfred Web Design & Shirts - Blog"),
        post_prompt_template=_get(env, "PROMPT_TEMPLATE", DEFAULT_POST_TEMPLATE),
    )
