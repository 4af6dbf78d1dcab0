"""Composition root: builds every component once per worker process."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

from .admin import AdminRouter
from .background import ThreadPoolBackgroundScheduler
from .config import Settings, load_settings
from .contact import ContactService
from .generation import OpenAIGenerationClient
from .logging_utils import get_json_logger
from .moderation import ModerationGate
from .pastor import PastorAssistant
from .posts import PostService
from .release import ReleaseScheduler
from .sermons import SermonCache
from .store import BlobContentStore, ContentStore, MemoryContentStore
from .subscriptions import SubscriptionService
from .tokens import TokenCodec

LOGGER = get_json_logger("ministry.services")


@dataclass
class Services:
    settings: Settings
    admin: AdminRouter
    sermons: SermonCache
    prayers: ModerationGate
    posts: PostService
    pastor: PastorAssistant
    subscriptions: SubscriptionService
    contact: ContactService


def _store_factory(settings: Settings) -> Callable[[str], ContentStore]:
    if settings.store_backend == "memory":
        return lambda container: MemoryContentStore(container)
    return lambda container: BlobContentStore.from_connection_string(settings.storage_connection, container)


def build_services(settings: Settings) -> Services:
    make_store = _store_factory(settings)
    generator = OpenAIGenerationClient(
        settings.openai_api_key,
        text_model=settings.text_model,
        tts_model=settings.tts_model,
        tts_voice=settings.tts_voice,
        timeout=settings.generation_timeout_seconds,
    )
    release = ReleaseScheduler(settings.release_timezone, settings.release_weekday, settings.release_time)

    sermons = SermonCache(
        make_store(settings.sermon_container),
        generator,
        release,
        ThreadPoolBackgroundScheduler(),
        ttl_seconds=settings.sermon_ttl_seconds,
    )
    prayers = ModerationGate(
        make_store(settings.prayer_container),
        make_store(settings.prayer_log_container),
        generator,
        model=settings.moderation_model,
        prayer_ttl_seconds=settings.prayer_ttl_seconds,
        log_ttl_seconds=settings.prayer_log_ttl_seconds,
    )
    posts = PostService(
        make_store(settings.blog_container),
        generator,
        base_url=settings.site_base_url,
        site_title=settings.site_title,
        prompt_template=settings.post_prompt_template,
    )
    admin = AdminRouter(
        TokenCodec(settings.admin_secret, settings.token_max_age_seconds),
        settings.admin_identities,
        sermons,
        prayers,
        posts,
    )

    LOGGER.info(
        "Services initialised",
        extra={"event": "services_ready", "store_backend": settings.store_backend, "release_tz": settings.release_timezone},
    )
    return Services(
        settings=settings,
        admin=admin,
        sermons=sermons,
        prayers=prayers,
        posts=posts,
        pastor=PastorAssistant(generator),
        subscriptions=SubscriptionService(settings.sender_api_key, settings.sender_weekly_group, settings.sender_daily_group),
        contact=ContactService(
            make_store(settings.analytics_container),
            webhook_url=settings.email_webhook_url,
            notify_email=settings.notify_email,
        ),
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    """Return the process-wide :class:`Services`, reading the environment on first use."""
    return build_services(load_settings())
