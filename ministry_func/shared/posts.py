"""Blog post management for the site admin panel."""

from __future__ import annotations

import random
import re
import string
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .feed_renderer import render_rss, render_sitemap
from .generation import GenerationClient, UpstreamError, parse_generated_json
from .logging_utils import get_json_logger, log_exception
from .models import GeneratedItem, newest_first
from .release import iso_millis
from .store import ContentStore, ContentStoreError
from .validators import NotFoundError, ValidationError, clean_text

POST_PREFIX = "post:"
RSS_KEY = "rss_xml"
SITEMAP_KEY = "sitemap_xml"
POST_LIST_LIMIT = 1000

_ALPHABET = string.digits + string.ascii_lowercase


def _base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits)) or "0"


def make_id() -> str:
    """Short sortable id: base36 millis plus six random characters."""
    suffix = "".join(random.choice(_ALPHABET) for _ in range(6))
    return f"{_base36(int(time.time() * 1000))}-{suffix}"


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def post_payload(post: GeneratedItem) -> Dict[str, Any]:
    data = post.to_dict()
    # The public blog templates read the body from ``content``
    data["content"] = data.pop("text")
    data.pop("audioData", None)
    data.pop("topic", None)
    return data


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostService:
    def __init__(
        self,
        store: ContentStore,
        generator: GenerationClient,
        *,
        base_url: str,
        site_title: str,
        prompt_template: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.generator = generator
        self.base_url = base_url
        self.site_title = site_title
        self.prompt_template = prompt_template
        self._clock = clock
        self._logger = get_json_logger("ministry.posts")

    def list_posts(self) -> List[GeneratedItem]:
        pairs = self.store.load_all(POST_PREFIX, limit=POST_LIST_LIMIT)
        return newest_first([GeneratedItem.from_dict(value, key[len(POST_PREFIX):]) for key, value in pairs])

    def create_post(
        self,
        title: Any,
        body: Any,
        tags: Optional[List[str]] = None,
        image_key: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> GeneratedItem:
        title = clean_text(title)
        body = clean_text(body)
        if not title or not body:
            raise ValidationError("Missing title or body")
        if tags is not None and not isinstance(tags, list):
            raise ValidationError("'tags' must be a list of strings")

        post = GeneratedItem(
            id=make_id(),
            title=title,
            text=body,
            tags=[str(t) for t in tags or []],
            image_key=image_key or None,
            slug=clean_text(slug) or slugify(title),
            created_at=iso_millis(self._clock()),
            generated=False,
        )
        return self._save(post)

    def generate_post(self, category: Any = "General") -> GeneratedItem:
        topic = clean_text(category) or "General"
        prompt = (
            self.prompt_template.replace("{topic}", topic)
            + ' Respond with a JSON object: {"title": "post title", "content": "post body as simple HTML paragraphs"}.'
        )
        data = parse_generated_json(self.generator.generate_text(prompt, json_mode=True, purpose="blog_post"))
        title = clean_text(data.get("title")) or f"{topic} tips for our town"
        content = clean_text(data.get("content"))
        if not content:
            raise UpstreamError("AI post is missing content.")

        post = GeneratedItem(
            id=make_id(),
            title=title,
            text=content,
            tags=[topic],
            slug=slugify(title),
            created_at=iso_millis(self._clock()),
            generated=True,
        )
        return self._save(post)

    def delete_post(self, post_id: str) -> None:
        if not self.store.delete(POST_PREFIX + post_id):
            raise NotFoundError(f"Post not found: {post_id}")
        self._logger.info("Post deleted", extra={"event": "post_deleted", "id": post_id})
        self.regenerate_feeds()

    def _save(self, post: GeneratedItem) -> GeneratedItem:
        self.store.put_json(POST_PREFIX + post.id, post_payload(post))
        self._logger.info("Post saved", extra={"event": "post_saved", "id": post.id, "generated": post.generated})
        self.regenerate_feeds()
        return post

    def regenerate_feeds(self) -> bool:
        """Rebuild ``rss_xml``/``sitemap_xml``. Failures are logged, never raised."""
        try:
            posts = self.list_posts()
            self.store.put(RSS_KEY, render_rss(posts, base_url=self.base_url, title=self.site_title))
            self.store.put(SITEMAP_KEY, render_sitemap(posts, base_url=self.base_url))
        except (ContentStoreError, ValueError):
            log_exception(self._logger, "Feed regeneration failed", extra={"event": "feed_regen_error"})
            return False
        self._logger.info("Feeds regenerated", extra={"event": "feed_regen_ok", "posts": len(posts)})
        return True

    def feed(self, key: str) -> Optional[str]:
        return self.store.get(key)
