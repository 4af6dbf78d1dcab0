"""RSS and sitemap rendering for blog posts."""

from __future__ import annotations

import re
from email.utils import format_datetime
from html import escape
from typing import List

from .models import GeneratedItem

_TAG_RE = re.compile(r"<[^>]+>")
DESCRIPTION_CHARS = 200


def _cdata(text: str) -> str:
    # A literal "]]>" would terminate the section early
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _pub_date(post: GeneratedItem) -> str:
    try:
        return format_datetime(post.created, usegmt=True)
    except ValueError:
        return ""


def _post_url(base_url: str, post: GeneratedItem) -> str:
    return f"{base_url}/posts/{escape(post.slug or post.id)}"


def render_rss(posts: List[GeneratedItem], *, base_url: str, title: str, description: str = "Local posts for Alfred & area") -> str:
    items = []
    for post in posts:
        summary = _TAG_RE.sub("", post.text)[:DESCRIPTION_CHARS]
        items.append(
            "    <item>\n"
            f"      <title>{_cdata(post.title)}</title>\n"
            f"      <link>{_post_url(base_url, post)}</link>\n"
            f"      <guid>{base_url}/posts/{escape(post.id)}</guid>\n"
            f"      <pubDate>{_pub_date(post)}</pubDate>\n"
            f"      <description>{_cdata(summary)}</description>\n"
            "    </item>"
        )

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<rss version="2.0">\n'
        "  <channel>\n"
        f"    <title>{escape(title)}</title>\n"
        f"    <link>{escape(base_url)}</link>\n"
        f"    <description>{escape(description)}</description>\n"
        + ("\n".join(items) + "\n" if items else "")
        + "  </channel>\n"
        "</rss>\n"
    )


def render_sitemap(posts: List[GeneratedItem], *, base_url: str) -> str:
    urls = [f"  <url><loc>{escape(base_url)}</loc></url>"]
    for post in posts:
        urls.append(f"  <url><loc>{_post_url(base_url, post)}</loc><lastmod>{escape(post.created_at)}</lastmod></url>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        + "\n".join(urls)
        + "\n</urlset>\n"
    )
