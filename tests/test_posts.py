"""Tests for blog posts, feed rendering and the pastor assistant."""

import unittest
from unittest import mock

from ministry_func.shared.feed_renderer import render_rss, render_sitemap
from ministry_func.shared.generation import UpstreamError
from ministry_func.shared.models import GeneratedItem
from ministry_func.shared.pastor import MAX_QUESTION_CHARS, PASTOR_SYSTEM_PROMPT, PastorAssistant
from ministry_func.shared.posts import RSS_KEY, SITEMAP_KEY, PostService, make_id, slugify
from ministry_func.shared.store import ContentStoreError, MemoryContentStore
from ministry_func.shared.validators import NotFoundError, ValidationError

from fakes import FakeGenerator, FixedClock, utc

NOW = utc(2024, 10, 6, 15, 30)


class PostServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryContentStore("blog")
        self.generator = FakeGenerator(['{"title": "Harvest Supper", "content": "<p>Bring a pie.</p>"}'])
        self.service = PostService(
            self.store,
            self.generator,
            base_url="https://church.example",
            site_title="Church & Town",
            prompt_template="Write a short post about {topic} for our town.",
            clock=FixedClock(NOW),
        )

    def test_create_post_persists_and_rebuilds_feeds(self) -> None:
        post = self.service.create_post("Choir Practice!", "Thursday at 7pm.", tags=["music"])

        stored = self.store.get_json("post:" + post.id)
        self.assertEqual(stored["title"], "Choir Practice!")
        self.assertEqual(stored["content"], "Thursday at 7pm.")
        self.assertEqual(stored["slug"], "choir-practice")
        self.assertFalse(stored["generated"])
        self.assertNotIn("audioData", stored)
        self.assertIn("choir-practice", self.store.get(RSS_KEY))
        self.assertIn("https://church.example/posts/choir-practice", self.store.get(SITEMAP_KEY))

    def test_create_post_requires_title_and_body(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.create_post("", "body")
        with self.assertRaises(ValidationError):
            self.service.create_post("title", "   ")
        with self.assertRaises(ValidationError):
            self.service.create_post("title", "body", tags="not-a-list")

    def test_generate_post_uses_template_topic(self) -> None:
        post = self.service.generate_post("Harvest")

        prompt = self.generator.calls[0]["prompt"]
        self.assertIn("about Harvest for our town", prompt)
        self.assertTrue(self.generator.calls[0]["json_mode"])
        self.assertEqual(post.title, "Harvest Supper")
        self.assertEqual(post.tags, ["Harvest"])
        self.assertTrue(post.generated)

    def test_generate_post_without_content_fails(self) -> None:
        self.generator.replies = ['{"title": "Empty"}']
        with self.assertRaises(UpstreamError):
            self.service.generate_post()

    def test_delete_post(self) -> None:
        post = self.service.create_post("Gone", "Soon")
        self.service.delete_post(post.id)
        self.assertEqual(self.service.list_posts(), [])
        self.assertNotIn("Gone", self.store.get(RSS_KEY))
        with self.assertRaises(NotFoundError):
            self.service.delete_post(post.id)

    def test_feed_failure_is_logged_not_raised(self) -> None:
        with mock.patch.object(self.store, "put", side_effect=ContentStoreError("down")):
            self.assertFalse(self.service.regenerate_feeds())

    def test_legacy_content_records_are_listed(self) -> None:
        self.store.put_json("post:old", {"title": "Old", "content": "Legacy body", "createdAt": "2020-01-01T00:00:00.000Z"})
        posts = self.service.list_posts()
        self.assertEqual(posts[0].id, "old")
        self.assertEqual(posts[0].text, "Legacy body")


class HelperTests(unittest.TestCase):
    def test_slugify(self) -> None:
        self.assertEqual(slugify("  Psalm 23: The Lord's Care  "), "psalm-23-the-lord-s-care")

    def test_make_id_is_unique(self) -> None:
        self.assertEqual(len({make_id() for _ in range(50)}), 50)


class FeedRendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.posts = [
            GeneratedItem(
                id="abc",
                title="Fish & Loaves ]]> Night",
                text="<p>" + "x" * 300 + "</p>",
                created_at="2024-10-06T15:30:00.000Z",
                slug="fish-loaves",
            )
        ]

    def test_rss_escapes_and_truncates(self) -> None:
        xml = render_rss(self.posts, base_url="https://church.example", title="A & B")

        self.assertIn("<title>A &amp; B</title>", xml)
        self.assertIn("<link>https://church.example/posts/fish-loaves</link>", xml)
        self.assertIn("<pubDate>Sun, 06 Oct 2024 15:30:00 GMT</pubDate>", xml)
        self.assertIn("]]]]><![CDATA[>", xml)
        self.assertIn("<description><![CDATA[" + "x" * 200 + "]]></description>", xml)

    def test_sitemap_lists_home_and_posts(self) -> None:
        xml = render_sitemap(self.posts, base_url="https://church.example")
        self.assertIn("<url><loc>https://church.example</loc></url>", xml)
        self.assertIn("<lastmod>2024-10-06T15:30:00.000Z</lastmod>", xml)


class PastorAssistantTests(unittest.TestCase):
    def test_answer_uses_system_prompt(self) -> None:
        generator = FakeGenerator(["Take heart; the Lord is near."])

        answer = PastorAssistant(generator).answer("  How do I forgive?  ")

        self.assertEqual(answer, "Take heart; the Lord is near.")
        self.assertEqual(generator.calls[0]["system"], PASTOR_SYSTEM_PROMPT)
        self.assertIn('"How do I forgive?"', generator.calls[0]["prompt"])

    def test_blank_or_long_question_rejected(self) -> None:
        assistant = PastorAssistant(FakeGenerator(["unused"]))
        with self.assertRaises(ValidationError):
            assistant.answer("   ")
        with self.assertRaises(ValidationError):
            assistant.answer("?" * (MAX_QUESTION_CHARS + 1))

    def test_upstream_failure_propagates(self) -> None:
        assistant = PastorAssistant(FakeGenerator([UpstreamError("down")]))
        with self.assertRaises(UpstreamError):
            assistant.answer("Why pray?")


if __name__ == "__main__":
    unittest.main()
