"""Tests for the HTTP and timer Function entry points."""

import json
import unittest
from unittest import mock

import azure.functions as func

from ministry_func import HttpAdmin, HttpAskPastor, HttpContact, HttpFeed, HttpPrayer, HttpSermon, HttpSubscribe
from ministry_func import TimerSermonRefresh
from ministry_func.shared import ConfigurationError, build_services, load_settings
from ministry_func.shared.generation import UpstreamError

from fakes import SERMON_JSON, FakeGenerator, RecordingScheduler

ENV = {
    "ADMIN_SECRET": "s3cret",
    "SUPERADMIN_USERNAME": "pastor",
    "SUPERADMIN_PASSWORD": "grace",
    "SITEADMIN_USERNAME": "helper",
    "SITEADMIN_PASSWORD": "faith",
    "OPENAI_API_KEY": "sk-test",
    "CONTENT_STORE_BACKEND": "memory",
    "SENDER_API_KEY": "sender-key",
}


def _request(method, url, body=None, route_params=None, headers=None) -> func.HttpRequest:
    raw = b"" if body is None else (body if isinstance(body, bytes) else json.dumps(body).encode("utf-8"))
    return func.HttpRequest(
        method=method,
        url=url,
        headers=headers or {},
        params={},
        route_params=route_params or {},
        body=raw,
    )


def _json(response: func.HttpResponse):
    return json.loads(response.get_body())


class FunctionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.services = build_services(load_settings(ENV))
        self.generator = FakeGenerator([SERMON_JSON])
        self.background = RecordingScheduler()
        self.services.sermons.generator = self.generator
        self.services.sermons.background = self.background
        self.services.posts.generator = self.generator
        self.services.pastor.generator = self.generator
        self.services.prayers.generator = self.generator
        self.services.subscriptions._session = mock.Mock()

    def call(self, module, req, services=None):
        with mock.patch.object(module, "get_services", return_value=services or self.services):
            return module.main(req)


class HttpSermonTests(FunctionTestCase):
    def test_latest_sermon_cold_start(self) -> None:
        response = self.call(HttpSermon, _request("GET", "/api/sermon", route_params={"kind": "sermon"}))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/json")
        self.assertEqual(_json(response)["title"], "Saved by Grace")

    def test_archive_lists_items(self) -> None:
        self.services.sermons.force_generate()
        response = self.call(HttpSermon, _request("GET", "/api/sermons", route_params={"kind": "sermons"}))
        self.assertEqual(len(_json(response)), 1)

    def test_generation_failure_is_generic_500(self) -> None:
        self.generator.replies = [UpstreamError("provider said: secret detail")]
        response = self.call(HttpSermon, _request("GET", "/api/sermon", route_params={"kind": "sermon"}))
        self.assertEqual(response.status_code, 500)
        self.assertEqual(_json(response), {"error": "Failed to load sermon."})

    def test_configuration_error_is_500(self) -> None:
        req = _request("GET", "/api/sermon", route_params={"kind": "sermon"})
        with mock.patch.object(HttpSermon, "get_services", side_effect=ConfigurationError("Missing ADMIN_SECRET")):
            response = HttpSermon.main(req)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(_json(response), {"error": "Server configuration error."})


class HttpAdminTests(FunctionTestCase):
    def _login(self) -> str:
        response = self.call(
            HttpAdmin,
            _request("POST", "/api/admin/login", {"username": "pastor", "password": "grace"}, {"path": "login"}),
        )
        self.assertEqual(response.status_code, 200)
        return _json(response)["token"]

    def test_invalid_token_on_delete_is_401_and_item_remains(self) -> None:
        item = self.services.sermons.force_generate()
        req = _request(
            "DELETE",
            "/api/admin/sermons/x",
            route_params={"path": "sermons/" + item.id},
            headers={"Authorization": "Bearer forged.token.value"},
        )

        response = self.call(HttpAdmin, req)

        self.assertEqual(response.status_code, 401)
        self.assertEqual(_json(response), {"error": "Unauthorized"})
        self.assertEqual([s.id for s in self.services.sermons.list_items()], [item.id])

    def test_valid_token_deletes(self) -> None:
        item = self.services.sermons.force_generate()
        req = _request(
            "DELETE",
            "/api/admin/sermons/x",
            route_params={"path": "sermons/" + item.id},
            headers={"Authorization": "Bearer " + self._login()},
        )

        response = self.call(HttpAdmin, req)

        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.services.sermons.list_items(), [])

    def test_bad_login_is_401(self) -> None:
        req = _request("POST", "/api/admin/login", {"username": "pastor", "password": "nope"}, {"path": "login"})
        response = self.call(HttpAdmin, req)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(_json(response), {"error": "Unauthorized"})

    def test_invalid_json_is_400(self) -> None:
        req = _request("POST", "/api/admin/login", b"{not json", {"path": "login"})
        self.assertEqual(self.call(HttpAdmin, req).status_code, 400)

    def test_unknown_id_is_404(self) -> None:
        req = _request(
            "DELETE",
            "/api/admin/prayers/log:nope",
            route_params={"path": "prayers/log:nope"},
            headers={"Authorization": "Bearer " + self._login()},
        )
        self.assertEqual(self.call(HttpAdmin, req).status_code, 404)


class HttpPrayerTests(FunctionTestCase):
    def test_approved_prayer_is_201_and_listed(self) -> None:
        self.generator.replies = ["APPROVE"]
        req = _request(
            "POST",
            "/api/prayer",
            {"firstName": "Ruth", "requestText": "Pray for my family"},
            headers={"x-forwarded-for": "203.0.113.7:5123, 10.0.0.1"},
        )

        response = self.call(HttpPrayer, req)

        self.assertEqual(response.status_code, 201)
        self.assertTrue(_json(response)["success"])
        listed = _json(self.call(HttpPrayer, _request("GET", "/api/prayer")))
        self.assertEqual([p["firstName"] for p in listed], ["Ruth"])
        self.assertEqual(self.services.prayers.list_logs()[0]["sourceIp"], "203.0.113.7")

    def test_held_prayer_looks_successful(self) -> None:
        self.generator.replies = ["REJECT"]
        response = self.call(HttpPrayer, _request("POST", "/api/prayer", {"firstName": "Ruth", "requestText": "spam"}))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(_json(response)["success"])

    def test_missing_fields_is_400(self) -> None:
        response = self.call(HttpPrayer, _request("POST", "/api/prayer", {"firstName": "Ruth"}))
        self.assertEqual(response.status_code, 400)


class SmallEndpointTests(FunctionTestCase):
    def test_ask_pastor(self) -> None:
        self.generator.replies = ["Pray without ceasing."]
        response = self.call(HttpAskPastor, _request("POST", "/api/ask-pastor", {"question": "How should I pray?"}))
        self.assertEqual(_json(response), {"response": "Pray without ceasing."})

    def test_ask_pastor_blank_question(self) -> None:
        response = self.call(HttpAskPastor, _request("POST", "/api/ask-pastor", {"question": ""}))
        self.assertEqual(response.status_code, 400)

    def test_subscribe_passes_status_through(self) -> None:
        response = self.call(HttpSubscribe, _request("POST", "/api/subscribe", {"email": "bad"}))
        self.assertEqual(response.status_code, 400)
        self.assertFalse(_json(response)["success"])

    def test_contact(self) -> None:
        req = _request("POST", "/api/contact", {"name": "Ruth", "message": "Hi"}, headers={"user-agent": "UA"})
        response = self.call(HttpContact, req)
        self.assertTrue(_json(response)["ok"])

    def test_feed_missing_then_present(self) -> None:
        req = _request("GET", "/api/rss", route_params={"feed": "rss"})
        self.assertEqual(self.call(HttpFeed, req).status_code, 404)

        self.services.posts.create_post("Bible Study", "Wednesdays at 7.")
        response = self.call(HttpFeed, req)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, "application/rss+xml")
        self.assertIn(b"Bible Study", response.get_body())


class TimerSermonRefreshTests(FunctionTestCase):
    def test_refresh_generates_when_empty(self) -> None:
        with mock.patch.object(TimerSermonRefresh, "get_services", return_value=self.services):
            TimerSermonRefresh.main(mock.Mock(past_due=False))
        self.assertEqual(len(self.services.sermons.list_items()), 1)

    def test_refresh_failure_is_logged_not_raised(self) -> None:
        self.generator.replies = [UpstreamError("down")]
        with mock.patch.object(TimerSermonRefresh, "get_services", return_value=self.services):
            TimerSermonRefresh.main(mock.Mock(past_due=True))
        self.assertEqual(self.services.sermons.list_items(), [])


if __name__ == "__main__":
    unittest.main()
