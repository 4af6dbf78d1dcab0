"""Tests for environment-driven settings."""

import unittest
from datetime import time

from ministry_func.shared.config import ConfigurationError, load_settings

BASE_ENV = {
    "ADMIN_SECRET": "s3cret",
    "SUPERADMIN_USERNAME": "pastor",
    "SUPERADMIN_PASSWORD": "grace",
    "SITEADMIN_USERNAME": "helper",
    "SITEADMIN_PASSWORD": "faith",
    "OPENAI_API_KEY": "sk-test",
    "CONTENT_STORAGE_CONNECTION": "UseDevelopmentStorage=true",
}


class LoadSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings(BASE_ENV)

        self.assertEqual(settings.store_backend, "blob")
        self.assertEqual(settings.release_timezone, "America/New_York")
        self.assertEqual(settings.release_weekday, 6)
        self.assertEqual(settings.release_time, time(8, 45))
        self.assertEqual(settings.sermon_ttl_seconds, 5_616_000)
        self.assertEqual(settings.prayer_ttl_seconds, 604_800)
        self.assertEqual(settings.prayer_log_ttl_seconds, 365 * 86_400)
        self.assertIsNone(settings.token_max_age_seconds)
        self.assertEqual(settings.generation_timeout_seconds, 25.0)
        self.assertEqual([i.role for i in settings.admin_identities], ["super", "site"])

    def test_missing_required_names_all_listed(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            load_settings({"OPENAI_API_KEY": "sk"})
        message = str(ctx.exception)
        for name in ("ADMIN_SECRET", "SUPERADMIN_PASSWORD", "SITEADMIN_USERNAME", "CONTENT_STORAGE_CONNECTION"):
            self.assertIn(name, message)

    def test_memory_backend_needs_no_connection(self) -> None:
        env = dict(BASE_ENV, CONTENT_STORE_BACKEND="memory")
        del env["CONTENT_STORAGE_CONNECTION"]
        self.assertEqual(load_settings(env).store_backend, "memory")

    def test_overrides(self) -> None:
        env = dict(
            BASE_ENV,
            SERMON_RELEASE_WEEKDAY="Friday",
            SERMON_RELEASE_TIME="18:30",
            SERMON_RELEASE_TIMEZONE="America/Chicago",
            PRAYER_LOG_TTL_DAYS="0",
            TOKEN_MAX_AGE_SECONDS="3600",
            SITE_BASE_URL="https://church.example/",
        )
        settings = load_settings(env)
        self.assertEqual(settings.release_weekday, 4)
        self.assertEqual(settings.release_time, time(18, 30))
        self.assertIsNone(settings.prayer_log_ttl_seconds)
        self.assertEqual(settings.token_max_age_seconds, 3600)
        self.assertEqual(settings.site_base_url, "https://church.example")

    def test_malformed_values_rejected(self) -> None:
        for override in (
            {"SERMON_RELEASE_WEEKDAY": "someday"},
            {"SERMON_RELEASE_TIME": "noon"},
            {"SERMON_TTL_SECONDS": "forever"},
            {"CONTENT_STORE_BACKEND": "sqlite"},
        ):
            with self.assertRaises(ConfigurationError, msg=str(override)):
                load_settings(dict(BASE_ENV, **override))


if __name__ == "__main__":
    unittest.main()
