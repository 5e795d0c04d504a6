import unittest

from trends.api import create_app
from trends.models import Platform
from trends.pipeline import TrendEngine
from trends.settings import DEFAULT_PROVIDERS, TrendSettings
from trends.tests.helpers import FakeClock, StaticProvider, make_record


class TrendsApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = TrendEngine(
            [
                StaticProvider(Platform.FORUM_A, [make_record("post", volume=40)]),
                StaticProvider(Platform.CODE_SEARCH, error="HTTP 401"),
            ],
            clock=FakeClock(),
        )
        self.settings = TrendSettings(providers=dict(DEFAULT_PROVIDERS), cache_path=None, snapshot_path=None)
        self.client = create_app(engine=self.engine, settings=self.settings).test_client()

    def tearDown(self) -> None:
        self.engine.close()

    def test_trends_endpoint_returns_every_provider(self):
        resp = self.client.get("/api/trends")
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(set(body["trends"]), {platform.value for platform in Platform})
        self.assertEqual(body["trends"]["forum_a"][0]["name"], "post")
        self.assertIn("Analyzed 1 trends", body["analysis"])

    def test_platform_filter_accepts_aliases(self):
        body = self.client.get("/api/trends?platform=reddit").get_json()
        self.assertEqual(list(body["trends"]), ["forum_a"])

        resp = self.client.get("/api/trends?platform=myspace")
        self.assertEqual(resp.status_code, 400)

    def test_status_lists_degraded_providers(self):
        self.client.get("/api/trends")
        body = self.client.get("/api/trends/status").get_json()
        self.assertEqual(body["engine"]["provider_count"], 2)
        self.assertEqual(body["degraded"], ["code_search"])
        self.assertIn("news", body["providers"])
        self.assertFalse(body["providers"]["news"]["active"])


if __name__ == "__main__":
    unittest.main()
