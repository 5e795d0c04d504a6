import threading
import unittest
from unittest.mock import MagicMock, patch

from trends.errors import AggregationCancelled
from trends.models import FetchStatus, Platform
from trends.persistence import SnapshotWriter
from trends.pipeline import TrendEngine
from trends.scoring import FAILURE_ANALYSIS
from trends.settings import DEFAULT_PROVIDERS, TrendSettings
from trends.tests.helpers import FakeClock, FakeHttp, StaticProvider, make_record


def _engine(providers, gateway=None, **kwargs):
    clock = FakeClock()
    writer = SnapshotWriter(gateway, clock=clock)
    return TrendEngine(providers, snapshot_writer=writer, clock=clock, **kwargs)


class TrendEngineTests(unittest.TestCase):
    def test_two_providers_end_to_end(self):
        video = [make_record("v500", platform=Platform.VIDEO, volume=500), make_record("v300", platform=Platform.VIDEO, volume=300)]
        forum = [make_record("f800", volume=800), make_record("f100", volume=100)]
        gateway = MagicMock()
        gateway.save_snapshot.return_value = "snap-1"
        engine = _engine(
            [StaticProvider(Platform.VIDEO, video), StaticProvider(Platform.FORUM_A, forum)],
            gateway=gateway,
        )

        result = engine.aggregate()
        engine.close()

        self.assertEqual(list(result.trends), list(Platform))
        self.assertEqual([r.volume for r in result.trends[Platform.VIDEO]], [500, 300])
        self.assertEqual([r.volume for r in result.trends[Platform.FORUM_A]], [800, 100])
        self.assertEqual(result.trends[Platform.NEWS], [])
        self.assertEqual(engine.last_report.top_trends[0].name, "f800")
        self.assertTrue(result.analysis.startswith("Analyzed 4 trends across 5 platforms."))

        gateway.save_snapshot.assert_called_once()
        snapshot = gateway.save_snapshot.call_args.args[0]
        self.assertEqual(set(snapshot), {"trends", "analysis", "timestamp"})
        self.assertEqual(len(snapshot["trends"]["forum_a"]), 2)

    def test_one_failing_provider_does_not_affect_others(self):
        providers = [
            StaticProvider(Platform.NEWS, [make_record("n", platform=Platform.NEWS)]),
            StaticProvider(Platform.VIDEO, [make_record("v", platform=Platform.VIDEO, volume=10)]),
            StaticProvider(Platform.FORUM_A, [make_record("a", volume=5)]),
            StaticProvider(Platform.FORUM_B, [make_record("b", platform=Platform.FORUM_B, volume=7)]),
            StaticProvider(Platform.CODE_SEARCH, error="HTTP 500"),
        ]
        engine = _engine(providers)
        payload = engine.get_all_platform_trends()
        engine.close()

        self.assertEqual(payload["trends"]["code_search"], [])
        for key in ("news", "video", "forum_a", "forum_b"):
            self.assertEqual(len(payload["trends"][key]), 1)
        self.assertNotEqual(payload["analysis"], FAILURE_ANALYSIS)

        health = {entry.name: entry for entry in engine.get_health()}
        self.assertEqual(health["code_search"].status, FetchStatus.UNAVAILABLE)
        self.assertEqual(health["code_search"].last_error, "HTTP 500")
        self.assertTrue(health["video"].healthy)

    def test_provider_that_raises_falls_back_to_stale_records(self):
        crashing = StaticProvider(Platform.VIDEO, stale=[make_record("old", platform=Platform.VIDEO, volume=9)])
        crashing.fetch = MagicMock(side_effect=RuntimeError("dictionary changed size during iteration"))
        engine = _engine([crashing, StaticProvider(Platform.FORUM_A, [make_record("a", volume=5)])])

        result = engine.aggregate()
        engine.close()

        self.assertEqual([r.name for r in result.trends[Platform.VIDEO]], ["old"])
        self.assertEqual([r.name for r in result.trends[Platform.FORUM_A]], ["a"])

    def test_total_failure_returns_fixed_analysis(self):
        engine = _engine([StaticProvider(platform, error="down") for platform in Platform])
        payload = engine.get_all_platform_trends()
        engine.close()

        self.assertEqual(payload["analysis"], FAILURE_ANALYSIS)
        self.assertEqual(payload["trends"], {platform.value: [] for platform in Platform})

    def test_slow_provider_times_out_with_stale_records(self):
        release = threading.Event()
        stale = [make_record("old", platform=Platform.FORUM_B, volume=3)]
        providers = [
            StaticProvider(Platform.FORUM_A, [make_record("fast", volume=1)]),
            StaticProvider(Platform.FORUM_B, [make_record("never")], stale=stale, release=release),
        ]
        engine = _engine(providers, aggregate_timeout=0.2)
        try:
            result = engine.aggregate()
        finally:
            release.set()
            engine.close()

        self.assertEqual([r.name for r in result.trends[Platform.FORUM_B]], ["old"])
        health = {entry.name: entry for entry in result.health}
        self.assertEqual(health["forum_b"].status, FetchStatus.TIMED_OUT)
        self.assertEqual(health["forum_a"].status, FetchStatus.OK)

    def test_cancellation_discards_results_and_skips_snapshot(self):
        gateway = MagicMock()
        cancel = threading.Event()
        cancel.set()
        engine = _engine([StaticProvider(Platform.FORUM_A, [make_record("x")])], gateway=gateway)

        with self.assertRaises(AggregationCancelled):
            engine.aggregate(cancel_event=cancel)
        with self.assertRaises(AggregationCancelled):
            engine.get_all_platform_trends(cancel_event=cancel)
        engine.close()
        gateway.save_snapshot.assert_not_called()

    def test_snapshot_failure_does_not_reach_caller(self):
        gateway = MagicMock()
        gateway.save_snapshot.side_effect = RuntimeError("store offline")
        engine = _engine([StaticProvider(Platform.FORUM_A, [make_record("x", volume=2)])], gateway=gateway)
        payload = engine.get_all_platform_trends()
        engine.close()
        self.assertEqual(len(payload["trends"]["forum_a"]), 1)

    def test_unexpected_error_returns_empty_structure(self):
        engine = _engine([StaticProvider(Platform.FORUM_A, [make_record("x")])])
        with patch.object(engine, "aggregate", side_effect=RuntimeError("boom")):
            payload = engine.get_all_platform_trends()
        engine.close()
        self.assertEqual(payload["analysis"], FAILURE_ANALYSIS)
        self.assertEqual(set(payload["trends"]), {platform.value for platform in Platform})

    @patch("trends.pipeline.build_report", side_effect=ZeroDivisionError("bad math"))
    def test_analysis_error_keeps_trends(self, _mock_report):
        engine = _engine([StaticProvider(Platform.FORUM_A, [make_record("x")])])
        payload = engine.get_all_platform_trends()
        engine.close()
        self.assertEqual(payload["analysis"], "Unable to generate trend analysis.")
        self.assertEqual(len(payload["trends"]["forum_a"]), 1)


class EngineFromSettingsTests(unittest.TestCase):
    def test_keyless_providers_run_and_keyed_ones_are_disabled(self):
        http = FakeHttp(
            {
                "/topstories.json": [[1]],
                "/item/1.json": [{"id": 1, "title": "Great launch", "score": 64, "descendants": 8}],
                "/hot.json": [{"data": {"children": []}}],
            }
        )
        settings = TrendSettings(providers=dict(DEFAULT_PROVIDERS), cache_path=None, snapshot_path=None)
        engine = TrendEngine.from_settings(settings, http=http, clock=FakeClock())
        result = engine.aggregate()
        engine.close()

        self.assertEqual([r.name for r in result.trends[Platform.FORUM_B]], ["Great launch"])
        self.assertEqual(result.trends[Platform.FORUM_A], [])
        health = {entry.name: entry.status for entry in result.health}
        self.assertEqual(health["news"], FetchStatus.DISABLED)
        self.assertEqual(health["video"], FetchStatus.DISABLED)
        self.assertEqual(health["code_search"], FetchStatus.DISABLED)
        self.assertFalse(any("newsdata" in call["url"] for call in http.calls))

    def test_growth_baseline_is_seeded_from_latest_snapshot(self):
        record = make_record("Great launch", platform=Platform.FORUM_B, volume=32)
        record_dict = dict(record.to_dict(), url="https://example.com/launch")
        store = MagicMock()
        store.latest.return_value = {"trends": {"forum_b": [record_dict]}}
        http = FakeHttp(
            {
                "/topstories.json": [[1]],
                "/item/1.json": [
                    {"id": 1, "title": "Great launch", "url": "https://example.com/launch", "score": 64}
                ],
            }
        )
        providers = {Platform.FORUM_B: DEFAULT_PROVIDERS[Platform.FORUM_B]}
        settings = TrendSettings(providers=providers, cache_path=None, snapshot_path=None)

        engine = TrendEngine.from_settings(settings, http=http, clock=FakeClock(), snapshot_store=store)
        result = engine.aggregate()
        engine.close()

        self.assertEqual(result.trends[Platform.FORUM_B][0].growth, 100.0)
        store.save_snapshot.assert_called_once()


if __name__ == "__main__":
    unittest.main()
