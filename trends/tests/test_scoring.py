import unittest
from datetime import datetime, timezone

from trends.models import Platform
from trends.scoring import (
    analyze,
    build_report,
    categorize_all,
    platform_stats,
    rank_emerging,
    rank_top,
    score,
)
from trends.tests.helpers import make_record


class ScoreTests(unittest.TestCase):
    def test_growth_adds_proportional_volume(self):
        record = make_record("clip", volume=1000, engagement={"likes": 50, "comments": 10}, growth=20)
        self.assertEqual(score(record), 1260)

    def test_missing_growth_contributes_nothing(self):
        record = make_record("clip", volume=1000, engagement={"likes": 50, "comments": 10})
        self.assertEqual(score(record), 1060)
        self.assertEqual(score(None), 0)


class RankingTests(unittest.TestCase):
    def test_ties_break_on_growth_then_recency(self):
        older = make_record("older", volume=100, timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))
        newer = make_record("newer", volume=100, timestamp=datetime(2024, 2, 1, tzinfo=timezone.utc))
        growing = make_record("growing", volume=100, engagement={}, growth=0.0)
        loud = make_record("loud", volume=500)

        ranked = rank_top([older, newer, growing, loud])
        self.assertEqual([r.name for r in ranked], ["loud", "growing", "newer", "older"])
        self.assertEqual(len(rank_top([older, newer, loud], limit=2)), 2)

    def test_emerging_excludes_top_and_unknown_growth(self):
        top = make_record("top", volume=10_000, growth=5)
        fast = make_record("fast", volume=10, growth=300)
        steady = make_record("steady", volume=50, growth=10)
        unknown = make_record("unknown", volume=20)

        records = [top, fast, steady, unknown]
        emerging = rank_emerging(records, top=rank_top(records, limit=1))
        self.assertEqual([r.name for r in emerging], ["fast", "steady"])

    def test_categories_sorted_by_count_with_stable_ties(self):
        records = [
            make_record("a", category="sports"),
            make_record("b", category="technology"),
            make_record("c", category="technology"),
            make_record("d", category="business"),
        ]
        self.assertEqual(
            categorize_all(records),
            [("technology", 2), ("sports", 1), ("business", 1)],
        )

    def test_platform_stats_picks_highest_total(self):
        per_provider = {
            Platform.VIDEO: [make_record("v", platform=Platform.VIDEO, volume=300)],
            Platform.FORUM_A: [make_record("r", volume=200), make_record("r2", volume=200)],
            Platform.NEWS: [],
        }
        self.assertEqual(platform_stats(per_provider), (Platform.FORUM_A, 400))
        self.assertEqual(platform_stats({}), (None, 0.0))


class AnalysisTests(unittest.TestCase):
    def test_insight_lines(self):
        per_provider = {
            Platform.VIDEO: [
                make_record(
                    "r1",
                    platform=Platform.VIDEO,
                    volume=1000,
                    engagement={"likes": 50, "comments": 10},
                    growth=20,
                    category="technology",
                )
            ],
            Platform.FORUM_A: [make_record("r2", volume=200, growth=12.5, category="sports")],
        }
        text = analyze(per_provider, top_limit=1)
        self.assertEqual(
            text.split("\n"),
            [
                "Analyzed 2 trends across 2 platforms.",
                "Total engagement: 1,485 interactions.",
                "Top category: technology with 1 trends.",
                "Most engaging platform: video with 1,260 interactions.",
                'Most engaging trend: "r1" with 1,260 interactions.',
                'Fastest growing: "r1" with 20% growth.',
            ],
        )

    def test_fastest_grower_can_also_be_a_top_trend(self):
        per_provider = {
            Platform.FORUM_A: [
                make_record("a", volume=100, growth=50),
                make_record("b", volume=200, growth=10),
            ]
        }
        report = build_report(per_provider)
        self.assertEqual(report.emerging_trends, [])
        self.assertEqual(report.fastest.name, "a")
        self.assertEqual(report.insight_lines()[5], 'Fastest growing: "a" with 50% growth.')
        self.assertEqual(report.to_dict()["fastest"]["name"], "a")

    def test_fastest_ignores_records_without_growth(self):
        report = build_report({Platform.FORUM_A: [make_record("flat", volume=900), make_record("up", volume=1, growth=0.5)]})
        self.assertEqual(report.fastest.name, "up")

    def test_empty_input_uses_placeholders(self):
        report = build_report({})
        self.assertEqual(
            report.insight_lines(),
            [
                "Analyzed 0 trends across 0 platforms.",
                "Total engagement: 0 interactions.",
                "Top category: None with 0 trends.",
                "Most engaging platform: None with 0 interactions.",
                'Most engaging trend: "None" with 0 interactions.',
                'Fastest growing: "None" with 0% growth.',
            ],
        )

    def test_report_dict_is_json_ready(self):
        report = build_report({Platform.FORUM_A: [make_record("x", volume=7, growth=40)]}, top_limit=0)
        payload = report.to_dict()
        self.assertEqual(payload["top_trends"], [])
        self.assertEqual(payload["emerging_trends"][0]["name"], "x")
        self.assertEqual(payload["top_platform"], "forum_a")
        self.assertEqual(payload["sentiment"]["Neutral"], 1)


if __name__ == "__main__":
    unittest.main()
