import unittest
from datetime import datetime, timedelta, timezone

from trends.models import Platform, Sentiment
from trends.normalize import Categorizer, Normalizer, from_epoch, parse_datetime
from trends.sentiment import SentimentAnalyzer, sentiment_breakdown
from trends.tests.helpers import make_record

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class CategorizerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.categorizer = Categorizer()

    def test_first_matching_category_wins(self):
        self.assertEqual(self.categorizer.categorize("New AI robot ships"), "technology")
        # "game" is listed under entertainment before sports
        self.assertEqual(self.categorizer.categorize("Game night"), "entertainment")
        self.assertEqual(self.categorizer.categorize("Football player transfer"), "sports")
        self.assertEqual(self.categorizer.categorize("Stock market rallies"), "business")

    def test_keywords_only_match_at_word_start(self):
        self.assertEqual(self.categorizer.categorize("The chairman said nothing"), "general")
        self.assertEqual(self.categorizer.categorize(""), "general")

    def test_custom_table(self):
        categorizer = Categorizer([("Science", ["physics"])])
        self.assertEqual(categorizer.categorize("Physics breakthrough"), "science")


class SentimentTests(unittest.TestCase):
    def setUp(self) -> None:
        self.analyzer = SentimentAnalyzer()

    def test_labels(self):
        self.assertIs(self.analyzer.analyze("A great success for the team"), Sentiment.POSITIVE)
        self.assertIs(self.analyzer.analyze("Terrible outage, worst problem yet"), Sentiment.NEGATIVE)
        self.assertIs(self.analyzer.analyze("good and bad"), Sentiment.NEUTRAL)
        self.assertIs(self.analyzer.analyze("   "), Sentiment.NEUTRAL)

    def test_repeated_word_counts_once(self):
        self.assertEqual(self.analyzer.score("good good good bad poor"), -1)

    def test_breakdown_has_every_label(self):
        records = [make_record("a"), make_record("b")]
        self.assertEqual(sentiment_breakdown(records), {"Positive": 0, "Negative": 0, "Neutral": 2})


class NormalizerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.normalizer = Normalizer()

    def test_build_fills_fallbacks_and_clamps(self):
        record = self.normalizer.build(
            platform=Platform.VIDEO,
            name="",
            url="https://youtube.com/watch?v=1",
            now=NOW,
            volume=-5,
            engagement={"likes": None, "comments": 4},
        )
        self.assertEqual(record.name, "Untitled")
        self.assertEqual(record.volume, 0)
        self.assertEqual(record.timestamp, NOW)
        self.assertEqual(record.engagement, {"likes": 0, "comments": 4})
        self.assertIsNone(record.growth)

    def test_build_is_deterministic(self):
        kwargs = dict(
            platform=Platform.FORUM_B,
            name="Amazing new software release",
            description="Open source data tooling",
            url="https://example.com/release",
            now=NOW,
            volume=321,
            engagement={"points": 321, "comments": 12},
        )
        first = self.normalizer.build(**kwargs)
        second = self.normalizer.build(**kwargs)
        self.assertEqual(first, second)
        self.assertEqual(first.category, "technology")
        self.assertIs(first.sentiment, Sentiment.POSITIVE)


class TimestampParsingTests(unittest.TestCase):
    def test_parse_datetime(self):
        self.assertEqual(parse_datetime("2024-01-01T10:00:00Z"), datetime(2024, 1, 1, 10, tzinfo=timezone.utc))
        self.assertEqual(parse_datetime("2024-01-01 10:00:00"), datetime(2024, 1, 1, 10, tzinfo=timezone.utc))
        offset = parse_datetime("2024-01-01T10:00:00+02:00")
        self.assertEqual(offset.utcoffset(), timedelta(hours=2))
        self.assertIsNone(parse_datetime("yesterday"))
        self.assertIsNone(parse_datetime(None))

    def test_from_epoch(self):
        self.assertEqual(from_epoch(0), datetime(1970, 1, 1, tzinfo=timezone.utc))
        self.assertIsNone(from_epoch(None))


if __name__ == "__main__":
    unittest.main()
