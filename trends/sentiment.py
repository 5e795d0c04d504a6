"""
Lexical sentiment heuristic applied by every provider normalizer.
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

from trends.keywords import NEGATIVE_WORDS, POSITIVE_WORDS, count_present
from trends.models import Sentiment, TrendRecord


def _get_sentiment_label(score: int) -> Sentiment:
    if score > 0:
        return Sentiment.POSITIVE
    if score < 0:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


class SentimentAnalyzer:
    """
    Counts which positive and negative keywords are present in a text and
    compares the two counts. Ties and empty text are Neutral.
    """

    def __init__(
        self,
        positive_words: Optional[Sequence[str]] = None,
        negative_words: Optional[Sequence[str]] = None,
    ) -> None:
        self.positive_words = tuple(positive_words if positive_words is not None else POSITIVE_WORDS)
        self.negative_words = tuple(negative_words if negative_words is not None else NEGATIVE_WORDS)

    def score(self, text: str) -> int:
        if not text or not text.strip():
            return 0
        return count_present(text, self.positive_words) - count_present(text, self.negative_words)

    def analyze(self, text: str) -> Sentiment:
        return _get_sentiment_label(self.score(text))


def sentiment_breakdown(records: Iterable[TrendRecord]) -> Dict[str, int]:
    counts = {label.value: 0 for label in Sentiment}
    for record in records:
        counts[record.sentiment.value] += 1
    return counts
