"""
Shared keyword tables for sentiment and category heuristics.
"""
import re
from functools import lru_cache
from typing import Iterable, List, Tuple

POSITIVE_WORDS = ["great", "amazing", "good", "excellent", "innovative", "success"]

NEGATIVE_WORDS = ["bad", "poor", "failure", "terrible", "worst", "problem"]

# Order matters: the first category whose keywords match wins.
CATEGORY_KEYWORDS: List[Tuple[str, List[str]]] = [
    ("technology", ["tech", "ai", "robot", "digital", "crypto", "nft", "software", "app", "data", "cyber"]),
    ("entertainment", ["movie", "music", "game", "show", "celebrity", "film", "tv", "series", "stream"]),
    ("politics", ["government", "election", "policy", "president", "vote", "campaign", "political"]),
    ("sports", ["football", "basketball", "soccer", "sport", "game", "player", "team", "match"]),
    ("business", ["market", "stock", "economy", "business", "company", "startup", "investment"]),
]

DEFAULT_CATEGORY = "general"


@lru_cache(maxsize=512)
def _pattern(keyword: str) -> "re.Pattern[str]":
    # anchor at a word start so "ai" does not fire inside "said"
    return re.compile(r"\b" + re.escape(keyword.lower()))


def contains_keyword(text: str, keyword: str) -> bool:
    return bool(_pattern(keyword).search(text.lower()))


def count_present(text: str, keywords: Iterable[str]) -> int:
    lowered = text.lower()
    return sum(1 for kw in keywords if _pattern(kw).search(lowered))
