"""
Keyword scoring against live App Store search results.

For a keyword we search the storefront (100 results deep), find where our
app ranks, and derive four 0-10 scores from the top 10 results:

  traffic     log-normalized average review count of the top 10,
              against a 1M-review ceiling.
  difficulty  0.4 * rating strength + 0.3 * traffic
              + 0.3 * keyword saturation (share of top 10 using the
              keyword as a whole word in title or description).
  position    10 - log2(rank), or 0 when unranked.
  overall     0.3 * traffic + 0.3 * position + 0.2 * difficulty
              + 0.2 * ranking reward, where the reward is
              (position/10) * (difficulty/10) * 10.
"""

import logging
import math
import re
from dataclasses import dataclass

from .services import ITunesSearchService

logger = logging.getLogger(__name__)

SEARCH_DEPTH = 100
TOP_APPS = 10
MAX_REVIEWS = 1_000_000


@dataclass
class KeywordScore:
    keyword: str
    traffic_score: float = 0
    difficulty_score: float = 0
    position: int = -1
    overall: float = 0
    cache_hit: bool = False

    def to_dict(self) -> dict:
        return {
            "keyword": self.keyword,
            "trafficScore": self.traffic_score,
            "difficultyScore": self.difficulty_score,
            "position": self.position,
            "overall": self.overall,
            "cacheHit": self.cache_hit,
        }


def position_score(position: int) -> float:
    """Rank 1 scores 10, rank 2 scores 9, rank 1024 and beyond 0."""
    if position <= 0:
        return 0.0
    return max(0.0, 10 - math.log2(position))


def calculate_scores(apps: list[dict], app_id: str, keyword: str) -> dict:
    """
    Compute traffic/difficulty/position/overall for one result list.

    ``apps`` must be non-empty and in search-rank order.  All float scores
    are rounded to 2 decimals.
    """
    position = -1
    for i, app in enumerate(apps):
        if str(app.get("id")) == str(app_id):
            position = i + 1
            break

    top_apps = apps[:TOP_APPS]
    count = len(top_apps)

    avg_reviews = sum(app.get("reviews") or 0 for app in top_apps) / count if count else 0
    traffic = min(10, math.log10(avg_reviews + 1) / math.log10(MAX_REVIEWS + 1) * 10)

    pattern = re.compile(rf"\b{re.escape(keyword.lower())}\b", re.IGNORECASE)
    using_keyword = [
        app
        for app in top_apps
        if pattern.search(app.get("title") or "") or pattern.search(app.get("description") or "")
    ]
    competition = (len(using_keyword) / count if count else 0) * 10

    avg_rating = sum(app.get("score") or 0 for app in top_apps) / count if count else 0
    difficulty = min(
        10,
        (avg_rating / 5 * 10) * 0.4 + traffic * 0.3 + competition * 0.3,
    )

    pos_score = position_score(position)
    ranking_reward = (pos_score / 10) * (difficulty / 10) * 10

    overall = traffic * 0.3 + pos_score * 0.3 + difficulty * 0.2 + ranking_reward * 0.2

    return {
        "traffic_score": round(traffic, 2),
        "difficulty_score": round(difficulty, 2),
        "position": position,
        "overall": round(overall, 2),
    }


class KeywordScorer:
    """Scores keywords for one of our apps using ITunesSearchService."""

    def __init__(self, search_service: ITunesSearchService | None = None):
        self.search_service = search_service or ITunesSearchService()

    def score_keyword(self, locale, keyword: str, app_id: str) -> KeywordScore:
        result = self.search_service.search_for_locale(locale, keyword, SEARCH_DEPTH)
        if not result.apps:
            return KeywordScore(keyword=keyword, cache_hit=result.cache_hit)

        scores = calculate_scores(result.apps, app_id, keyword)
        logger.debug(f"Scored '{keyword}' for {app_id}: {scores}")
        return KeywordScore(keyword=keyword, cache_hit=result.cache_hit, **scores)
