"""Test scoring: traffic, difficulty, position and overall scores."""

import math
from unittest.mock import MagicMock

import pytest

from keyword_hunt.scoring import KeywordScorer, calculate_scores, position_score
from keyword_hunt.services import ITunesSearchService, SearchResult

REVIEWS = [5000, 4000, 3500, 3000, 3000, 3000, 2500, 2500, 2000, 1500]


def top_apps(reviews=REVIEWS, rating=4.2):
    apps = []
    for i, count in enumerate(reviews):
        apps.append(
            {
                "id": str(100 + i),
                "title": "Habit Tracker" if i < 4 else "Daily Planner",
                "description": "Plan your day",
                "reviews": count,
                "score": rating,
            }
        )
    apps[2]["id"] = "subject"
    return apps


# ===================================================================
# position_score
# ===================================================================


class TestPositionScore:
    def test_first_place_scores_ten(self):
        assert position_score(1) == 10

    def test_unranked_scores_zero(self):
        assert position_score(-1) == 0

    def test_non_increasing(self):
        scores = [position_score(p) for p in range(1, 200)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_never_negative(self):
        assert position_score(5000) == 0


# ===================================================================
# calculate_scores
# ===================================================================


class TestCalculateScores:
    def test_worked_example(self):
        scores = calculate_scores(top_apps(), "subject", "habit")

        traffic = math.log10(3001) / math.log10(1000001) * 10
        difficulty = 0.4 * (4.2 / 5 * 10) + 0.3 * traffic + 0.3 * 4.0
        pos = 10 - math.log2(3)
        reward = (pos / 10) * (difficulty / 10) * 10
        overall = 0.3 * traffic + 0.3 * pos + 0.2 * difficulty + 0.2 * reward

        assert scores["position"] == 3
        assert scores["traffic_score"] == round(traffic, 2)
        assert scores["traffic_score"] == pytest.approx(5.8, abs=0.01)
        assert scores["difficulty_score"] == round(difficulty, 2)
        assert scores["difficulty_score"] == pytest.approx(6.3, abs=0.01)
        assert scores["overall"] == round(overall, 2)
        assert scores["overall"] == pytest.approx(6.58, abs=0.01)

    def test_unranked_app(self):
        scores = calculate_scores(top_apps(), "999", "habit")
        assert scores["position"] == -1
        # Only traffic and difficulty contribute
        assert scores["overall"] == pytest.approx(
            0.3 * scores["traffic_score"] + 0.2 * scores["difficulty_score"], abs=0.01
        )

    def test_traffic_grows_with_reviews(self):
        previous = -1
        for factor in (0, 1, 10, 100, 1000):
            scores = calculate_scores(
                top_apps([r * factor for r in REVIEWS]), "subject", "habit"
            )
            assert scores["traffic_score"] >= previous
            previous = scores["traffic_score"]

    def test_traffic_zero_without_reviews(self):
        scores = calculate_scores(top_apps([0] * 10), "subject", "habit")
        assert scores["traffic_score"] == 0

    def test_traffic_capped_at_ten(self):
        scores = calculate_scores(top_apps([10**9] * 10), "subject", "habit")
        assert scores["traffic_score"] == 10

    def test_keyword_matches_whole_words_only(self):
        apps = top_apps()
        for app in apps:
            app["title"] = "Habits"
        scores = calculate_scores(apps, "subject", "habit")
        expected_difficulty = 0.4 * 8.4 + 0.3 * (math.log10(3001) / math.log10(1000001) * 10)
        assert scores["difficulty_score"] == round(expected_difficulty, 2)

    def test_only_top_ten_count(self):
        apps = top_apps() + [{"id": "x", "title": "habit", "reviews": 10**9, "score": 5}]
        assert calculate_scores(apps, "subject", "habit")["traffic_score"] == pytest.approx(
            5.8, abs=0.01
        )


# ===================================================================
# KeywordScorer
# ===================================================================


class TestKeywordScorer:
    def test_empty_results_score_zero(self):
        service = MagicMock(spec=ITunesSearchService)
        service.search_for_locale.return_value = SearchResult(apps=[], cache_hit=True)

        score = KeywordScorer(service).score_keyword("en-US", "nothing", "1001")

        assert score.keyword == "nothing"
        assert score.position == -1
        assert score.overall == 0
        assert score.cache_hit is True

    def test_searches_one_hundred_deep(self):
        service = MagicMock(spec=ITunesSearchService)
        service.search_for_locale.return_value = SearchResult(apps=top_apps())

        score = KeywordScorer(service).score_keyword("en-US", "habit", "subject")

        service.search_for_locale.assert_called_once_with("en-US", "habit", 100)
        assert score.position == 3
        assert score.to_dict()["trafficScore"] == score.traffic_score
