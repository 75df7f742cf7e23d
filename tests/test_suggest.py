"""Test suggest_keywords: keyword suggestion from similar apps and live searches."""

import pytest

from keyword_hunt.errors import AppNotFoundError, UpstreamError
from keyword_hunt.models import AsoKeyword, Platform, Store
from keyword_hunt.scoring import KeywordScore
from keyword_hunt.services import SearchResult
from keyword_hunt.suggest import dedupe_scores, is_noise, suggest_keywords

from .conftest import APP_ID, LOCALE

CURRENT = ["habit", "routine", "streak", "goal", "daily"]
NEW = [
    "habit journal",
    "routine builder",
    "streak counter",
    "goal setting",
    "daily planner",
    "mood tracker",
    "water reminder",
    "sleep tracker",
]


@pytest.fixture
def run(search_service, scorer, assistant, writer, no_sleep):
    def run_pipeline():
        return suggest_keywords(
            APP_ID,
            LOCALE,
            "Track daily habits",
            Store.APPSTORE,
            Platform.IOS,
            writer=writer,
            search_service=search_service,
            scorer=scorer,
            assistant=assistant,
        )

    return run_pipeline


@pytest.fixture
def store_data(search_service, assistant, summary):
    """A released app with two competitors worth mining."""
    search_service.get_similar_apps.return_value = [
        summary(11, title="Streaks", reviews=500),
        summary(12, title="Tiny", reviews=5),
    ]
    search_service.search_for_locale.return_value = SearchResult(
        apps=[summary(21, title="Goals", reviews=300)]
    )
    search_service.get_app.return_value = summary(APP_ID, reviews=100)
    assistant.extract_keywords.side_effect = lambda title, description, locale: {
        "Streaks": ["habit journal", "free", "streak counter"],
        "Goals": ["goal setting", "habit journal"],
    }[title]
    assistant.rerank_keywords.return_value = list(NEW)
    assistant.generate_aso_keywords.return_value = ["free", "habit log"]
    return search_service


def in_order(types, expected):
    """``expected`` appears in ``types`` as a subsequence."""
    remaining = iter(types)
    return all(t in remaining for t in expected)


def test_dedupe_keeps_first():
    scores = [KeywordScore("a", overall=1), KeywordScore("b"), KeywordScore("a", overall=9)]
    assert [(s.keyword, s.overall) for s in dedupe_scores(scores)] == [("a", 1), ("b", 0)]


def test_noise_is_low_and_unranked():
    assert is_noise(KeywordScore("a", overall=1.4, position=-1)) is True
    assert is_noise(KeywordScore("a", overall=1.4, position=30)) is False
    assert is_noise(KeywordScore("a", overall=1.5, position=-1)) is False


class TestSuggestKeywords:
    def test_unreleased_app_generates_keywords(self, app, run, search_service, assistant, writer):
        assistant.generate_aso_keywords.return_value = ["free", "habit log", "routine app"]

        saved = run()

        assert {k.keyword for k in saved} == {"habit log", "routine app"}
        search_service.get_similar_apps.assert_not_called()
        assert in_order(
            writer.types(),
            [
                "log",
                "changeStrategy",
                "start:generateAsoKeywords",
                "end:generateAsoKeywords",
                "start:scoreKeywords",
                "end:scoreKeywords",
                "finalKeywords",
            ],
        )
        assert "error" not in writer.types()

    def test_keywords_from_competitors(self, public_version, run, store_data, scorer, assistant, writer):
        saved = run()

        assert {k.keyword for k in saved} == set(NEW)
        assert AsoKeyword.objects.count() == len(NEW)
        assert "changeStrategy" not in writer.types()
        assert in_order(
            writer.types(),
            [
                "start:similarApps",
                "start:scoreCurrentKeywords",
                "end:scoreCurrentKeywords",
                "highScoringCurrentKeywords",
                "start:searchApps",
                "start:filterAppsByReviews",
                "start:filterAppsByShortDescription",
                "topCompetitorApps",
                "start:extractKeywordsFromCompetitors",
                "start:rerankKeywords",
                "start:reviewLanguage",
                "start:scoreKeywords",
                "start:finalSanityCheck",
                "finalKeywords",
            ],
        )

        # Apps with fewer reviews than ours are not mined
        titles = {c.args[0] for c in assistant.extract_keywords.call_args_list}
        assert titles == {"Streaks", "Goals"}

        pool = assistant.rerank_keywords.call_args.args[3]
        usage = assistant.rerank_keywords.call_args.args[4]
        assert "free" not in pool
        assert set(CURRENT) <= set(pool)
        assert usage["habit journal"] == 2

        assert scorer.score_keyword.call_count == len(CURRENT) + len(NEW)
        assistant.final_sanity_check.assert_called_once()

    def test_too_few_keywords_falls_back(self, public_version, run, store_data, assistant, writer):
        assistant.rerank_keywords.return_value = ["journal"]

        saved = run()

        assert {k.keyword for k in saved} == set(CURRENT) | {"journal", "habit log"}
        assert "changeStrategy" in writer.types()
        log_messages = [e.message for e in writer.events if e.type == "log"]
        assert "Not enough keywords" in log_messages
        # Already checked once; the fallback does not check again
        assistant.final_sanity_check.assert_called_once()

    def test_wrong_language_falls_back(self, public_version, run, store_data, assistant, writer):
        assistant.locale_sanity_check.side_effect = lambda locale, keywords: []

        saved = run()

        assert {k.keyword for k in saved} == set(CURRENT) | {"habit log"}
        assert writer.types().count("changeStrategy") == 1
        assistant.final_sanity_check.assert_called_once()

    def test_no_competitors_falls_back(self, public_version, run, search_service, assistant, writer):
        search_service.get_similar_apps.side_effect = AppNotFoundError("no page")
        search_service.search_for_locale.return_value = SearchResult(apps=[])
        search_service.get_app.return_value = {"id": APP_ID, "reviews": 0}
        assistant.generate_aso_keywords.return_value = ["habit log"]

        saved = run()

        assert "habit log" in {k.keyword for k in saved}
        top = next(e for e in writer.events if e.type == "topCompetitorApps")
        assert top.data == []
        assert "error" not in writer.types()
        assistant.extract_keywords.assert_not_called()

    def test_listing_keywords_matched_case_insensitively(
        self, app, public_version, run, store_data, scorer, assistant
    ):
        app.localizations.update(keywords="Habit,Routine, Streak ,Goal,DAILY")
        assistant.rerank_keywords.return_value = ["habit", "routine"]

        saved = run()

        keywords = [k.keyword for k in saved]
        assert sorted(keywords) == sorted(set(CURRENT) | {"habit log"})
        assert len({k.lower() for k in keywords}) == len(keywords)
        scored = [c.args[1] for c in scorer.score_keyword.call_args_list]
        assert set(scored[: len(CURRENT)]) == set(CURRENT)

    def test_lookup_failure_reported(self, public_version, run, store_data, search_service, writer):
        search_service.get_app.side_effect = UpstreamError("App Store lookup failed")

        with pytest.raises(UpstreamError):
            run()

        assert writer.types()[-1] == "error"
        assert writer.events[-1].data["code"] == "UPSTREAM"
        assert not AsoKeyword.objects.exists()
