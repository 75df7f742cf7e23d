"""Test find_competitors: competitor discovery pipeline."""

import pytest

from keyword_hunt.errors import AppNotFoundError, InvalidParamsError, UpstreamError
from keyword_hunt.find_competitors import TOTAL_STEPS, find_competitors
from keyword_hunt.models import AppLocalization, Competitor
from keyword_hunt.services import SearchResult

from .conftest import APP_ID, LOCALE


@pytest.fixture
def run(search_service, assistant, writer, no_sleep):
    def run_pipeline(short_description="Track daily habits"):
        return find_competitors(
            APP_ID,
            LOCALE,
            short_description,
            writer=writer,
            search_service=search_service,
            assistant=assistant,
        )

    return run_pipeline


def searches(results):
    """search_for_locale stand-in answering from ``results`` by term."""

    def search(locale, term, num=100):
        return SearchResult(apps=list(results.get(term, [])))

    return search


class TestFindCompetitors:
    def test_similar_apps_and_current_keywords(self, app, run, search_service, writer, summary):
        similar = [summary(11 + i, reviews=r) for i, r in enumerate([500, 400, 300, 200, 150, 50])]
        search_service.get_similar_apps.return_value = similar
        keyword_apps = [summary(21, reviews=300), summary(APP_ID, reviews=100), summary(22, reviews=3)]
        search_service.search_for_locale.side_effect = searches(
            {kw: keyword_apps for kw in ["habit", "routine", "streak", "goal", "daily"]}
        )
        search_service.get_app.return_value = summary(APP_ID, reviews=100)

        saved = run()

        assert [c.competitor_id for c in saved] == ["11", "12", "13", "21", "14", "15"]
        assert Competitor.objects.count() == 6
        assert search_service.search_for_locale.call_count == 5
        assert writer.types() == [
            "start:similarApps",
            "end:similarApps",
            "start:searchApps",
            "end:searchApps",
            "start:filterAppsByReviews",
            "end:filterAppsByReviews",
            "start:filterAppsByFunction",
            "end:filterAppsByFunction",
            "finalCompetitors",
        ]
        assert all(e.total_steps == TOTAL_STEPS for e in writer.events)
        assert writer.events[2].step == 3
        assert writer.events[-1].data[0]["competitorId"] == "11"

    def test_unreleased_app_degrades(self, app, run, search_service, assistant, writer, summary):
        AppLocalization.objects.update(keywords="habit")
        search_service.get_similar_apps.side_effect = AppNotFoundError("no page")
        search_service.get_app.side_effect = AppNotFoundError("no listing")
        assistant.generate_aso_keywords.return_value = ["free", "habit app", "routine planner"]
        search_service.search_for_locale.side_effect = searches(
            {
                "Habit Tracker": [summary(APP_ID), summary(31, reviews=2)],
                "habit app": [summary(32, reviews=80)],
                "routine planner": [summary(33, reviews=4), summary(34, reviews=60)],
            }
        )

        saved = run()

        assert [c.competitor_id for c in saved] == ["32", "34", "31"]
        terms = [c.args[1] for c in search_service.search_for_locale.call_args_list]
        assert "free" not in terms
        assert "error" not in writer.types()
        assert writer.types()[:6] == [
            "start:similarApps",
            "end:similarApps",
            "start:titleSearch",
            "end:titleSearch",
            "start:generateKeywords",
            "end:generateKeywords",
        ]
        search_step = next(e for e in writer.events if e.type == "start:searchApps")
        assert search_step.step == 3

    def test_function_filter_applied(self, app, run, search_service, assistant, summary):
        similar = [summary(11 + i, reviews=100) for i in range(6)]
        search_service.get_similar_apps.return_value = similar
        search_service.search_for_locale.side_effect = searches({})
        search_service.get_app.return_value = summary(APP_ID, reviews=0)
        assistant.filter_apps.side_effect = lambda title, description, apps: apps[:2]

        saved = run()

        assert len(saved) == 2
        assistant.filter_apps.assert_called_once()
        assert assistant.filter_apps.call_args.args[:2] == ("Habit Tracker", "Track daily habits")

    def test_missing_title(self, app, run, writer):
        AppLocalization.objects.update(title="")
        app.title = ""
        app.save()

        with pytest.raises(InvalidParamsError):
            run()
        assert writer.types() == ["error"]
        assert writer.events[0].data["code"] == "INVALID_PARAMS"

    def test_search_failure_reported(self, app, run, search_service, writer, summary):
        search_service.get_similar_apps.return_value = [summary(11 + i) for i in range(6)]
        search_service.search_for_locale.side_effect = UpstreamError("App Store search failed")

        with pytest.raises(UpstreamError):
            run()
        assert writer.types()[-1] == "error"
        assert writer.events[-1].data["code"] == "UPSTREAM"
        assert not Competitor.objects.exists()

    def test_similar_apps_upstream_failure_degrades(self, app, run, search_service, writer, summary):
        search_service.get_similar_apps.side_effect = UpstreamError(
            "App Store lookup returned an invalid response"
        )
        search_service.search_for_locale.side_effect = searches(
            {"Habit Tracker": [summary(41, reviews=90)], "habit": [summary(42, reviews=70)]}
        )
        search_service.get_app.return_value = summary(APP_ID, reviews=10)

        saved = run()

        assert [c.competitor_id for c in saved] == ["41", "42"]
        assert "error" not in writer.types()
        assert writer.events[1].type == "end:similarApps"
        assert writer.events[1].data == []
