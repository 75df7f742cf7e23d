"""
Shared fixtures for the keyword hunt test suite.

Store searches and language-model calls are always mocked; database tests
use the pytest-django ``db`` fixture.
"""

from unittest.mock import MagicMock

import pytest
from django.core.cache import cache

from keyword_hunt.llm import KeywordAssistant
from keyword_hunt.locales import LocaleCode
from keyword_hunt.models import (
    App,
    AppLocalization,
    AppVersion,
    Platform,
    Store,
    VersionState,
)
from keyword_hunt.progress import CollectingWriter
from keyword_hunt.scoring import KeywordScore, KeywordScorer
from keyword_hunt.services import ITunesSearchService

APP_ID = "1001"
LOCALE = LocaleCode.EN_US


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip the pauses between batches."""
    sleep = MagicMock()
    monkeypatch.setattr("keyword_hunt.batching.time.sleep", sleep)
    return sleep


# ---------------------------------------------------------------------------
# Store data
# ---------------------------------------------------------------------------


@pytest.fixture
def summary():
    """Factory for store app summaries as returned by ITunesSearchService."""

    def make(app_id, title="Some App", reviews=0, score=0.0, description=""):
        return {
            "id": str(app_id),
            "appId": f"com.example.app{app_id}",
            "title": title,
            "url": f"https://apps.apple.com/us/app/id{app_id}",
            "description": description,
            "icon": f"https://example.com/{app_id}.png",
            "version": "1.0",
            "free": True,
            "score": score,
            "reviews": reviews,
        }

    return make


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app(db):
    """An App with an editable (draft) version localized for en-US."""
    app = App.objects.create(
        id=APP_ID,
        title="Habit Tracker",
        store=Store.APPSTORE,
        platform=Platform.IOS,
    )
    version = AppVersion.objects.create(
        app=app, version_string="1.1", state=VersionState.PREPARE_FOR_SUBMISSION
    )
    AppLocalization.objects.create(
        app=app,
        app_version=version,
        locale=LOCALE.value,
        title="Habit Tracker",
        subtitle="Build better routines",
        keywords="habit,routine,streak,goal,daily",
        description="Track your habits every day.",
    )
    return app


@pytest.fixture
def public_version(app):
    return AppVersion.objects.create(
        app=app, version_string="1.0", state=VersionState.READY_FOR_SALE
    )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def search_service():
    return MagicMock(spec=ITunesSearchService)


@pytest.fixture
def assistant():
    assistant = MagicMock(spec=KeywordAssistant)
    assistant.filter_apps.side_effect = lambda title, short_description, apps: list(apps)
    assistant.locale_sanity_check.side_effect = lambda locale, keywords: list(keywords)
    assistant.final_sanity_check.side_effect = lambda locale, keywords: list(
        range(1, len(keywords) + 1)
    )
    return assistant


@pytest.fixture
def scorer():
    """Scores every keyword by its length, ranked at position 5."""
    scorer = MagicMock(spec=KeywordScorer)
    scorer.score_keyword.side_effect = lambda locale, keyword, app_id: KeywordScore(
        keyword=keyword,
        traffic_score=5.0,
        difficulty_score=4.0,
        position=5,
        overall=float(len(keyword)),
    )
    return scorer


@pytest.fixture
def writer():
    return CollectingWriter()
