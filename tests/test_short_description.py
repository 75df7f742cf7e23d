"""Test get_short_description: cached summaries and which listing gets summarized."""

from unittest.mock import MagicMock

import pytest

from keyword_hunt.errors import AppNotFoundError, ShortDescriptionError
from keyword_hunt.llm import KeywordAssistant
from keyword_hunt.models import AppLocalization
from keyword_hunt.short_description import get_short_description

from .conftest import APP_ID


@pytest.fixture
def assistant():
    assistant = MagicMock(spec=KeywordAssistant)
    assistant.generate_short_description.return_value = "Build habits that stick."
    return assistant


class TestGetShortDescription:
    def test_stored_description_reused(self, app, assistant):
        app.short_description = "Track daily habits"
        app.save()

        assert get_short_description(APP_ID, assistant) == "Track daily habits"
        assistant.generate_short_description.assert_not_called()

    def test_generates_from_draft_and_saves(self, app, assistant):
        result = get_short_description(APP_ID, assistant)

        assert result == "Build habits that stick."
        assistant.generate_short_description.assert_called_once_with(
            "Habit Tracker", "Track your habits every day."
        )
        app.refresh_from_db()
        assert app.short_description == "Build habits that stick."

        # Second call reads the stored value
        get_short_description(APP_ID, assistant)
        assert assistant.generate_short_description.call_count == 1

    def test_released_listing_preferred(self, app, public_version, assistant):
        AppLocalization.objects.create(
            app=app,
            app_version=public_version,
            locale="en-US",
            title="Habit Tracker: Streaks",
            description="The released listing.",
        )

        get_short_description(APP_ID, assistant)

        assistant.generate_short_description.assert_called_once_with(
            "Habit Tracker: Streaks", "The released listing."
        )

    def test_only_primary_locale_is_summarized(self, app, assistant):
        app.primary_locale = "ja"
        app.save()

        get_short_description(APP_ID, assistant)

        assistant.generate_short_description.assert_called_once_with("Habit Tracker", "")

    def test_empty_reply_not_saved(self, app, assistant):
        assistant.generate_short_description.return_value = ""

        with pytest.raises(ShortDescriptionError):
            get_short_description(APP_ID, assistant)
        app.refresh_from_db()
        assert app.short_description == ""

    def test_unknown_app(self, db, assistant):
        with pytest.raises(AppNotFoundError):
            get_short_description("999", assistant)
