"""Test KeywordAssistant: structured output parsing with a fake OpenAI client."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from keyword_hunt.errors import LlmRefusalError
from keyword_hunt.llm import (
    AppIndexList,
    AppStoreContents,
    GooglePlayContents,
    IndexList,
    KeywordAssistant,
    KeywordList,
    ShortDescription,
    normalize_keywords,
)
from keyword_hunt.models import Store


def completion(parsed=None, refusal=None):
    message = SimpleNamespace(parsed=parsed, refusal=refusal)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def assistant(client):
    return KeywordAssistant(client=client, model="big-model", mini_model="small-model")


def sent_messages(client):
    return client.chat.completions.parse.call_args.kwargs["messages"]


def test_normalize_keywords():
    assert normalize_keywords([" Habit  Tracker ", "habit tracker", "", None, "GOAL"]) == [
        "habit tracker",
        "goal",
    ]
    assert normalize_keywords(None) == []


class TestKeywords:
    def test_extract_keywords(self, assistant, client):
        client.chat.completions.parse.return_value = completion(
            KeywordList(keywords=["Habit", "habit", "Streak"])
        )

        keywords = assistant.extract_keywords("Streaks", "x" * 1000, "ja")

        assert keywords == ["habit", "streak"]
        kwargs = client.chat.completions.parse.call_args.kwargs
        assert kwargs["model"] == "small-model"
        assert kwargs["response_format"] is KeywordList
        assert "Japanese" in kwargs["messages"][0]["content"]
        assert kwargs["messages"][1]["content"] == "Streaks\n\n" + "x" * 500

    def test_extract_needs_title_and_description(self, assistant, client):
        assert assistant.extract_keywords("Streaks", "", "en-US") == []
        client.chat.completions.parse.assert_not_called()

    def test_rerank_shows_usage(self, assistant, client):
        client.chat.completions.parse.return_value = completion(KeywordList(keywords=["goal"]))

        assistant.rerank_keywords("Habit Tracker", "Track habits", "en-US", ["goal", "streak"], {"goal": 3})

        content = sent_messages(client)[1]["content"]
        assert "goal (used by 3 competitor apps), streak" in content

    def test_generate_uses_main_model(self, assistant, client):
        client.chat.completions.parse.return_value = completion(KeywordList(keywords=["A", "b"]))

        assert assistant.generate_aso_keywords("en-US", "Habit Tracker", "Track habits") == ["a", "b"]
        assert client.chat.completions.parse.call_args.kwargs["model"] == "big-model"
        assert "Return exactly 16 keywords" in sent_messages(client)[0]["content"]

    def test_locale_sanity_check_maps_indices(self, assistant, client):
        client.chat.completions.parse.return_value = completion(IndexList(indices=[3, 1, 3, 9, 0]))

        assert assistant.locale_sanity_check("ja", ["習慣", "habit", "目標"]) == ["目標", "習慣"]

    def test_final_sanity_check_drops_out_of_range(self, assistant, client):
        client.chat.completions.parse.return_value = completion(IndexList(indices=[2, 5, 1]))

        assert assistant.final_sanity_check("en-US", ["a", "b", "c"]) == [2, 1]

    def test_refusal(self, assistant, client):
        client.chat.completions.parse.return_value = completion(refusal="I can't help with that.")

        with pytest.raises(LlmRefusalError):
            assistant.generate_aso_keywords("en-US", "Habit Tracker", "Track habits")

    def test_empty_reply(self, assistant, client):
        client.chat.completions.parse.return_value = completion()

        with pytest.raises(LlmRefusalError):
            assistant.final_sanity_check("en-US", ["a"])


class TestShortDescription:
    def test_one_sentence_summary(self, assistant, client):
        client.chat.completions.parse.return_value = completion(
            ShortDescription(short_description="  Build habits\nthat stick. ")
        )

        result = assistant.generate_short_description("Habit Tracker", "Track your habits.")

        assert result == "Build habits that stick."
        kwargs = client.chat.completions.parse.call_args.kwargs
        assert kwargs["model"] == "small-model"
        assert kwargs["response_format"] is ShortDescription
        assert kwargs["messages"][1]["content"] == (
            "App Title: Habit Tracker\nApp Description: Track your habits."
        )

    def test_refusal(self, assistant, client):
        client.chat.completions.parse.return_value = completion(refusal="No.")

        with pytest.raises(LlmRefusalError):
            assistant.generate_short_description("Habit Tracker", "Track your habits.")


class TestApps:
    def test_filter_apps(self, assistant, client):
        apps = [{"title": "A", "description": "a"}, {"title": "B", "description": None}]
        client.chat.completions.parse.return_value = completion(
            AppIndexList(reasoning_steps=["B is a game"], indices=[1])
        )

        assert assistant.filter_apps("Habit Tracker", "Track habits", apps) == [apps[0]]
        assert '2. "B (...)"' in sent_messages(client)[1]["content"]

    def test_filter_no_apps(self, assistant, client):
        assert assistant.filter_apps("Habit Tracker", "Track habits", []) == []
        client.chat.completions.parse.assert_not_called()


class TestContents:
    def test_app_store_contents(self, assistant, client):
        client.chat.completions.parse.return_value = completion(AppStoreContents(title="Habit Tracker: Goals"))

        result = assistant.generate_contents(
            "en-US",
            "Habit Tracker",
            [{"keyword": "goal", "position": 4}, {"keyword": "streak", "position": -1}],
            ["title"],
        )

        assert result == {"title": "Habit Tracker: Goals"}
        system, user = sent_messages(client)
        assert "max 30 characters" in system["content"]
        assert "No need to include the subtitle" in system["content"]
        assert '"goal" (rank #4), "streak"' in user["content"]

    def test_retry_replayed(self, assistant, client):
        client.chat.completions.parse.return_value = completion(AppStoreContents(title="T"))

        assistant.generate_contents(
            "en-US", "Habit Tracker", [], ["title"], retry={"prev": "[TITLE]\nOld", "feedback": "Too short"}
        )

        messages = sent_messages(client)
        assert messages[-2] == {"role": "assistant", "content": "[TITLE]\nOld"}
        assert messages[-1] == {"role": "user", "content": "Too short"}

    def test_google_play_limits(self, assistant, client):
        client.chat.completions.parse.return_value = completion(GooglePlayContents(subtitle="S"))

        assistant.generate_contents("en-US", "Habit Tracker", [], ["subtitle"], store=Store.GOOGLEPLAY)

        kwargs = client.chat.completions.parse.call_args.kwargs
        assert kwargs["response_format"] is GooglePlayContents
        assert "max 80 characters" in kwargs["messages"][0]["content"]
