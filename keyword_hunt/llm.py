"""
Language-model capabilities used by the keyword pipelines.

Each operation sends one structured-output request through the OpenAI SDK
and parses the reply into a pydantic model.  A refusal, or a reply that
does not parse, raises ``LlmRefusalError``.  Keyword lists coming back from
the model are normalized here (``normalize_keywords``) before anything else
sees them.
"""

import logging

from django.conf import settings
from openai import OpenAI
from pydantic import BaseModel, Field

from . import prompts
from .errors import LlmRefusalError
from .locales import get_locale_name
from .models import FIELD_LIMITS, Store

logger = logging.getLogger(__name__)

GENERATED_KEYWORD_COUNT = 16


class KeywordList(BaseModel):
    keywords: list[str] = Field(description="Keywords, most valuable first")


class IndexList(BaseModel):
    indices: list[int] = Field(description="1-based indices into the given list")


class AppIndexList(BaseModel):
    reasoning_steps: list[str]
    indices: list[int] = Field(description="1-based indices of competitor apps")


class ShortDescription(BaseModel):
    short_description: str = Field(description="One sentence about the app's main feature")


class AppStoreContents(BaseModel):
    title: str | None = Field(
        default=None,
        description=(
            "The app title, max 30 characters. Keep the original app name and "
            "append keywords as a tag line. Use as many characters as possible."
        ),
    )
    subtitle: str | None = Field(
        default=None,
        description="The subtitle, max 30 characters. Use as many characters as possible.",
    )
    description: str | None = Field(
        default=None,
        description=(
            "The description, max 4000 characters. Use each target keyword six "
            "times or more, the first three keywords most often, and use up the "
            "character limit."
        ),
    )


class GooglePlayContents(BaseModel):
    title: str | None = None
    subtitle: str | None = None
    description: str | None = None


def normalize_keywords(keywords) -> list[str]:
    """Trim, lower-case, drop empties and duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for kw in keywords or []:
        if not isinstance(kw, str):
            continue
        kw = " ".join(kw.split()).lower()
        if kw and kw not in seen:
            seen.add(kw)
            result.append(kw)
    return result


def _numbered(items: list[str]) -> str:
    return "\n".join(f'  {i + 1}. "{item}"' for i, item in enumerate(items))


def _pick(items: list, indices: list[int]) -> list:
    """Map 1-based indices onto ``items``, ignoring out-of-range and repeated ones."""
    picked = []
    seen = set()
    for i in indices:
        if 1 <= i <= len(items) and i not in seen:
            seen.add(i)
            picked.append(items[i - 1])
    return picked


class KeywordAssistant:
    """Thin wrapper around the chat completions structured-output API."""

    def __init__(self, client=None, model: str | None = None, mini_model: str | None = None):
        self._client = client
        self.model = model or settings.LLM_MODEL
        self.mini_model = mini_model or settings.LLM_MINI_MODEL

    @property
    def client(self):
        if self._client is None:
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY or None)
        return self._client

    def _parse(self, model: str, messages: list[dict], response_format, what: str):
        completion = self.client.chat.completions.parse(
            model=model,
            messages=messages,
            response_format=response_format,
        )
        message = completion.choices[0].message
        if message.refusal:
            logger.warning(f"Model refused to {what}: {message.refusal}")
            raise LlmRefusalError(f"The model refused to {what}.")
        if message.parsed is None:
            raise LlmRefusalError(f"No response from the model to {what}.")
        return message.parsed

    # ------------------------------------------------------------------ #
    # Keywords
    # ------------------------------------------------------------------ #

    def extract_keywords(self, title: str, description: str, locale) -> list[str]:
        if not title or not description:
            return []
        parsed = self._parse(
            self.mini_model,
            [
                {
                    "role": "system",
                    "content": prompts.KEYWORD_EXTRACTION.format(
                        locale=get_locale_name(locale)
                    ).strip(),
                },
                {"role": "user", "content": f"{title}\n\n{description[:500]}"},
            ],
            KeywordList,
            "extract keywords",
        )
        return normalize_keywords(parsed.keywords)

    def rerank_keywords(
        self,
        title: str,
        short_description: str,
        locale,
        pool: list[str],
        usage: dict[str, int] | None = None,
    ) -> list[str]:
        """
        Pick and order the best keywords from ``pool`` for the app.

        ``usage`` maps a keyword to the number of competitor apps using it and
        is shown to the model as a popularity hint.
        """
        if not pool:
            return []
        usage = usage or {}
        formatted = ", ".join(
            f"{kw} (used by {usage[kw]} competitor apps)" if usage.get(kw) else kw
            for kw in pool
        )
        parsed = self._parse(
            self.mini_model,
            [
                {
                    "role": "system",
                    "content": prompts.KEYWORD_RERANKING.format(
                        locale=get_locale_name(locale)
                    ).strip(),
                },
                {
                    "role": "user",
                    "content": (
                        "Here's the target app information:\n"
                        f"App name: {title}\n"
                        f"App description: {short_description}\n\n"
                        f"Here are keywords of competitor apps: {formatted}"
                    ),
                },
            ],
            KeywordList,
            "rerank keywords",
        )
        return normalize_keywords(parsed.keywords)

    def generate_aso_keywords(self, locale, title: str, short_description: str) -> list[str]:
        locale_name = get_locale_name(locale)
        parsed = self._parse(
            self.model,
            [
                {
                    "role": "system",
                    "content": prompts.KEYWORD_GENERATION.format(
                        locale=locale_name, count=GENERATED_KEYWORD_COUNT
                    ).strip(),
                },
                {
                    "role": "user",
                    "content": (
                        f"App name: {title}\n"
                        f"Short description: {short_description}\n"
                        f"Target language: {locale_name}"
                    ),
                },
            ],
            KeywordList,
            "generate keywords",
        )
        return normalize_keywords(parsed.keywords)

    def locale_sanity_check(self, locale, keywords: list[str]) -> list[str]:
        """Return the subset of ``keywords`` the model confirms is written in the locale's language."""
        if not keywords:
            return []
        parsed = self._parse(
            self.mini_model,
            [
                {
                    "role": "system",
                    "content": prompts.KEYWORD_LANGUAGE_REVIEW.format(
                        locale=get_locale_name(locale)
                    ).strip(),
                },
                {"role": "user", "content": f"- Keywords:\n{_numbered(keywords)}"},
            ],
            IndexList,
            "review keyword languages",
        )
        return _pick(keywords, parsed.indices)

    def final_sanity_check(self, locale, keywords: list[str]) -> list[int]:
        """1-based indices of the keywords worth keeping."""
        if not keywords:
            return []
        parsed = self._parse(
            self.mini_model,
            [
                {
                    "role": "system",
                    "content": prompts.KEYWORD_FINAL_SANITY_CHECK.format(
                        locale=get_locale_name(locale)
                    ).strip(),
                },
                {"role": "user", "content": f"- Keywords:\n{_numbered(keywords)}"},
            ],
            IndexList,
            "check keywords",
        )
        return [i for i in parsed.indices if 1 <= i <= len(keywords)]

    # ------------------------------------------------------------------ #
    # Apps
    # ------------------------------------------------------------------ #

    def filter_apps(self, title: str, short_description: str, apps: list[dict]) -> list[dict]:
        """Keep the apps the model judges to be functional competitors."""
        if not apps:
            return []
        listing = "\n".join(
            f'  {i + 1}. "{app.get("title", "")} ({(app.get("description") or "")[:200]}...)"'
            for i, app in enumerate(apps)
        )
        parsed = self._parse(
            self.model,
            [
                {"role": "system", "content": prompts.APP_FILTERING.strip()},
                {
                    "role": "user",
                    "content": (
                        f'- App Description: "{title} ({short_description})"\n'
                        f"- Potential Competitors List:\n{listing}"
                    ),
                },
            ],
            AppIndexList,
            "filter apps",
        )
        return _pick(apps, parsed.indices)

    def generate_short_description(self, title: str, description: str) -> str:
        """One-sentence summary of an app, in the language of its listing."""
        parsed = self._parse(
            self.mini_model,
            [
                {"role": "system", "content": prompts.SHORT_DESCRIPTION.strip()},
                {
                    "role": "user",
                    "content": f"App Title: {title}\nApp Description: {description}",
                },
            ],
            ShortDescription,
            "describe the app",
        )
        return " ".join(parsed.short_description.split())

    # ------------------------------------------------------------------ #
    # Listing contents
    # ------------------------------------------------------------------ #

    def generate_contents(
        self,
        locale,
        title: str,
        keywords: list[dict],
        targets: list[str],
        subtitle: str | None = None,
        current_description: str | None = None,
        description_outline: str | None = None,
        retry: dict | None = None,
        store: str = Store.APPSTORE,
    ) -> dict:
        """
        Generate listing text for ``targets`` (any of title/subtitle/description).

        ``keywords`` are AsoKeyword dicts; ranked ones are shown with their
        rank.  ``retry`` is ``{"prev": ..., "feedback": ...}`` from a previous
        attempt and is replayed as an assistant/user exchange.

        Returns a dict holding only the fields the model produced.
        """
        locale_name = get_locale_name(locale)
        limits = FIELD_LIMITS[Store(store)]
        field_rules = (
            prompts.APP_STORE_FIELD_RULES
            if store == Store.APPSTORE
            else prompts.GOOGLE_PLAY_FIELD_RULES
        )
        rules = []
        for name in ("title", "subtitle", "description"):
            if name in targets:
                rules.append(field_rules[name].format(max=limits[name]))
            else:
                rules.append(f"- No need to include the {name} in the output.")
        target_names = ", ".join(targets)

        formatted_keywords = ", ".join(
            f'"{kw["keyword"]}" (rank #{kw["position"]})'
            if kw.get("position") and kw["position"] > 0
            else f'"{kw["keyword"]}"'
            for kw in keywords
        )
        extra = []
        if subtitle:
            extra.append(f"- Current Subtitle: {subtitle}")
        if current_description:
            extra.append(
                f"- Current Description (use as an outline for your reference): {current_description}"
            )
        if description_outline:
            extra.append(f"- Description Outline: {description_outline}")

        messages = [
            {
                "role": "system",
                "content": prompts.CONTENTS_SYSTEM.format(
                    locale=locale_name, targets=target_names, rules="\n".join(rules)
                ).strip(),
            },
            {
                "role": "user",
                "content": prompts.CONTENTS_USER.format(
                    title=title,
                    extra="\n".join(extra),
                    keywords=formatted_keywords,
                    targets=target_names,
                ).strip(),
            },
        ]
        if retry and retry.get("prev") and retry.get("feedback"):
            messages.append({"role": "assistant", "content": retry["prev"]})
            messages.append({"role": "user", "content": retry["feedback"]})

        parsed = self._parse(
            self.model,
            messages,
            AppStoreContents if store == Store.APPSTORE else GooglePlayContents,
            "generate contents",
        )
        return parsed.model_dump(exclude_none=True)
