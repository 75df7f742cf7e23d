"""
Keyword suggestion from live search results (the "search" strategy).

Instead of the tracked competitor table, competitors come from the app's
"you might also like" apps plus searches for its current keywords.  Apps
without a released version have no ranking signal yet and go straight to
AI-generated keywords, as do runs where competitor keywords don't pan out.
"""

import logging

from .batching import run_in_batches
from .blacklists import filter_blacklisted
from .errors import AppNotFoundError, UpstreamError
from .find_competitors import search_competitors_by_keywords
from .llm import KeywordAssistant, normalize_keywords
from .models import Store
from .progress import Progress, reporting_errors
from .scoring import KeywordScorer
from .services import ITunesSearchService
from .toolkit import (
    KEYWORD_BUDGET,
    extract_keywords_cached,
    get_app_localization,
    has_public_version,
    keyword_set_lock,
    localization_title,
    replace_keyword_set,
    score_candidates,
    slice_keywords,
    sort_by_overall,
    split_keyword_field,
    total_characters,
)

logger = logging.getLogger(__name__)

HIGH_SCORE = 3
TOP_COMPETITOR_APPS = 8
RESULTS_PER_CURRENT_KEYWORD = 10
NOISE_OVERALL = 1.5
MIN_FILL_RATE = 0.8
LANGUAGE_PASS_RATE = 0.8
RERANK_BUFFER = 0.3
GENERATED_BUFFER = 0.5

CHANGE_STRATEGY_DESCRIPTION = (
    "The keywords found through the initial attempt (by checking competitor apps) "
    "did not yield enough keywords, therefore we are going to generate new keywords by AI."
)


def store_name(store: str) -> str:
    return "App Store" if store == Store.APPSTORE else "Google Play"


def dedupe_scores(scores: list) -> list:
    """Keep the first score for each keyword."""
    seen = set()
    result = []
    for score in scores:
        if score.keyword not in seen:
            seen.add(score.keyword)
            result.append(score)
    return result


def is_noise(score) -> bool:
    """Low value and not ranked: not worth a slot."""
    return score.overall < NOISE_OVERALL and score.position == -1


class KeywordSuggester:
    """One suggestion run for an app/locale."""

    def __init__(
        self,
        app_id: str,
        locale,
        short_description: str,
        store: str,
        platform: str,
        writer=None,
        search_service: ITunesSearchService | None = None,
        scorer: KeywordScorer | None = None,
        assistant: KeywordAssistant | None = None,
    ):
        self.app_id = app_id
        self.locale = locale
        self.short_description = short_description
        self.store = store
        self.platform = platform
        self.progress = Progress(writer)
        self.search_service = search_service or ITunesSearchService()
        self.scorer = scorer or KeywordScorer(self.search_service)
        self.assistant = assistant or KeywordAssistant()
        self.title = ""

    def run(self) -> list:
        with reporting_errors(self.progress, "Failed to suggest keywords"), keyword_set_lock(
            self.app_id, self.store, self.platform, self.locale
        ):
            return self._suggest()

    def _suggest(self) -> list:
        progress = self.progress
        progress.log("Starting keyword suggestion")

        localization = get_app_localization(self.app_id, self.locale)
        self.title = localization_title(localization)

        if not has_public_version(self.app_id):
            return self.change_strategy([])

        progress.start("similarApps", f"Fetching similar apps from {store_name(self.store)}")
        try:
            similar_apps = self.search_service.get_similar_apps(self.app_id, self.locale)
        except (AppNotFoundError, UpstreamError) as e:
            logger.warning(f"No similar apps for {self.app_id} [{self.locale}]: {e}")
            similar_apps = []
        progress.end("similarApps", similar_apps)

        current_scores, pool = self.process_current_keywords(
            normalize_keywords(split_keyword_field(localization.keywords)), similar_apps
        )

        progress.start(
            "filterAppsByReviews",
            "Excluding competitor apps with fewer reviews than your app",
        )
        my_reviews = self.search_service.get_app(self.app_id, self.locale).get("reviews") or 0
        competitor_apps = [
            app
            for app in pool
            if app.get("id") != str(self.app_id) and (app.get("reviews") or 0) >= my_reviews
        ]
        progress.end("filterAppsByReviews", competitor_apps)

        progress.start(
            "filterAppsByShortDescription",
            "Filtering apps based on your brief app description",
        )
        filtered_apps = self.assistant.filter_apps(
            self.title, self.short_description, competitor_apps
        )
        progress.end("filterAppsByShortDescription", filtered_apps)

        top_apps = sorted(filtered_apps, key=lambda a: a.get("reviews") or 0, reverse=True)
        top_apps = top_apps[:TOP_COMPETITOR_APPS]
        progress.emit("topCompetitorApps", data=top_apps, counted=False)
        if not top_apps:
            progress.log("No competitor apps found")
            return self.change_strategy(current_scores)

        progress.start("extractKeywordsFromCompetitors", "Extracting keywords from competitor apps")
        extracted = run_in_batches(
            top_apps,
            lambda app: extract_keywords_cached(self.assistant, self.locale, self.platform, app),
            TOP_COMPETITOR_APPS,
            delay=0,
        )
        usage = {}
        for keywords in extracted:
            for kw in dict.fromkeys(keywords):
                usage[kw] = usage.get(kw, 0) + 1
        extracted_keywords = list(usage)
        progress.end("extractKeywordsFromCompetitors", extracted_keywords)

        progress.start("rerankKeywords", "Reranking keywords")
        pool_keywords = normalize_keywords(
            extracted_keywords + [score.keyword for score in current_scores]
        )
        reranked = self.assistant.rerank_keywords(
            self.title,
            self.short_description,
            self.locale,
            filter_blacklisted(self.locale, pool_keywords),
            usage,
        )
        progress.end("rerankKeywords", reranked)

        progress.start("reviewLanguage", "Checking if keywords use the target language")
        in_language = self.assistant.locale_sanity_check(self.locale, reranked)
        passed = len(in_language) >= len(reranked) * LANGUAGE_PASS_RATE
        progress.end(
            "reviewLanguage",
            {
                "sanityCheckResult": passed,
                "description": (
                    "The keywords are written in the target language"
                    if passed
                    else "The keywords are not written in the target language"
                ),
            },
        )
        if not reranked or not passed:
            return self.change_strategy(current_scores)

        progress.start("scoreKeywords", "Scoring new keywords")
        new_scores = self.score(slice_keywords(reranked, KEYWORD_BUDGET, RERANK_BUFFER))
        merged = dedupe_scores(current_scores + new_scores)
        ranked = sort_by_overall([s for s in merged if not is_noise(s)])
        progress.end("scoreKeywords", ranked)

        progress.start(
            "finalSanityCheck",
            "Checking if keywords are good enough to go to the next step",
        )
        checked = self.final_sanity_check(ranked)
        progress.end("finalSanityCheck", checked)

        if total_characters(checked) < KEYWORD_BUDGET * MIN_FILL_RATE:
            progress.log("Not enough keywords")
            # The final sanity check already ran on these.
            return self.change_strategy(checked, disable_sanity_check=True)

        return self.save(slice_keywords(checked, KEYWORD_BUDGET))

    def process_current_keywords(self, keywords: list[str], similar_apps: list[dict]):
        """
        Score the app's current keywords and search them for more competitors.

        Returns the current keywords scoring at least HIGH_SCORE, and
        ``similar_apps`` extended with the top results of each search.
        """
        scores = []
        apps = list(similar_apps)
        if not keywords:
            return scores, apps

        progress = self.progress
        progress.start(
            "scoreCurrentKeywords",
            f"Scoring current keywords: {', '.join(keywords)}",
        )
        current = score_candidates(
            self.scorer,
            self.locale,
            keywords,
            self.app_id,
            batch_size=5,
            skip_delay_on_cache_hit=True,
        )
        progress.end("scoreCurrentKeywords", current)

        scores = [s for s in current if s.overall >= HIGH_SCORE]
        progress.emit("highScoringCurrentKeywords", data=scores, counted=False)

        progress.start(
            "searchApps",
            "Searching for additional competitor apps based on your current keywords",
        )
        popular = search_competitors_by_keywords(
            self.search_service,
            self.locale,
            keywords,
            progress,
            per_keyword=RESULTS_PER_CURRENT_KEYWORD,
        )
        progress.end("searchApps", popular)

        seen = {app.get("id") for app in apps}
        for app in popular:
            if app["id"] not in seen:
                seen.add(app["id"])
                apps.append(app)
        return scores, apps

    def score(self, keywords: list[str]) -> list:
        """Score keywords, dropping ones without any search signal."""
        scores = score_candidates(
            self.scorer,
            self.locale,
            keywords,
            self.app_id,
            self.progress,
            skip_delay_on_cache_hit=True,
        )
        return [s for s in scores if s.traffic_score or s.difficulty_score]

    def final_sanity_check(self, scores: list) -> list:
        indices = self.assistant.final_sanity_check(self.locale, [s.keyword for s in scores])
        kept = [scores[i - 1] for i in dict.fromkeys(indices) if 1 <= i <= len(scores)]
        return sort_by_overall(kept)

    def generate_and_score(self) -> list:
        progress = self.progress
        progress.start(
            "generateAsoKeywords",
            "Generating ASO keywords by AI because the initial attempt did not yield enough keywords",
        )
        generated = self.assistant.generate_aso_keywords(
            self.locale, self.title, self.short_description
        )
        keywords = slice_keywords(
            filter_blacklisted(self.locale, generated), KEYWORD_BUDGET, GENERATED_BUFFER
        )
        progress.end("generateAsoKeywords", keywords)

        progress.start("scoreKeywords", "Scoring new keywords generated by AI")
        scores = sort_by_overall(self.score(keywords))
        progress.end("scoreKeywords", scores)
        return scores

    def change_strategy(self, existing_scores: list, disable_sanity_check: bool = False) -> list:
        """Fall back to AI-generated keywords, merged with what we already scored."""
        with reporting_errors(self.progress, "Failed to generate alternative keywords"):
            self.progress.emit(
                "changeStrategy",
                data={"description": CHANGE_STRATEGY_DESCRIPTION},
                counted=False,
            )
            merged = dedupe_scores(existing_scores + self.generate_and_score())
            checked = merged if disable_sanity_check else self.final_sanity_check(merged)
            return self.save(slice_keywords(checked, KEYWORD_BUDGET))

    def save(self, scores: list) -> list:
        saved = replace_keyword_set(
            self.app_id, self.store, self.platform, self.locale, sort_by_overall(scores)
        )
        self.progress.emit("finalKeywords", data=[row.as_dict() for row in saved], counted=False)
        return saved


def suggest_keywords(
    app_id: str,
    locale,
    short_description: str,
    store: str,
    platform: str,
    writer=None,
    **services,
) -> list:
    """Run a suggestion and return the saved AsoKeyword rows, best first."""
    return KeywordSuggester(
        app_id, locale, short_description, store, platform, writer=writer, **services
    ).run()
