"""
Competitor discovery.

Collects candidate competitor apps from the App Store ("you might also
like" apps, a search for our own title, searches for our keywords),
drops apps with fewer reviews than ours, lets the model drop apps that
do something else, and tracks the 16 most reviewed survivors.
"""

import logging

from .batching import run_in_batches
from .blacklists import filter_blacklisted
from .competitors import add_competitor
from .errors import AppNotFoundError, InvalidParamsError, UpstreamError
from .llm import KeywordAssistant
from .progress import Progress, reporting_errors
from .services import ITunesSearchService
from .toolkit import get_app_localization, localization_title, split_keyword_field

logger = logging.getLogger(__name__)

TOTAL_STEPS = 6
MIN_SIMILAR_APPS = 5
TITLE_SEARCH_RESULTS = 10
MIN_CURRENT_KEYWORDS = 5
GENERATED_SEARCH_KEYWORDS = 10
SEARCH_BATCH_SIZE = 5
SEARCH_BATCH_DELAY = 1.0
RESULTS_PER_KEYWORD = 15
MIN_REVIEWS = 5
TOP_COMPETITORS = 16


def _by_reviews(apps: list[dict]) -> list[dict]:
    return sorted(apps, key=lambda app: app.get("reviews") or 0, reverse=True)


def search_competitors_by_keywords(
    search_service, locale, keywords: list[str], progress=None, per_keyword: int = RESULTS_PER_KEYWORD
) -> list[dict]:
    """Top ``per_keyword`` results for each keyword, searched in throttled batches."""

    def search(keyword):
        return search_service.search_for_locale(locale, keyword, 100).apps[:per_keyword]

    results = run_in_batches(
        keywords,
        search,
        SEARCH_BATCH_SIZE,
        delay=SEARCH_BATCH_DELAY,
        before_batch=progress.check_cancelled if progress is not None else None,
    )
    return [app for apps in results for app in apps if app.get("id")]


def find_competitors(
    app_id: str,
    locale,
    short_description: str,
    writer=None,
    search_service: ITunesSearchService | None = None,
    assistant: KeywordAssistant | None = None,
) -> list:
    """
    Discover competitors for the app and track them.

    Emits ``start:``/``end:`` events for similarApps, titleSearch,
    generateKeywords, searchApps, filterAppsByReviews and
    filterAppsByFunction, then ``finalCompetitors`` with the tracked rows.

    Returns the tracked Competitor rows.
    """
    progress = Progress(writer, TOTAL_STEPS)
    search_service = search_service or ITunesSearchService()
    assistant = assistant or KeywordAssistant()

    with reporting_errors(progress, "Failed to find competitors"):
        localization = get_app_localization(app_id, locale)
        title = localization_title(localization)
        if not title:
            raise InvalidParamsError("App title not found")
        current_keywords = split_keyword_field(localization.keywords)
        candidates = {}

        # Similar apps.  Unreleased apps have no store page yet.
        progress.start("similarApps", "Fetching similar apps from App Store")
        try:
            similar_apps = search_service.get_similar_apps(app_id, locale)
        except (AppNotFoundError, UpstreamError) as e:
            logger.warning(f"No similar apps for {app_id} [{locale}]: {e}")
            similar_apps = []
        for app in similar_apps:
            if app.get("id"):
                candidates[app["id"]] = app
        progress.end("similarApps", similar_apps)

        # Our own title as a search term, when similar apps are scarce
        if len(candidates) < MIN_SIMILAR_APPS:
            progress.start("titleSearch", "Searching for competitors using app title")
            result = search_service.search_for_locale(locale, title, 100)
            others = [app for app in result.apps if app.get("id") and app["id"] != str(app_id)]
            for app in others[:TITLE_SEARCH_RESULTS]:
                candidates[app["id"]] = app
            progress.end("titleSearch", list(candidates.values()))
        else:
            progress.skip_step()

        # Current keywords, or generated ones if we have too few
        if len(current_keywords) >= MIN_CURRENT_KEYWORDS:
            search_terms = current_keywords
            progress.start(
                "searchApps",
                "Searching for additional competitor apps based on current keywords",
            )
        else:
            progress.start("generateKeywords", "Generating keywords for competitor search")
            generated = assistant.generate_aso_keywords(locale, title, short_description)
            search_terms = filter_blacklisted(locale, generated)[:GENERATED_SEARCH_KEYWORDS]
            progress.end("generateKeywords", search_terms)
            progress.start(
                "searchApps",
                "Searching for additional competitor apps based on generated keywords",
                advance=False,
            )
        keyword_results = search_competitors_by_keywords(search_service, locale, search_terms, progress)
        progress.end("searchApps", keyword_results)
        for app in keyword_results:
            if (app.get("reviews") or 0) > MIN_REVIEWS:
                candidates[app["id"]] = app
        candidates.pop(str(app_id), None)

        # Drop apps less popular than ours.  Unreleased apps keep everything.
        progress.start(
            "filterAppsByReviews",
            "Excluding competitor apps with fewer reviews than your app",
        )
        try:
            my_reviews = search_service.get_app(app_id, locale).get("reviews") or 0
            review_filtered = _by_reviews(
                [app for app in candidates.values() if (app.get("reviews") or 0) >= my_reviews]
            )
        except (AppNotFoundError, UpstreamError) as e:
            logger.warning(f"Skipping review filter for {app_id} [{locale}]: {e}")
            review_filtered = _by_reviews(list(candidates.values()))
        progress.end("filterAppsByReviews", review_filtered)

        progress.start("filterAppsByFunction", "Filtering apps based on your app description")
        function_filtered = _by_reviews(
            assistant.filter_apps(title, short_description, review_filtered)
        )
        progress.end("filterAppsByFunction", function_filtered)

        top = function_filtered[:TOP_COMPETITORS]
        saved = [add_competitor(app_id, locale, app) for app in top]
        logger.info(f"Tracked {len(saved)} competitors for {app_id} [{locale}]")
        progress.emit("finalCompetitors", data=[c.as_dict() for c in saved])

    return saved
