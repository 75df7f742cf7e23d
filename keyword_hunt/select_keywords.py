"""
Keyword selection from tracked competitors.

1. Guess keywords from each tracked competitor's listing (cached on the
   competitor row).
2. Let the model rerank the pool for our app and cut it to the keyword
   field budget.
3. Check the candidates are in the locale's language; if fewer than 80%
   are (or there are none), generate keywords from our own title and
   short description instead (one extra step, never repeated).
4. Score every candidate against live search results.
5. Replace the stored keyword set with the scores, best first.
"""

import logging

from .blacklists import filter_blacklisted
from .competitors import get_tracked_competitors
from .llm import KeywordAssistant
from .progress import Progress, reporting_errors
from .scoring import KeywordScorer
from .toolkit import (
    KEYWORD_BUDGET,
    extract_from_competitors,
    get_app_localization,
    keyword_set_lock,
    localization_title,
    replace_keyword_set,
    score_candidates,
    slice_keywords,
    sort_by_overall,
)

logger = logging.getLogger(__name__)

TOTAL_STEPS = 5
MAX_COMPETITORS = 20
EXTRACTION_BATCH_SIZE = 10
MIN_CANDIDATES = 16
LANGUAGE_PASS_RATE = 0.8
SCORING_HEADROOM = 1.5
SCORING_BATCH_SIZE = 3
SCORING_BATCH_DELAY = 1.0


def language_check_passed(candidates: list[str], in_language: list[str]) -> bool:
    return len(in_language) >= len(candidates) * LANGUAGE_PASS_RATE


def select_and_score_keywords(
    app_id: str,
    locale,
    short_description: str,
    store: str,
    platform: str,
    writer=None,
    scorer: KeywordScorer | None = None,
    assistant: KeywordAssistant | None = None,
) -> list:
    """
    Build and score the keyword set from tracked competitors.

    Returns the saved AsoKeyword rows, best overall first.
    """
    progress = Progress(writer, TOTAL_STEPS)
    scorer = scorer or KeywordScorer()
    assistant = assistant or KeywordAssistant()

    with reporting_errors(progress, "Failed to select keywords"), keyword_set_lock(
        app_id, store, platform, locale
    ):
        localization = get_app_localization(app_id, locale)
        title = localization_title(localization)

        progress.start("extractKeywordsFromCompetitors", "Guessing keywords from competitors")
        competitors = get_tracked_competitors(app_id, locale)[:MAX_COMPETITORS]
        pool, usage = extract_from_competitors(
            assistant, competitors, locale, batch_size=EXTRACTION_BATCH_SIZE
        )
        progress.end("extractKeywordsFromCompetitors", pool)

        progress.start("rerankKeywords", "Reranking keywords")
        reranked = assistant.rerank_keywords(title, short_description, locale, pool, usage)
        candidates = slice_keywords(reranked, KEYWORD_BUDGET)
        if len(candidates) < MIN_CANDIDATES:
            # Locales with short keywords fit few of them in the budget
            candidates = reranked[:MIN_CANDIDATES]
        progress.end("rerankKeywords", candidates)

        progress.start("reviewLanguage", "Checking if keywords use the target language")
        in_language = assistant.locale_sanity_check(locale, candidates)
        passed = language_check_passed(candidates, in_language)
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

        if not passed or not candidates:
            progress.add_step()
            progress.start(
                "generateAsoKeywords",
                "Generating ASO keywords by AI because the initial attempt did not yield enough keywords",
            )
            generated = assistant.generate_aso_keywords(locale, title, short_description)
            candidates = slice_keywords(filter_blacklisted(locale, generated), KEYWORD_BUDGET)
            progress.end("generateAsoKeywords", candidates)

        candidates = slice_keywords(candidates, KEYWORD_BUDGET * SCORING_HEADROOM)

        progress.start("scoreKeywords", "Scoring keywords")
        scores = score_candidates(
            scorer,
            locale,
            candidates,
            app_id,
            progress,
            batch_size=SCORING_BATCH_SIZE,
            delay=SCORING_BATCH_DELAY,
        )
        saved = replace_keyword_set(app_id, store, platform, locale, sort_by_overall(scores))
        saved_data = [row.as_dict() for row in saved]
        progress.end("scoreKeywords", saved_data)

        progress.skip_step()
        progress.emit("finalKeywords", data=saved_data)

    return saved
