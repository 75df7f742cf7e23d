"""
Building blocks shared by the keyword pipelines: loading the app's editable
localization, keyword extraction and caching, budget slicing, batched
scoring, and replacing a stored keyword set.
"""

import logging
import re
import time
import uuid
from contextlib import contextmanager

from django.core.cache import cache as default_cache
from django.db import transaction

from .batching import run_in_batches
from .competitors import cache_guessed_keywords
from .errors import AppNotFoundError, KeywordSetBusyError
from .models import (
    DRAFT_STATES,
    FIELD_LIMITS,
    PUBLIC_STATES,
    AppLocalization,
    AppVersion,
    AsoKeyword,
    Store,
)

logger = logging.getLogger(__name__)

KEYWORD_BUDGET = FIELD_LIMITS[Store.APPSTORE]["keywords"]
EXTRACTION_CACHE_TTL = 60 * 60 * 24 * 7  # 1 week
LOCK_TTL = 60 * 15

_KEYWORD_SEPARATORS = re.compile(r"[,、，]")


def split_keyword_field(text: str) -> list[str]:
    """Split a keywords field on ASCII, ideographic and full-width commas."""
    return [kw.strip() for kw in _KEYWORD_SEPARATORS.split(text or "") if kw.strip()]


def _keyword_text(item) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return item["keyword"]
    return item.keyword


def slice_keywords(keywords: list, max_characters: float, buffer: float = 0.1) -> list:
    """
    Longest prefix of ``keywords`` whose summed length fits the budget.

    The budget is ``max_characters * (1 + buffer)``; the buffer leaves room
    for keywords that scoring will later throw away.  Items may be strings,
    KeywordScores, or keyword dicts.
    """
    limit = max_characters + max_characters * buffer
    total = 0
    sliced = []
    for item in keywords:
        length = len(_keyword_text(item))
        if total + length > limit:
            break
        sliced.append(item)
        total += length
    return sliced


def total_characters(keywords: list) -> int:
    return sum(len(_keyword_text(k)) for k in keywords)


def sort_by_overall(scores: list) -> list:
    return sorted(scores, key=lambda s: s.overall or 0, reverse=True)


# --------------------------------------------------------------------------- #
# App state
# --------------------------------------------------------------------------- #


def get_app_localization(app_id: str, locale) -> AppLocalization:
    """The most recently edited localization of a draft (editable) version."""
    localization = (
        AppLocalization.objects.select_related("app", "app_version")
        .filter(app_id=app_id, locale=locale, app_version__state__in=DRAFT_STATES)
        .order_by("-updated_at")
        .first()
    )
    if localization is None:
        raise AppNotFoundError(f"App localization {app_id} {locale} not found")
    return localization


def localization_title(localization: AppLocalization) -> str:
    return localization.title or localization.app.title or ""


def has_public_version(app_id: str) -> bool:
    return AppVersion.objects.filter(app_id=app_id, state__in=PUBLIC_STATES).exists()


# --------------------------------------------------------------------------- #
# Extraction
# --------------------------------------------------------------------------- #


def extract_from_competitors(assistant, competitors, locale, batch_size: int = 10) -> tuple[list[str], dict[str, int]]:
    """
    Union of keywords guessed from each tracked competitor's listing.

    Competitors that already carry ``guessed_keywords`` are not sent to the
    model again; fresh results are stored back on the competitor.

    Returns the de-duplicated keywords (first-seen order) and how many
    competitors each keyword came from.
    """

    def extract(competitor):
        if competitor.guessed_keywords:
            return competitor.guessed_keywords, False
        keywords = assistant.extract_keywords(competitor.title, competitor.description, locale)
        return keywords, True

    def store(competitor, result):
        keywords, fresh = result
        if fresh:
            cache_guessed_keywords(competitor, keywords)

    results = run_in_batches(competitors, extract, batch_size, delay=0, on_result=store)

    usage = {}
    for keywords, _ in results:
        for kw in dict.fromkeys(keywords):
            usage[kw] = usage.get(kw, 0) + 1
    return list(usage), usage


def extract_keywords_cached(assistant, locale, platform, app: dict, cache=None) -> list[str]:
    """Keywords guessed from a store app summary, cached per locale/platform/app for a week."""
    cache = cache if cache is not None else default_cache
    key = f"keywords:{locale}:{platform}:{app.get('id', '')}"
    cached = cache.get(key)
    if cached is not None:
        return cached
    keywords = assistant.extract_keywords(app.get("title") or "", app.get("description") or "", locale)
    cache.set(key, keywords, EXTRACTION_CACHE_TTL)
    return keywords


# --------------------------------------------------------------------------- #
# Scoring
# --------------------------------------------------------------------------- #


def score_candidates(
    scorer,
    locale,
    keywords: list[str],
    app_id: str,
    progress=None,
    batch_size: int = 3,
    delay: float = 1.0,
    skip_delay_on_cache_hit: bool = False,
) -> list:
    """
    Score ``keywords`` in batches, emitting ``process:scoreKeyword`` for each.

    Returns KeywordScores in input order.
    """

    def report(keyword, score):
        if progress is not None:
            progress.emit("process:scoreKeyword", data=score, counted=False)

    def any_cache_miss(scores):
        return any(not s.cache_hit for s in scores)

    return run_in_batches(
        keywords,
        lambda kw: scorer.score_keyword(locale, kw, app_id),
        batch_size,
        delay=delay,
        on_result=report,
        throttle=any_cache_miss if skip_delay_on_cache_hit else None,
        before_batch=progress.check_cancelled if progress is not None else None,
    )


# --------------------------------------------------------------------------- #
# Persistence
# --------------------------------------------------------------------------- #


@contextmanager
def keyword_set_lock(app_id: str, store: str, platform: str, locale, wait: float = 0, cache=None):
    """
    Advisory lock for one (app, store, platform, locale) keyword set.

    Held for a whole scoring run so two runs never interleave their
    replace steps.  Raises KeywordSetBusyError if another run holds it for
    longer than ``wait`` seconds.
    """
    cache = cache if cache is not None else default_cache
    key = f"lock:aso-keywords:{app_id}:{store}:{platform}:{locale}"
    token = uuid.uuid4().hex
    deadline = time.monotonic() + wait
    while not cache.add(key, token, LOCK_TTL):
        if time.monotonic() >= deadline:
            raise KeywordSetBusyError(
                f"Keywords for {app_id} [{locale}] are already being scored. Try again later."
            )
        time.sleep(0.5)
    try:
        yield
    finally:
        if cache.get(key) == token:
            cache.delete(key)


def replace_keyword_set(app_id: str, store: str, platform: str, locale, scores: list) -> list[AsoKeyword]:
    """
    Make the stored keyword set for the tuple exactly ``scores``.

    Rows for keywords not in ``scores`` are deleted, the rest upserted with
    fresh score values, all in one transaction.  Returns the saved rows,
    best overall first.
    """
    tuple_filter = {"app_id": app_id, "store": store, "platform": platform, "locale": locale}
    keywords = [s.keyword for s in scores]
    with transaction.atomic():
        deleted, _ = AsoKeyword.objects.filter(**tuple_filter).exclude(keyword__in=keywords).delete()
        saved = []
        for score in scores:
            row, _ = AsoKeyword.objects.update_or_create(
                **tuple_filter,
                keyword=score.keyword,
                defaults={
                    "traffic_score": score.traffic_score,
                    "difficulty_score": score.difficulty_score,
                    "position": score.position,
                    "overall": score.overall,
                },
            )
            saved.append(row)
    logger.info(f"Saved {len(saved)} keywords for {app_id} [{locale}], removed {deleted}")
    return sorted(saved, key=lambda row: row.overall, reverse=True)
