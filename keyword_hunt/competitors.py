"""Tracked competitor list per app and locale."""

import logging

from django.db import transaction

from .errors import InvalidParamsError
from .models import Competitor, Store

logger = logging.getLogger(__name__)


def add_competitor(app_id: str, locale, competitor: dict, store: str = Store.APPSTORE) -> Competitor:
    """
    Track ``competitor`` (an app summary dict) for the app, or refresh it.

    Rows are unique per (app, locale, competitor id).  New rows start at
    order 0; existing rows keep their order and guessed keywords.
    """
    competitor_id = str(competitor.get("id") or "").strip()
    if not competitor_id:
        raise InvalidParamsError("Competitor must have an ID")

    row, created = Competitor.objects.update_or_create(
        app_id=app_id,
        locale=locale,
        competitor_id=competitor_id,
        defaults={
            "title": competitor.get("title") or "",
            "subtitle": "",
            "description": competitor.get("description") or "",
            "icon_url": competitor.get("icon") or "",
            "reviews": competitor.get("reviews") or 0,
        },
        create_defaults={
            "title": competitor.get("title") or "",
            "subtitle": "",
            "description": competitor.get("description") or "",
            "icon_url": competitor.get("icon") or "",
            "reviews": competitor.get("reviews") or 0,
            "store": store,
            "order": 0,
        },
    )
    if created:
        logger.info(f"Tracking competitor {competitor_id} for {app_id} [{locale}]")
    return row


def get_tracked_competitors(app_id: str, locale) -> list[Competitor]:
    return list(Competitor.objects.filter(app_id=app_id, locale=locale).order_by("order", "id"))


def update_competitors(app_id: str, locale, competitors: list[dict]) -> list[Competitor]:
    """
    Replace the tracked list with ``competitors``, in that order.

    Each entry is a competitor dict as returned by ``Competitor.as_dict``
    (``competitorId`` required; ``id`` is accepted as a fallback).
    """
    rows = []
    seen = set()
    with transaction.atomic():
        Competitor.objects.filter(app_id=app_id, locale=locale).delete()
        for index, competitor in enumerate(competitors):
            competitor_id = str(competitor.get("competitorId") or competitor.get("id") or "")
            if not competitor_id or competitor_id in seen:
                continue
            seen.add(competitor_id)
            rows.append(
                Competitor.objects.create(
                    app_id=app_id,
                    locale=locale,
                    competitor_id=competitor_id,
                    title=competitor.get("title") or "",
                    subtitle=competitor.get("subtitle") or "",
                    description=competitor.get("description") or "",
                    icon_url=competitor.get("iconUrl") or "",
                    reviews=competitor.get("reviews") or 0,
                    guessed_keywords=competitor.get("guessedKeywords") or None,
                    order=index,
                    store=competitor.get("store") or Store.APPSTORE,
                )
            )
    return rows


def remove_competitor(app_id: str, locale, pk) -> bool:
    """Delete one tracked competitor.  Returns False if it didn't exist."""
    deleted, _ = Competitor.objects.filter(pk=pk, app_id=app_id, locale=locale).delete()
    if not deleted:
        logger.warning(f"Competitor {pk} not found for {app_id} [{locale}]")
    return bool(deleted)


def cache_guessed_keywords(competitor: Competitor, keywords: list[str]):
    competitor.guessed_keywords = keywords
    competitor.save(update_fields=["guessed_keywords", "updated_at"])
