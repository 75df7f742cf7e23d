"""
Client for the public iTunes Search / Lookup APIs and the App Store web
listing, with result caching and retry on dropped connections.

No authentication required.  Every app is reduced to the same small summary
dict (see ``ITunesSearchService._parse_app``) so callers never depend on the
raw API payload.
"""

import json
import logging
import re
import time
from dataclasses import dataclass, field

import requests
from django.core.cache import cache as default_cache

from .errors import AppNotFoundError, UpstreamError
from .locales import get_country_code, get_language

logger = logging.getLogger(__name__)

SEARCH_CACHE_TTL = 60 * 60 * 24  # 1 day


@dataclass
class SearchResult:
    apps: list[dict] = field(default_factory=list)
    cache_hit: bool = False


# --------------------------------------------------------------------------- #
# iTunes Search Service
# --------------------------------------------------------------------------- #


class ITunesSearchService:
    """
    Searches the public iTunes Search API and resolves similar apps.

    Successful searches are cached for a day under a key built from the
    exact ``(country, language, term, num)`` tuple.  Connection resets are
    retried ``MAX_RETRIES`` times with a fixed delay; when retries run out
    the failure surfaces as an ``UpstreamError``.
    """

    SEARCH_URL = "https://itunes.apple.com/search"
    LOOKUP_URL = "https://itunes.apple.com/lookup"
    LISTING_URL = "https://apps.apple.com/{country}/app/id{app_id}"

    MAX_RETRIES = 3
    RETRY_DELAY = 1.0

    # "Customers also bought" ids embedded in the listing page data.
    _ALSO_BOUGHT_RE = re.compile(r'"customersAlsoBoughtApps"\s*:\s*(\[[^\]]*\])')

    def __init__(self, cache=None, session=None):
        self.cache = cache if cache is not None else default_cache
        self.session = session or requests.Session()

    def _get(self, url: str, **kwargs) -> requests.Response:
        """GET with retry on connection errors (ECONNRESET and friends)."""
        attempt = 0
        while True:
            try:
                response = self.session.get(url, timeout=30, **kwargs)
                return response
            except requests.exceptions.ConnectionError as e:
                attempt += 1
                if attempt > self.MAX_RETRIES:
                    logger.error(f"Giving up on {url} after {self.MAX_RETRIES} retries: {e}")
                    raise UpstreamError(f"App Store request failed: {e}")
                logger.warning(
                    f"Connection error on {url} (retry {attempt}/{self.MAX_RETRIES}): {e}"
                )
                time.sleep(self.RETRY_DELAY)

    @staticmethod
    def _results(response: requests.Response, what: str) -> list[dict]:
        """The ``results`` list of an iTunes API body.  A body that is not JSON is an UpstreamError."""
        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"iTunes {what} returned a malformed body: {e}")
            raise UpstreamError(f"App Store {what} returned an invalid response")
        if not isinstance(body, dict):
            raise UpstreamError(f"App Store {what} returned an invalid response")
        return body.get("results") or []

    @staticmethod
    def cache_key(country: str, language: str, term: str, num: int) -> str:
        return f"search:{country}:{language}:{term}:{num}"

    def search(self, country: str, language: str, term: str, num: int = 100) -> SearchResult:
        """
        Search for apps matching ``term`` in one storefront.

        Args:
            country: Two-letter storefront code.
            language: Language parameter (e.g. ``ja``, ``zh-CN``).
            term: The search term, used verbatim.
            num: Max results to return (iTunes caps this at 200).

        Returns:
            SearchResult with parsed apps and whether they came from cache.
        """
        key = self.cache_key(country, language, term, num)
        cached = self.cache.get(key)
        if cached is not None:
            return SearchResult(apps=cached, cache_hit=True)

        response = self._get(
            self.SEARCH_URL,
            params={
                "term": term,
                "country": country,
                "lang": language,
                "entity": "software",
                "limit": num,
            },
        )
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            logger.error(f"iTunes search failed for '{term}' ({country}): {e}")
            raise UpstreamError(f"App Store search failed: {e}")

        apps = [self._parse_app(r) for r in self._results(response, "search")]
        self.cache.set(key, apps, SEARCH_CACHE_TTL)
        return SearchResult(apps=apps, cache_hit=False)

    def search_for_locale(self, locale, term: str, num: int = 100) -> SearchResult:
        return self.search(
            get_country_code(locale),
            get_language(locale),
            term.strip().lower(),
            num,
        )

    def lookup(self, app_ids: list[str], locale) -> list[dict]:
        """Look up several apps at once by trackId, keeping the order of ``app_ids``."""
        if not app_ids:
            return []
        response = self._get(
            self.LOOKUP_URL,
            params={
                "id": ",".join(str(i) for i in app_ids),
                "country": get_country_code(locale),
                "lang": get_language(locale),
                "entity": "software",
            },
        )
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            logger.error(f"iTunes lookup failed for ids {app_ids}: {e}")
            raise UpstreamError(f"App Store lookup failed: {e}")

        by_id = {}
        for r in self._results(response, "lookup"):
            if r.get("wrapperType", "software") == "software" and r.get("trackId"):
                app = self._parse_app(r)
                by_id[app["id"]] = app
        return [by_id[str(i)] for i in app_ids if str(i) in by_id]

    def get_app(self, app_id: str, locale) -> dict:
        """
        Fetch the public listing of one app.

        Raises AppNotFoundError when the app has no public listing yet
        (typical for apps that were never released).
        """
        apps = self.lookup([app_id], locale)
        if not apps:
            raise AppNotFoundError(f"App {app_id} has no public App Store listing")
        return apps[0]

    def get_similar_apps(self, app_id: str, locale) -> list[dict]:
        """
        Apps listed under "You Might Also Like" on the app's store page.

        Raises AppNotFoundError when the store page does not exist.
        """
        country = get_country_code(locale)
        response = self._get(
            self.LISTING_URL.format(country=country, app_id=app_id),
            params={"l": get_language(locale)},
        )
        if response.status_code == 404:
            raise AppNotFoundError(f"App {app_id} has no App Store page in {country}")
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise UpstreamError(f"App Store page failed for {app_id}: {e}")

        ids = self.parse_similar_ids(response.text)
        ids = [i for i in ids if i != str(app_id)]
        logger.info(f"Found {len(ids)} similar apps for {app_id} ({country})")
        return self.lookup(ids, locale)

    @classmethod
    def parse_similar_ids(cls, html: str) -> list[str]:
        match = cls._ALSO_BOUGHT_RE.search(html)
        if not match:
            return []
        try:
            raw = json.loads(match.group(1))
        except ValueError:
            return []
        ids = []
        for item in raw:
            app_id = item.get("id") if isinstance(item, dict) else item
            if app_id and str(app_id) not in ids:
                ids.append(str(app_id))
        return ids

    @staticmethod
    def _parse_app(result: dict) -> dict:
        """Reduce an iTunes API result to the app summary used everywhere else."""
        return {
            "id": str(result.get("trackId", "")),
            "appId": result.get("bundleId", ""),
            "title": result.get("trackName", ""),
            "url": result.get("trackViewUrl", ""),
            "description": result.get("description", ""),
            "icon": result.get("artworkUrl512") or result.get("artworkUrl100", ""),
            "version": result.get("version", ""),
            "free": result.get("price", 0) == 0,
            "score": result.get("averageUserRating", 0) or 0,
            "reviews": result.get("userRatingCount", 0) or 0,
        }
