import json
import logging

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .competitors import add_competitor, get_tracked_competitors, remove_competitor, update_competitors
from .errors import AppNotFoundError, CompetitorNotFoundError, InvalidParamsError, handles_app_errors
from .find_competitors import find_competitors
from .forms import (
    CompetitorForm,
    CompetitorSearchForm,
    KeywordForm,
    KeywordHuntForm,
    OptimizationForm,
    ResearchForm,
)
from .locales import parse_locale
from .models import App, AsoKeyword
from .optimize import optimize_contents
from .progress import ProgressStream, streaming_response
from .scoring import KeywordScorer
from .select_keywords import select_and_score_keywords
from .services import ITunesSearchService
from .short_description import get_short_description
from .suggest import suggest_keywords
from .toolkit import get_app_localization

logger = logging.getLogger(__name__)

KEYWORD_PIPELINES = {
    "tracked": select_and_score_keywords,
    "search": suggest_keywords,
}


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _payload(request):
    """Request data from a JSON body, or the form-encoded POST."""
    if request.content_type != "application/json":
        return request.POST
    try:
        body = json.loads(request.body or b"{}")
    except ValueError:
        raise InvalidParamsError("Invalid JSON.")
    if not isinstance(body, dict):
        raise InvalidParamsError("Expected a JSON object.")
    return body


def _cleaned(form) -> dict:
    if not form.is_valid():
        field, errors = next(iter(form.errors.items()))
        raise InvalidParamsError(f"{field}: {errors[0]}")
    return form.cleaned_data


def _resolve(app_id: str, locale: str):
    """The App and LocaleCode named in the URL."""
    locale = parse_locale(locale)
    app = App.objects.filter(pk=app_id).first()
    if app is None:
        raise AppNotFoundError(f"App {app_id} not found")
    return app, locale


def _start_pipeline(request, app_id, locale, form_class):
    """
    Validate a research/hunt request and record its short description.

    Nothing is written unless the app, locale and an editable version all
    check out.
    """
    app, locale = _resolve(app_id, locale)
    data = _cleaned(form_class(_payload(request)))
    get_app_localization(app.pk, locale)
    if app.short_description != data["short_description"]:
        app.short_description = data["short_description"]
        app.save(update_fields=["short_description", "updated_at"])
    return app, locale, data


# --------------------------------------------------------------------------- #
# App
# --------------------------------------------------------------------------- #


@require_POST
@handles_app_errors
def short_description_view(request, app_id):
    """The app's one-sentence summary, generated on first request."""
    return JsonResponse({"shortDescription": get_short_description(app_id)})


# --------------------------------------------------------------------------- #
# Competitors
# --------------------------------------------------------------------------- #


@require_POST
@handles_app_errors
def research_competitors_view(request, app_id, locale):
    """Stream competitor discovery as NDJSON progress events."""
    app, locale, data = _start_pipeline(request, app_id, locale, ResearchForm)
    logger.info(f"Researching competitors for {app.pk} [{locale}]")
    return streaming_response(
        ProgressStream(find_competitors, app.pk, locale, data["short_description"])
    )


@require_http_methods(["GET", "POST"])
@handles_app_errors
def competitors_view(request, app_id, locale):
    """
    GET: tracked competitors, most reviewed first.
    POST: track one competitor (an app summary from search).
    """
    app, locale = _resolve(app_id, locale)

    if request.method == "GET":
        competitors = sorted(
            get_tracked_competitors(app.pk, locale), key=lambda c: c.reviews, reverse=True
        )
        return JsonResponse({"competitors": [c.as_dict() for c in competitors]})

    data = _cleaned(CompetitorForm(_payload(request)))
    competitor = add_competitor(app.pk, locale, data, store=data["store"])
    return JsonResponse({"success": True, "competitor": competitor.as_dict()})


@require_POST
@handles_app_errors
def competitors_reorder_view(request, app_id, locale):
    """
    Replace the tracked list, in the given order.

    POST body: {"competitors": [{"competitorId": ..., ...}, ...]}
    """
    app, locale = _resolve(app_id, locale)
    competitors = _payload(request).get("competitors")
    if not isinstance(competitors, list) or not all(isinstance(c, dict) for c in competitors):
        raise InvalidParamsError("competitors must be a list of objects")
    rows = update_competitors(app.pk, locale, competitors)
    return JsonResponse({"success": True, "competitors": [c.as_dict() for c in rows]})


@require_POST
@handles_app_errors
def competitor_delete_view(request, app_id, locale, pk):
    app, locale = _resolve(app_id, locale)
    if not remove_competitor(app.pk, locale, pk):
        raise CompetitorNotFoundError(f"Competitor {pk} not found")
    return JsonResponse({"success": True})


@require_GET
@handles_app_errors
def competitor_search_view(request, app_id, locale):
    """Search the store for apps to track.  Query: ?term=...&num=10"""
    app, locale = _resolve(app_id, locale)
    data = _cleaned(CompetitorSearchForm(request.GET))
    result = ITunesSearchService().search_for_locale(locale, data["term"], data["num"])
    apps = [a for a in result.apps if a.get("id") != str(app.pk)]
    return JsonResponse({"apps": apps})


# --------------------------------------------------------------------------- #
# Keywords
# --------------------------------------------------------------------------- #


@require_GET
@handles_app_errors
def keywords_view(request, app_id, locale):
    """Stored keyword set, best overall first.  Query: ?store=&platform="""
    app, locale = _resolve(app_id, locale)
    keywords = AsoKeyword.objects.filter(
        app=app,
        locale=locale,
        store=request.GET.get("store") or app.store,
        platform=request.GET.get("platform") or app.platform,
    ).order_by("-overall", "keyword")
    return JsonResponse({"keywords": [k.as_dict() for k in keywords]})


@require_POST
@handles_app_errors
def keyword_add_view(request, app_id, locale):
    """Score one keyword now and store it in the set."""
    app, locale = _resolve(app_id, locale)
    data = _cleaned(KeywordForm(_payload(request)))
    score = KeywordScorer().score_keyword(locale, data["keyword"], app.pk)
    keyword, _ = AsoKeyword.objects.update_or_create(
        app=app,
        store=data["store"],
        platform=data["platform"],
        locale=locale,
        keyword=score.keyword,
        defaults={
            "traffic_score": score.traffic_score,
            "difficulty_score": score.difficulty_score,
            "position": score.position,
            "overall": score.overall,
        },
    )
    return JsonResponse({"success": True, "keyword": keyword.as_dict()})


@require_POST
@handles_app_errors
def keyword_delete_view(request, app_id, locale, pk):
    """Delete a keyword from the set."""
    app, locale = _resolve(app_id, locale)
    keyword = get_object_or_404(AsoKeyword, pk=pk, app=app, locale=locale)
    keyword.delete()
    return JsonResponse({"success": True})


@require_POST
@handles_app_errors
def keyword_hunt_view(request, app_id, locale):
    """
    Stream a keyword hunt as NDJSON progress events.

    ``strategy`` picks the pipeline ("tracked" or "search"), falling back
    to ``settings.KEYWORD_HUNT_STRATEGY``.
    """
    app, locale, data = _start_pipeline(request, app_id, locale, KeywordHuntForm)
    strategy = data.get("strategy") or settings.KEYWORD_HUNT_STRATEGY
    pipeline = KEYWORD_PIPELINES.get(strategy)
    if pipeline is None:
        raise InvalidParamsError(f"Unknown keyword strategy: {strategy}")
    logger.info(f"Hunting keywords for {app.pk} [{locale}] with the {strategy} strategy")
    return streaming_response(
        ProgressStream(
            pipeline,
            app.pk,
            locale,
            data["short_description"],
            data["store"],
            data["platform"],
        )
    )


# --------------------------------------------------------------------------- #
# Listing contents
# --------------------------------------------------------------------------- #


@require_POST
@handles_app_errors
def optimization_view(request, app_id, locale):
    """
    Generate title/subtitle/description and pack the keywords field.

    POST body: {"title", "targets", "asoKeywords", "store", "subtitle",
    "keywords", "description", "descriptionOutline", "previousResult",
    "userFeedback"}
    """
    app, locale = _resolve(app_id, locale)
    payload = _payload(request)
    data = _cleaned(
        OptimizationForm(
            {
                "title": payload.get("title"),
                "targets": payload.get("targets"),
                "store": payload.get("store"),
                "subtitle": payload.get("subtitle"),
                "keywords": payload.get("keywords"),
                "description": payload.get("description"),
                "description_outline": payload.get("descriptionOutline"),
                "user_feedback": payload.get("userFeedback"),
            }
        )
    )
    aso_keywords = payload.get("asoKeywords")
    if not isinstance(aso_keywords, list) or not all(
        isinstance(k, dict) and k.get("keyword") for k in aso_keywords
    ):
        raise InvalidParamsError("asoKeywords must be a list of keyword objects")
    previous_result = payload.get("previousResult")
    if previous_result is not None and not isinstance(previous_result, dict):
        raise InvalidParamsError("previousResult must be an object")

    contents = optimize_contents(
        locale,
        data["title"],
        aso_keywords,
        data["targets"],
        subtitle=data["subtitle"] or None,
        current_keywords=data["keywords"] or None,
        description=data["description"] or None,
        description_outline=data["description_outline"] or None,
        previous_result=previous_result,
        user_feedback=data["user_feedback"] or None,
        store=data["store"],
    )
    return JsonResponse(contents)
