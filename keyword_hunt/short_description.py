"""
The one-sentence app summary every keyword pipeline is seeded with.

Stored on ``App.short_description`` once generated; the model is only
asked when the app has none yet.
"""

import logging

from .errors import AppNotFoundError, ShortDescriptionError
from .llm import KeywordAssistant
from .models import PUBLIC_STATES, App, AppLocalization

logger = logging.getLogger(__name__)


def primary_localization(app: App) -> AppLocalization | None:
    """
    The primary-locale listing to summarize.

    A released version's text is preferred over a draft's; without a
    released version, the newest primary-locale localization is used.
    """
    localizations = AppLocalization.objects.filter(app=app, locale=app.primary_locale)
    released = (
        localizations.filter(app_version__state__in=PUBLIC_STATES)
        .order_by("-app_version__created_at")
        .first()
    )
    return released or localizations.order_by("-updated_at").first()


def get_short_description(app_id: str, assistant: KeywordAssistant | None = None) -> str:
    """Return the app's short description, generating and saving it if missing."""
    app = App.objects.filter(pk=app_id).first()
    if app is None:
        raise AppNotFoundError(f"App {app_id} not found")

    if app.short_description:
        return app.short_description

    localization = primary_localization(app)
    title = (localization.title if localization else "") or app.title
    description = localization.description if localization else ""

    assistant = assistant or KeywordAssistant()
    short_description = assistant.generate_short_description(title, description)
    if not short_description:
        raise ShortDescriptionError("Short description generation failed")

    app.short_description = short_description
    app.save(update_fields=["short_description", "updated_at"])
    logger.info(f"Generated short description for {app_id}")
    return short_description
