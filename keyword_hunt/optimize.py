"""
Listing content optimization.

The model writes the title, subtitle and description; every field it
writes is checked against the store's length bounds and regenerated (only
the failing fields) up to ``MAX_RETRIES`` times.  The keywords field is
never left to the model: it is packed from the scored keywords.
"""

import logging

from .errors import AsoDescriptionError, AsoSubtitleError, AsoTitleError
from .llm import KeywordAssistant
from .models import FIELD_LIMITS, Store

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
CONTENT_FIELDS = ("title", "subtitle", "description")

# Minimum share of the character cap a generated field has to use
MIN_FILL = {"title": 0.75, "subtitle": 0.6, "description": 0.75}

FIELD_ERRORS = {
    "title": AsoTitleError,
    "subtitle": AsoSubtitleError,
    "description": AsoDescriptionError,
}

STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in",
    "is", "it", "of", "on", "or", "that", "the", "this", "to", "with", "your",
}

MARKDOWN_MARKERS = ("**", "### ", "## ")


def field_bounds(field: str, store: str = Store.APPSTORE) -> tuple[int, int]:
    maximum = FIELD_LIMITS[Store(store)][field]
    return int(maximum * MIN_FILL[field]), maximum


def validate_contents(contents: dict, targets: list[str], store: str = Store.APPSTORE) -> dict[str, str]:
    """Map each failing target field to a message describing the violation."""
    errors = {}
    for field in targets:
        label = field.capitalize()
        value = contents.get(field)
        if not value:
            errors[field] = f"[{field.upper()}] is missing"
            continue
        minimum, maximum = field_bounds(field, store)
        length = len(value)
        if length > maximum:
            errors[field] = (
                f"{label} is too long. The max character count is {maximum}, "
                f"but it has {length} characters. Remove {length - maximum} characters."
            )
        elif length < minimum:
            errors[field] = (
                f"{label} is too short. The min character count is {minimum}, "
                f"but it has {length} characters. Add at least {minimum - length} characters."
            )
    return errors


def reconstitute_original_text(contents: dict) -> str:
    sections = []
    for field in CONTENT_FIELDS:
        if contents.get(field):
            sections.append(f"[{field.upper()}]\n{contents[field]}")
    return "\n\n".join(sections)


def build_feedback(errors: dict[str, str]) -> str:
    lines = "\n".join(f"- {message}" for message in errors.values())
    return (
        "Some of the fields don't meet the requirements:\n"
        f"{lines}\n"
        f"Regenerate only these fields: {', '.join(errors)}."
    )


def normalize_description(description: str) -> str:
    return description.replace("\\n", "\n")


def strip_markdown(description: str) -> str:
    for marker in MARKDOWN_MARKERS:
        description = description.replace(marker, "")
    return description


def _keyword_value(keyword, name):
    if isinstance(keyword, dict):
        return keyword.get(name)
    return getattr(keyword, name, None)


def _sort_position(keyword) -> float:
    position = _keyword_value(keyword, "position")
    if position is None or position <= 0:
        return float("inf")
    return position


def synthesize_keywords(keywords: list, title: str = "", subtitle: str = "", max_characters: int = 100) -> str:
    """
    Pack scored keywords into a comma-separated keywords field.

    Keywords already used in the title or subtitle, English stop words, and
    plurals whose singular is also a candidate are dropped.  The rest go in
    ranked-first order until the next one would not fit.
    """
    taken = f"{title or ''} {subtitle or ''}".lower()
    candidates = []
    seen = set()
    for keyword in keywords:
        text = (_keyword_value(keyword, "keyword") or "").strip()
        lowered = text.lower()
        if not text or lowered in seen or lowered in STOP_WORDS or lowered in taken:
            continue
        seen.add(lowered)
        candidates.append((text, keyword))

    singulars = {text.lower() for text, _ in candidates}
    candidates = [
        (text, keyword)
        for text, keyword in candidates
        if not (text.lower().endswith("s") and text.lower()[:-1] in singulars)
    ]
    candidates.sort(key=lambda item: _sort_position(item[1]))

    packed = []
    total = 0
    for text, _ in candidates:
        cost = len(text) + (1 if packed else 0)
        if total + cost > max_characters:
            break
        packed.append(text)
        total += cost
    return ",".join(packed)


def optimize_contents(
    locale,
    title: str,
    keywords: list[dict],
    targets: list[str],
    subtitle: str | None = None,
    current_keywords: str | None = None,
    description: str | None = None,
    description_outline: str | None = None,
    previous_result: dict | None = None,
    user_feedback: str | None = None,
    store: str = Store.APPSTORE,
    assistant: KeywordAssistant | None = None,
) -> dict:
    """
    Generate listing contents for ``targets`` and pack the keywords field.

    Fields not in ``targets`` keep their current values.  Returns
    ``{"title", "subtitle", "description", "keywords"}``.
    """
    assistant = assistant or KeywordAssistant()
    targets = [t for t in dict.fromkeys(targets) if t in CONTENT_FIELDS]
    contents = {"title": title, "subtitle": subtitle, "description": description}

    retry = None
    if previous_result and user_feedback:
        retry = {
            "prev": reconstitute_original_text(previous_result),
            "feedback": user_feedback,
        }

    generated = {}
    pending = targets
    attempts = 0
    while pending:
        result = assistant.generate_contents(
            locale,
            title,
            keywords,
            pending,
            subtitle=subtitle,
            current_description=description,
            description_outline=description_outline,
            retry=retry,
            store=store,
        )
        if result.get("description"):
            result["description"] = normalize_description(result["description"])
        for field in pending:
            if result.get(field):
                generated[field] = result[field]

        errors = validate_contents(generated, targets, store)
        if not errors or attempts >= MAX_RETRIES:
            break
        attempts += 1
        logger.info(f"Regenerating {', '.join(errors)} for {locale} (retry {attempts})")
        retry = {
            "prev": reconstitute_original_text(generated),
            "feedback": build_feedback(errors),
        }
        pending = list(errors)

    for field in targets:
        if not generated.get(field):
            raise FIELD_ERRORS[field](f"Failed to generate the {field}. Please try again.")
    errors = validate_contents(generated, targets, store)
    if errors:
        logger.warning(f"Returning contents with length issues for {locale}: {errors}")

    contents.update(generated)
    if contents.get("description"):
        contents["description"] = strip_markdown(contents["description"])

    budget = FIELD_LIMITS[Store(store)]["keywords"]
    packed = synthesize_keywords(keywords, contents["title"], contents["subtitle"], budget)
    contents["keywords"] = packed or current_keywords or ""
    return contents
