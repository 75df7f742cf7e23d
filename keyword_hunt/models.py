from django.db import models

from .locales import LOCALE_CHOICES


class Store(models.TextChoices):
    APPSTORE = "APPSTORE", "App Store"
    GOOGLEPLAY = "GOOGLEPLAY", "Google Play"


class Platform(models.TextChoices):
    IOS = "IOS", "iOS"
    MAC_OS = "MAC_OS", "macOS"
    TV_OS = "TV_OS", "tvOS"
    VISION_OS = "VISION_OS", "visionOS"
    ANDROID = "ANDROID", "Android"


class VersionState(models.TextChoices):
    PREPARE_FOR_SUBMISSION = "PREPARE_FOR_SUBMISSION"
    WAITING_FOR_REVIEW = "WAITING_FOR_REVIEW"
    IN_REVIEW = "IN_REVIEW"
    PENDING_DEVELOPER_RELEASE = "PENDING_DEVELOPER_RELEASE"
    READY_FOR_SALE = "READY_FOR_SALE"
    READY_FOR_DISTRIBUTION = "READY_FOR_DISTRIBUTION"
    REJECTED = "REJECTED"
    DEVELOPER_REJECTED = "DEVELOPER_REJECTED"
    REMOVED_FROM_SALE = "REMOVED_FROM_SALE"


PUBLIC_STATES = (VersionState.READY_FOR_SALE, VersionState.READY_FOR_DISTRIBUTION)
DRAFT_STATES = (
    VersionState.PREPARE_FOR_SUBMISSION,
    VersionState.REJECTED,
    VersionState.DEVELOPER_REJECTED,
)


class App(models.Model):
    """An app imported from App Store Connect or Google Play, keyed by its store id."""

    id = models.CharField(max_length=64, primary_key=True)
    title = models.CharField(max_length=255)
    short_description = models.TextField(blank=True, default="")
    store = models.CharField(max_length=16, choices=Store.choices, default=Store.APPSTORE)
    platform = models.CharField(max_length=16, choices=Platform.choices, default=Platform.IOS)
    primary_locale = models.CharField(max_length=16, choices=LOCALE_CHOICES, default="en-US")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["title"]

    def __str__(self):
        return f"{self.title} ({self.id})"


class AppVersion(models.Model):
    app = models.ForeignKey(App, on_delete=models.CASCADE, related_name="versions")
    version_string = models.CharField(max_length=32)
    state = models.CharField(max_length=32, choices=VersionState.choices)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.app_id} {self.version_string} ({self.state})"

    @property
    def is_public(self) -> bool:
        return self.state in PUBLIC_STATES


class AppLocalization(models.Model):
    """Listing text for one version in one locale."""

    app = models.ForeignKey(App, on_delete=models.CASCADE, related_name="localizations")
    app_version = models.ForeignKey(
        AppVersion, on_delete=models.CASCADE, related_name="localizations"
    )
    locale = models.CharField(max_length=16, choices=LOCALE_CHOICES)
    title = models.CharField(max_length=255, blank=True, default="")
    subtitle = models.CharField(max_length=255, blank=True, default="")
    keywords = models.TextField(blank=True, default="")
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["app_version", "locale"], name="unique_localization_per_version"
            ),
        ]

    def __str__(self):
        return f"{self.app_id} [{self.locale}] {self.title}"


class Competitor(models.Model):
    """A rival app tracked for one of our apps in one locale."""

    app = models.ForeignKey(App, on_delete=models.CASCADE, related_name="competitors")
    locale = models.CharField(max_length=16, choices=LOCALE_CHOICES)
    competitor_id = models.CharField(max_length=64)
    store = models.CharField(max_length=16, choices=Store.choices, default=Store.APPSTORE)
    title = models.CharField(max_length=255, blank=True, default="")
    subtitle = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")
    icon_url = models.URLField(max_length=500, blank=True, default="")
    reviews = models.IntegerField(default=0)
    guessed_keywords = models.JSONField(null=True, blank=True)
    order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["order"]
        constraints = [
            models.UniqueConstraint(
                fields=["app", "locale", "competitor_id"], name="unique_competitor"
            ),
        ]

    def __str__(self):
        return f"{self.title} ({self.competitor_id})"

    def as_dict(self) -> dict:
        return {
            "id": self.pk,
            "appId": self.app_id,
            "locale": self.locale,
            "competitorId": self.competitor_id,
            "store": self.store,
            "title": self.title,
            "subtitle": self.subtitle,
            "description": self.description,
            "iconUrl": self.icon_url,
            "reviews": self.reviews,
            "guessedKeywords": self.guessed_keywords,
            "order": self.order,
        }


class AsoKeyword(models.Model):
    """A scored keyword for an app/store/platform/locale."""

    app = models.ForeignKey(App, on_delete=models.CASCADE, related_name="aso_keywords")
    store = models.CharField(max_length=16, choices=Store.choices)
    platform = models.CharField(max_length=16, choices=Platform.choices)
    locale = models.CharField(max_length=16, choices=LOCALE_CHOICES)
    keyword = models.CharField(max_length=255)
    traffic_score = models.FloatField(default=0)
    difficulty_score = models.FloatField(default=0)
    position = models.IntegerField(default=-1)
    overall = models.FloatField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-overall"]
        constraints = [
            models.UniqueConstraint(
                fields=["app", "store", "platform", "locale", "keyword"],
                name="unique_aso_keyword",
            ),
        ]

    def __str__(self):
        return f"{self.keyword} ({self.overall})"

    def as_dict(self) -> dict:
        return {
            "id": self.pk,
            "appId": self.app_id,
            "store": self.store,
            "platform": self.platform,
            "locale": self.locale,
            "keyword": self.keyword,
            "trafficScore": self.traffic_score,
            "difficultyScore": self.difficulty_score,
            "position": self.position,
            "overall": self.overall,
        }


# Character limits per listing field.  Google Play's "subtitle" is its short
# description.
FIELD_LIMITS = {
    Store.APPSTORE: {"title": 30, "subtitle": 30, "description": 4000, "keywords": 100},
    Store.GOOGLEPLAY: {"title": 30, "subtitle": 80, "description": 4000, "keywords": 100},
}
