import django.db.models.deletion
from django.db import migrations, models

from keyword_hunt.locales import LOCALE_CHOICES

STORE_CHOICES = [("APPSTORE", "App Store"), ("GOOGLEPLAY", "Google Play")]
PLATFORM_CHOICES = [
    ("IOS", "iOS"),
    ("MAC_OS", "macOS"),
    ("TV_OS", "tvOS"),
    ("VISION_OS", "visionOS"),
    ("ANDROID", "Android"),
]
STATE_CHOICES = [
    ("PREPARE_FOR_SUBMISSION", "Prepare For Submission"),
    ("WAITING_FOR_REVIEW", "Waiting For Review"),
    ("IN_REVIEW", "In Review"),
    ("PENDING_DEVELOPER_RELEASE", "Pending Developer Release"),
    ("READY_FOR_SALE", "Ready For Sale"),
    ("READY_FOR_DISTRIBUTION", "Ready For Distribution"),
    ("REJECTED", "Rejected"),
    ("DEVELOPER_REJECTED", "Developer Rejected"),
    ("REMOVED_FROM_SALE", "Removed From Sale"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="App",
            fields=[
                ("id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("short_description", models.TextField(blank=True, default="")),
                ("store", models.CharField(choices=STORE_CHOICES, default="APPSTORE", max_length=16)),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, default="IOS", max_length=16)),
                ("primary_locale", models.CharField(choices=LOCALE_CHOICES, default="en-US", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["title"]},
        ),
        migrations.CreateModel(
            name="AppVersion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("version_string", models.CharField(max_length=32)),
                ("state", models.CharField(choices=STATE_CHOICES, max_length=32)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="versions",
                        to="keyword_hunt.app",
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="AppLocalization",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("locale", models.CharField(choices=LOCALE_CHOICES, max_length=16)),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                ("subtitle", models.CharField(blank=True, default="", max_length=255)),
                ("keywords", models.TextField(blank=True, default="")),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="localizations",
                        to="keyword_hunt.app",
                    ),
                ),
                (
                    "app_version",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="localizations",
                        to="keyword_hunt.appversion",
                    ),
                ),
            ],
            options={
                "ordering": ["-updated_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("app_version", "locale"), name="unique_localization_per_version"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Competitor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("locale", models.CharField(choices=LOCALE_CHOICES, max_length=16)),
                ("competitor_id", models.CharField(max_length=64)),
                ("store", models.CharField(choices=STORE_CHOICES, default="APPSTORE", max_length=16)),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                ("subtitle", models.CharField(blank=True, default="", max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("icon_url", models.URLField(blank=True, default="", max_length=500)),
                ("reviews", models.IntegerField(default=0)),
                ("guessed_keywords", models.JSONField(blank=True, null=True)),
                ("order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="competitors",
                        to="keyword_hunt.app",
                    ),
                ),
            ],
            options={
                "ordering": ["order"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("app", "locale", "competitor_id"), name="unique_competitor"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AsoKeyword",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("store", models.CharField(choices=STORE_CHOICES, max_length=16)),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=16)),
                ("locale", models.CharField(choices=LOCALE_CHOICES, max_length=16)),
                ("keyword", models.CharField(max_length=255)),
                ("traffic_score", models.FloatField(default=0)),
                ("difficulty_score", models.FloatField(default=0)),
                ("position", models.IntegerField(default=-1)),
                ("overall", models.FloatField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "app",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="aso_keywords",
                        to="keyword_hunt.app",
                    ),
                ),
            ],
            options={
                "ordering": ["-overall"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("app", "store", "platform", "locale", "keyword"),
                        name="unique_aso_keyword",
                    )
                ],
            },
        ),
    ]
