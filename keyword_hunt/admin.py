from django.contrib import admin

from .models import App, AppLocalization, AppVersion, AsoKeyword, Competitor


@admin.register(App)
class AppAdmin(admin.ModelAdmin):
    list_display = ("title", "id", "store", "platform", "primary_locale", "created_at")
    list_filter = ("store", "platform")
    search_fields = ("title", "id")


@admin.register(AppVersion)
class AppVersionAdmin(admin.ModelAdmin):
    list_display = ("app", "version_string", "state", "updated_at")
    list_filter = ("state",)


@admin.register(AppLocalization)
class AppLocalizationAdmin(admin.ModelAdmin):
    list_display = ("app", "locale", "title", "subtitle", "updated_at")
    list_filter = ("locale",)
    search_fields = ("title", "keywords")


@admin.register(Competitor)
class CompetitorAdmin(admin.ModelAdmin):
    list_display = ("title", "competitor_id", "app", "locale", "reviews", "order")
    list_filter = ("locale", "store")
    search_fields = ("title", "competitor_id")


@admin.register(AsoKeyword)
class AsoKeywordAdmin(admin.ModelAdmin):
    list_display = (
        "keyword",
        "app",
        "locale",
        "traffic_score",
        "difficulty_score",
        "position",
        "overall",
    )
    list_filter = ("store", "platform", "locale")
    search_fields = ("keyword",)
    readonly_fields = ("created_at", "updated_at")
