from django.apps import AppConfig


class KeywordHuntConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "keyword_hunt"
    verbose_name = "ASO Keyword Hunt"
