from django import forms

from .models import Platform, Store

STRATEGY_CHOICES = [
    ("tracked", "Tracked competitors"),
    ("search", "Similar apps and live search"),
]

CONTENT_TARGET_CHOICES = [
    ("title", "Title"),
    ("subtitle", "Subtitle"),
    ("description", "Description"),
    ("keywords", "Keywords"),
]


class ResearchForm(forms.Form):
    """Inputs shared by the streamed competitor research and keyword hunt."""

    short_description = forms.CharField(max_length=1000, strip=True)
    store = forms.ChoiceField(choices=Store.choices)
    platform = forms.ChoiceField(choices=Platform.choices)


class KeywordHuntForm(ResearchForm):
    strategy = forms.ChoiceField(choices=STRATEGY_CHOICES, required=False)


class CompetitorForm(forms.Form):
    """A store app summary to track as a competitor."""

    id = forms.CharField(max_length=64, strip=True)
    title = forms.CharField(max_length=255, required=False)
    description = forms.CharField(required=False)
    icon = forms.URLField(max_length=500, required=False, assume_scheme="https")
    reviews = forms.IntegerField(min_value=0, required=False)
    store = forms.ChoiceField(choices=Store.choices, required=False)

    def clean_store(self):
        return self.cleaned_data.get("store") or Store.APPSTORE


class CompetitorSearchForm(forms.Form):
    term = forms.CharField(max_length=200, strip=True)
    num = forms.IntegerField(min_value=1, max_value=200, required=False)

    def clean_num(self):
        return self.cleaned_data.get("num") or 10


class KeywordForm(forms.Form):
    keyword = forms.CharField(max_length=255, strip=True)
    store = forms.ChoiceField(choices=Store.choices)
    platform = forms.ChoiceField(choices=Platform.choices)

    def clean_keyword(self):
        return " ".join(self.cleaned_data["keyword"].split()).lower()


class OptimizationForm(forms.Form):
    """
    Listing content optimization request.

    ``aso_keywords`` and ``previous_result`` arrive as JSON and are checked
    in the view; everything else is plain text.
    """

    title = forms.CharField(max_length=255, strip=True)
    targets = forms.MultipleChoiceField(choices=CONTENT_TARGET_CHOICES)
    store = forms.ChoiceField(choices=Store.choices, required=False)
    subtitle = forms.CharField(max_length=255, required=False)
    keywords = forms.CharField(max_length=255, required=False)
    description = forms.CharField(required=False)
    description_outline = forms.CharField(required=False)
    user_feedback = forms.CharField(required=False)

    def clean_store(self):
        return self.cleaned_data.get("store") or Store.APPSTORE
