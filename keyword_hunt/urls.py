from django.urls import path

from . import views

app_name = "keyword_hunt"

prefix = "apps/<str:app_id>/localizations/<str:locale>/"

urlpatterns = [
    path("apps/<str:app_id>/short-description/", views.short_description_view, name="short_description"),
    path(prefix + "competitors/", views.competitors_view, name="competitors"),
    path(prefix + "competitors/research/", views.research_competitors_view, name="competitors_research"),
    path(prefix + "competitors/reorder/", views.competitors_reorder_view, name="competitors_reorder"),
    path(prefix + "competitors/search/", views.competitor_search_view, name="competitor_search"),
    path(prefix + "competitors/<int:pk>/delete/", views.competitor_delete_view, name="competitor_delete"),
    path(prefix + "keywords/", views.keywords_view, name="keywords"),
    path(prefix + "keywords/add/", views.keyword_add_view, name="keyword_add"),
    path(prefix + "keywords/hunt/", views.keyword_hunt_view, name="keyword_hunt"),
    path(prefix + "keywords/<int:pk>/delete/", views.keyword_delete_view, name="keyword_delete"),
    path(prefix + "optimization/", views.optimization_view, name="optimization"),
]
