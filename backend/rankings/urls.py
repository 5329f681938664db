from django.urls import path

from . import api

app_name = "rankings"

urlpatterns = [
    path("leaderboard/", api.leaderboard_view, name="leaderboard"),
    path("me/", api.my_stats, name="me"),
]
