from django.urls import path

from . import api

app_name = "payments"

urlpatterns = [
    path("pilot/balance/", api.pilot_balance, name="pilot_balance"),
    path("pilot/history/", api.pilot_history, name="pilot_history"),
    path("pilot/onboarding/", api.pilot_start_onboarding, name="pilot_start_onboarding"),
]
