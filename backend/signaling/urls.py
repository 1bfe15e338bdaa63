# signaling/urls.py
#
# All URLs here are prefixed with /api/ (set in telecare/urls.py)

from django.urls import path
from . import views

urlpatterns = [
    path("ice-servers/", views.IceServersView.as_view()),
    path("status/",      views.StatusView.as_view()),
]
