"""
telecare/settings.py
"""

import json
import os
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name, default=""):
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-change-me")

DEBUG = _env_bool("DJANGO_DEBUG", True)

ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "127.0.0.1,localhost")
INSTALLED_APPS = [
    "daphne",
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.staticfiles",
    "rest_framework",
    "corsheaders",
    "channels",
    "signaling",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "telecare.urls"

# ── CORS ──────────────────────────────────────────────────────────────────────
# Unset → allow every origin (browser clients are served from elsewhere).
CORS_ALLOWED_ORIGINS   = _env_list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_ALL_ORIGINS = not CORS_ALLOWED_ORIGINS

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

ASGI_APPLICATION = "telecare.asgi.application"

# ── Database ──────────────────────────────────────────────────────────────────
# Lobby and call state are in memory only; nothing is persisted.
DATABASES = {}

LANGUAGE_CODE = "en-us"
TIME_ZONE     = "UTC"
USE_I18N      = True
USE_TZ        = True

STATIC_URL = "static/"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Django Channels ───────────────────────────────────────────────────────────
# Registry state is per process, so the layer is too.
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer"
    }
}

# ── DRF ───────────────────────────────────────────────────────────────────────
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES"    : ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES"      : ["rest_framework.renderers.JSONRenderer"],
    "UNAUTHENTICATED_USER"          : None,
}

# ── ICE servers ───────────────────────────────────────────────────────────────
# JSON list of RTCIceServer dicts handed to browsers by /api/ice-servers/, e.g.
#   export ICE_SERVERS='[{"urls": "turn:turn.example.com:3478", "username": "u", "credential": "p"}]'
try:
    ICE_SERVERS = json.loads(os.getenv("ICE_SERVERS", "[]"))
except json.JSONDecodeError as exc:
    raise ImproperlyConfigured(f"ICE_SERVERS is not valid JSON: {exc}")
if not isinstance(ICE_SERVERS, list):
    raise ImproperlyConfigured("ICE_SERVERS must be a JSON list")

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class"    : "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "signaling": {
            "handlers" : ["console"],
            "level"    : LOG_LEVEL,
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console"],
        "level"   : "WARNING",
    },
}
