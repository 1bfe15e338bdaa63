"""
telecare/asgi.py
"""

import os

from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "telecare.settings")

# Initialise Django before importing anything that touches the app registry.
django_asgi_app = get_asgi_application()

import signaling.routing  # noqa: E402
from signaling.lifespan import SignalingLifespan  # noqa: E402

application = ProtocolTypeRouter({
    "http"     : django_asgi_app,
    "websocket": URLRouter(
        signaling.routing.websocket_urlpatterns
    ),
    "lifespan" : SignalingLifespan(),
})
