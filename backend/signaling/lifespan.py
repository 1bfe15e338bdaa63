"""
signaling/lifespan.py

ASGI lifespan handler. Servers that speak the lifespan protocol (uvicorn,
hypercorn) call it on start and stop; Daphne does not, in which case the
state simply lives until the process exits.
"""

import logging

from django.apps import apps

logger = logging.getLogger(__name__)


class SignalingLifespan:

    async def __call__(self, scope, receive, send):
        config = apps.get_app_config("signaling")
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("[State] signalling service starting")
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                config.state.clear()
                await send({"type": "lifespan.shutdown.complete"})
                return
