# signaling/views.py
#
# Small HTTP surface next to the WebSocket relay:
#   GET /api/ice-servers/  – extra STUN/TURN descriptors for RTCPeerConnection
#   GET /api/status/       – live participant + lobby counts

import logging

from django.apps import apps
from django.conf import settings

from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger(__name__)


# =============================================================================
# ICE SERVERS
# =============================================================================

class IceServersView(APIView):
    """
    Returns the configured ICE servers, or [] when none are set.
    Browsers still fall back to the public STUN servers baked into the client.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        ice_servers = list(getattr(settings, "ICE_SERVERS", []) or [])
        if not ice_servers:
            logger.debug("No ICE servers configured; returning empty list")
        return Response(ice_servers)


# =============================================================================
# STATUS
# =============================================================================

class StatusView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response(apps.get_app_config("signaling").state.summary())
