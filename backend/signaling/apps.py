# signaling/apps.py

from django.apps import AppConfig


class SignalingConfig(AppConfig):
    name = "signaling"

    def ready(self):
        from .services import SignalingState

        # One registry + lobby per process; see signaling.lifespan for shutdown.
        self.state = SignalingState()
