import pytest

from signaling.services import SignalingService, SignalingState


class RecordingTransport:
    """Collects what the service would have sent down each channel."""

    def __init__(self):
        self.sent = []

    async def send(self, channel_name, event, data=None):
        self.sent.append((channel_name, event, data))

    def to(self, channel_name):
        return [(event, data) for channel, event, data in self.sent if channel == channel_name]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def state():
    return SignalingState()


@pytest.fixture
def service(state, transport):
    return SignalingService(state, transport)
