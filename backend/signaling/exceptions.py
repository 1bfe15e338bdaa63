# signaling/exceptions.py


class SignalingError(Exception):
    """Base class for errors raised while handling one inbound frame."""

    def __init__(self, message, event=None, errors=None):
        super().__init__(message)
        self.message = message
        self.event   = event
        self.errors  = errors or {}

    def as_payload(self):
        return {
            "event"  : self.event,
            "message": self.message,
            "errors" : self.errors,
        }


class MalformedMessage(SignalingError):
    """Frame is not a JSON object, or its payload failed validation."""


class UnknownEvent(SignalingError):
    """Frame carries a `type` no handler is registered for."""
