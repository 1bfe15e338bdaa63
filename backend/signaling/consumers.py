"""
signaling/consumers.py

Consumers:
  1. ChannelLayerTransport – delivers server events to one channel name
  2. SignalingConsumer     – doctor/patient lobby + WebRTC signalling  →  ws/signaling/
"""

import json
import logging

from channels.exceptions import ChannelFull
from channels.generic.websocket import AsyncWebsocketConsumer
from django.apps import apps
from rest_framework.exceptions import ValidationError

from . import events
from .exceptions import MalformedMessage, SignalingError, UnknownEvent
from .serializers import (
    AnswerSerializer,
    DeclineSerializer,
    DoctorJoinRoomSerializer,
    HangUpSerializer,
    IceCandidateSerializer,
    OfferSerializer,
    PatientCheckInSerializer,
)
from .services import SignalingService

logger = logging.getLogger(__name__)


# =============================================================================
# 1. ChannelLayerTransport
# =============================================================================

class ChannelLayerTransport:
    """Sends {"type": event, "data": data} to whichever consumer owns `channel_name`."""

    def __init__(self, channel_layer):
        self.channel_layer = channel_layer

    async def send(self, channel_name, event, data=None):
        try:
            await self.channel_layer.send(
                channel_name,
                {
                    "type" : "signal.event",
                    "event": event,
                    "data" : data,
                },
            )
        except ChannelFull:
            logger.warning("[Signal] channel %s full, dropped %s", channel_name, event)


# =============================================================================
# 2. SignalingConsumer
# =============================================================================

class SignalingConsumer(AsyncWebsocketConsumer):

    # event name → (payload serializer, handler)
    handlers = {
        events.DOCTOR_JOIN_ROOM  : (DoctorJoinRoomSerializer, "on_doctor_join_room"),
        events.PATIENT_CHECK_IN  : (PatientCheckInSerializer, "on_patient_check_in"),
        events.OFFER_TO_PATIENT  : (OfferSerializer,          "on_offer_to_patient"),
        events.ANSWER_TO_DOCTOR  : (AnswerSerializer,         "on_answer_to_doctor"),
        events.SEND_ICE_CANDIDATE: (IceCandidateSerializer,   "on_send_ice_candidate"),
        events.CALL_DECLINED     : (DeclineSerializer,        "on_call_declined"),
        events.HANG_UP           : (HangUpSerializer,         "on_hang_up"),
    }

    def get_state(self):
        return apps.get_app_config("signaling").state

    async def connect(self):
        self.service = SignalingService(
            self.get_state(),
            ChannelLayerTransport(self.channel_layer),
        )
        self.participant_id = self.service.connect(self.channel_name).id

        await self.accept()
        await self.emit(events.ASSIGNED, {"id": self.participant_id})

    async def disconnect(self, close_code):
        participant_id = getattr(self, "participant_id", None)
        if participant_id is None:
            return
        await self.service.disconnect(participant_id)
        logger.info("[Signal] participant=%s closed  code=%s", participant_id, close_code)

    async def receive(self, text_data=None, bytes_data=None):
        event = None
        try:
            event, payload = self.decode(text_data)
            await self.dispatch_event(event, payload)
        except SignalingError as exc:
            logger.info("[Signal] rejected %s from %s: %s", exc.event, self.participant_id, exc.message)
            await self.emit(events.ERROR, exc.as_payload())
        except Exception:
            logger.exception("[Signal] error handling %s from %s", event, self.participant_id)
            await self.emit(events.ERROR, {
                "event"  : event,
                "message": "Internal error while handling message",
                "errors" : {},
            })

    def decode(self, text_data):
        if text_data is None:
            raise MalformedMessage("Binary frames are not supported")
        try:
            message = json.loads(text_data)
        except json.JSONDecodeError:
            raise MalformedMessage("Message is not valid JSON")
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            raise MalformedMessage("Message must be an object with a string 'type'")
        return message["type"], message.get("data")

    async def dispatch_event(self, event, payload):
        if event not in self.handlers:
            raise UnknownEvent(f"Unknown event '{event}'", event=event)

        serializer_class, handler_name = self.handlers[event]
        serializer = serializer_class(data=payload)
        try:
            serializer.is_valid(raise_exception=True)
        except ValidationError as exc:
            raise MalformedMessage(f"Invalid payload for '{event}'", event=event, errors=exc.detail) from exc

        await getattr(self, handler_name)(serializer.validated_data)

    # ── Handlers ──────────────────────────────────────────────────────────────

    async def on_doctor_join_room(self, data):
        await self.service.doctor_join_room(self.participant_id, data["roomId"])

    async def on_patient_check_in(self, data):
        info = dict(data["patientInfo"])
        name = info.pop("name")
        await self.service.patient_check_in(
            self.participant_id,
            data["doctorRoomId"],
            name,
            info=info,
        )

    async def on_offer_to_patient(self, data):
        await self.service.offer(self.participant_id, data["toPatientId"], data["offer"])

    async def on_answer_to_doctor(self, data):
        await self.service.answer(self.participant_id, data["toDoctorId"], data["answer"])

    async def on_send_ice_candidate(self, data):
        await self.service.candidate(self.participant_id, data["toId"], data["candidate"])

    async def on_call_declined(self, data):
        await self.service.decline(self.participant_id, data["toDoctorId"])

    async def on_hang_up(self, data):
        await self.service.hang_up(self.participant_id, data["toId"])

    # ── Outbound ─────────────────────────────────────────────────────────────

    async def signal_event(self, event):
        await self.emit(event["event"], event.get("data"))

    async def emit(self, event, data=None):
        await self.send(text_data=json.dumps({"type": event, "data": data}))
