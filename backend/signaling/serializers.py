# signaling/serializers.py
#
# Validation for inbound WebSocket payloads. Field names follow the browser
# client (camelCase). SDP offers/answers and ICE candidates are opaque JSON.

from rest_framework import serializers

ROOM_ID_MAX_LENGTH = 200
PEER_ID_MAX_LENGTH = 64


def _room_field():
    return serializers.CharField(max_length=ROOM_ID_MAX_LENGTH, trim_whitespace=False)


def _peer_field():
    return serializers.CharField(max_length=PEER_ID_MAX_LENGTH)


# =============================================================================
# ROLE EVENTS
# =============================================================================

class DoctorJoinRoomSerializer(serializers.Serializer):
    """Accepts the bare room id the client emits, or {"roomId": ...}."""
    roomId = _room_field()

    def to_internal_value(self, data):
        if isinstance(data, str):
            data = {"roomId": data}
        return super().to_internal_value(data)


class PatientInfoSerializer(serializers.Serializer):
    """`name` is required; any other keys are kept and shown in the lobby."""
    name = serializers.CharField(max_length=100)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        extra = {
            key: item for key, item in data.items()
            if key not in self.fields and key != "socketId"
        }
        return {**extra, **value}


class PatientCheckInSerializer(serializers.Serializer):
    doctorRoomId = _room_field()
    patientInfo  = PatientInfoSerializer()


# =============================================================================
# SIGNALLING
# =============================================================================

class OfferSerializer(serializers.Serializer):
    toPatientId = _peer_field()
    offer       = serializers.JSONField()


class AnswerSerializer(serializers.Serializer):
    toDoctorId = _peer_field()
    answer     = serializers.JSONField()


class IceCandidateSerializer(serializers.Serializer):
    toId      = _peer_field()
    # null marks end-of-candidates in some browsers; relay it too
    candidate = serializers.JSONField(allow_null=True)


class DeclineSerializer(serializers.Serializer):
    toDoctorId = _peer_field()


class HangUpSerializer(serializers.Serializer):
    toId = _peer_field()
