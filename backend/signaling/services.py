"""
signaling/services.py

In-memory state behind the signalling relay:
  1. ConnectionRegistry – one Participant record per live WebSocket
  2. LobbyDirectory     – room id → patients waiting, in check-in order
  3. SignalingState     – owns one registry + one lobby, cleared on shutdown
  4. SignalingService   – applies join / check-in / disconnect transitions
                          and hands signalling messages to the router
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from . import events
from .router import SignalingRouter

logger = logging.getLogger(__name__)


ROLE_DOCTOR  = "doctor"
ROLE_PATIENT = "patient"
ROLE_UNKNOWN = "unknown"

ROLE_CHOICES = [
    (ROLE_DOCTOR,  "Doctor"),
    (ROLE_PATIENT, "Patient"),
    (ROLE_UNKNOWN, "Unknown"),
]


@dataclass
class Participant:
    id              : str
    channel_name    : str
    role            : str = ROLE_UNKNOWN
    room_id         : Optional[str] = None
    call_partner_id : Optional[str] = None
    display_name    : Optional[str] = None

    @property
    def is_doctor(self) -> bool:
        return self.role == ROLE_DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == ROLE_PATIENT


@dataclass(frozen=True)
class LobbyEntry:
    socket_id : str
    name      : str
    info      : Dict = field(default_factory=dict, compare=False)

    def as_dict(self) -> Dict:
        # name and socketId always win over client-supplied extras
        return {**self.info, "name": self.name, "socketId": self.socket_id}


# =============================================================================
# 1. CONNECTION REGISTRY
# =============================================================================

class ConnectionRegistry:
    """
    Live participants keyed by connection id.

    Every method tolerates an unknown id: disconnects and late messages race
    freely, so a missing record is a normal outcome, not an error.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._participants: Dict[str, Participant] = {}

    def __len__(self):
        with self._lock:
            return len(self._participants)

    def register(self, channel_name: str) -> str:
        participant_id = uuid.uuid4().hex
        with self._lock:
            self._participants[participant_id] = Participant(
                id=participant_id,
                channel_name=channel_name,
            )
        return participant_id

    def get(self, participant_id: str) -> Optional[Participant]:
        with self._lock:
            return self._participants.get(participant_id)

    def set_role(
        self,
        participant_id: str,
        role: str,
        room_id: Optional[str],
        display_name: Optional[str] = None,
    ) -> Optional[Participant]:
        with self._lock:
            participant = self._participants.get(participant_id)
            if participant is None:
                return None
            participant.role         = role
            participant.room_id      = room_id
            participant.display_name = display_name if role == ROLE_PATIENT else None
            return participant

    def remove(self, participant_id: str) -> Optional[Participant]:
        with self._lock:
            return self._participants.pop(participant_id, None)

    def pair(self, first_id: str, second_id: str) -> bool:
        """
        Link two participants as call partners.

        Any call either side was already part of is dropped first so that
        `call_partner_id` stays symmetric. Whether that is allowed, and who
        gets told, is the router's call.
        """
        if first_id == second_id:
            return False
        with self._lock:
            first  = self._participants.get(first_id)
            second = self._participants.get(second_id)
            if first is None or second is None:
                return False
            self._unlink(first)
            self._unlink(second)
            first.call_partner_id  = second_id
            second.call_partner_id = first_id
            return True

    def unpair(self, participant_id: str) -> Optional[str]:
        """Clear the call on both sides; returns the former partner id."""
        with self._lock:
            participant = self._participants.get(participant_id)
            if participant is None:
                return None
            return self._unlink(participant)

    def _unlink(self, participant: Participant) -> Optional[str]:
        partner_id = participant.call_partner_id
        participant.call_partner_id = None
        if partner_id is None:
            return None
        partner = self._participants.get(partner_id)
        if partner is not None and partner.call_partner_id == participant.id:
            partner.call_partner_id = None
        return partner_id

    def doctors_in(self, room_id: str) -> List[Participant]:
        with self._lock:
            return [
                p for p in self._participants.values()
                if p.is_doctor and p.room_id == room_id
            ]

    def all(self) -> List[Participant]:
        with self._lock:
            return list(self._participants.values())

    def clear(self) -> None:
        with self._lock:
            self._participants.clear()


# =============================================================================
# 2. LOBBY DIRECTORY
# =============================================================================

class LobbyDirectory:

    def __init__(self):
        self._lock = threading.RLock()
        self._lobbies: Dict[str, List[LobbyEntry]] = {}

    def ensure_room(self, room_id: str) -> None:
        with self._lock:
            self._lobbies.setdefault(room_id, [])

    def check_in(self, room_id: str, entry: LobbyEntry) -> None:
        """
        Append `entry` to the room's waiting list.

        Names are not unique; connection ids are. A second check-in from the
        same connection replaces its earlier entry and moves it to the back.
        """
        with self._lock:
            lobby = self._lobbies.setdefault(room_id, [])
            lobby[:] = [e for e in lobby if e.socket_id != entry.socket_id]
            lobby.append(entry)

    def snapshot(self, room_id: str) -> List[LobbyEntry]:
        with self._lock:
            return list(self._lobbies.get(room_id, ()))

    def remove(self, room_id: str, connection_id: str) -> bool:
        with self._lock:
            lobby = self._lobbies.get(room_id)
            if not lobby:
                return False
            remaining = [e for e in lobby if e.socket_id != connection_id]
            if len(remaining) == len(lobby):
                return False
            lobby[:] = remaining
            return True

    def rooms(self) -> Dict[str, int]:
        with self._lock:
            return {room_id: len(lobby) for room_id, lobby in self._lobbies.items()}

    def clear(self) -> None:
        with self._lock:
            self._lobbies.clear()


# =============================================================================
# 3. SIGNALING STATE
# =============================================================================

class SignalingState:
    """Process-wide registry + lobby. Built on app start, cleared on stop."""

    def __init__(self):
        self.registry = ConnectionRegistry()
        self.lobby    = LobbyDirectory()

    def clear(self) -> None:
        self.registry.clear()
        self.lobby.clear()
        logger.info("[State] registry and lobbies cleared")

    def summary(self) -> Dict:
        by_role: Dict[str, int] = {}
        for participant in self.registry.all():
            by_role[participant.role] = by_role.get(participant.role, 0) + 1

        return {
            "active"              : len(self.registry) > 0,
            "total_participants"  : len(self.registry),
            "participants_by_role": by_role,
            "lobbies"             : self.lobby.rooms(),
            "timestamp"           : datetime.now().isoformat(),
            "ws_endpoints"        : {
                "signaling": "/ws/signaling/",
            },
        }


# =============================================================================
# 4. SIGNALING SERVICE
# =============================================================================

class SignalingService:
    """
    Applies one inbound event to the shared state.

    `transport` is anything with an async `send(channel_name, event, data)`;
    the Channels consumer passes a channel-layer transport, tests pass a
    recorder.
    """

    def __init__(self, state: SignalingState, transport):
        self.state     = state
        self.registry  = state.registry
        self.lobby     = state.lobby
        self.transport = transport
        self.router    = SignalingRouter(self.registry, transport)

    def connect(self, channel_name: str) -> Participant:
        participant_id = self.registry.register(channel_name)
        logger.info("[Signal] participant=%s connected", participant_id)
        return self.registry.get(participant_id)

    # ── Role events ──────────────────────────────────────────────────────────

    async def doctor_join_room(self, participant_id: str, room_id: str) -> None:
        participant = self.registry.get(participant_id)
        if participant is None:
            return

        await self._withdraw_from_lobby(participant)
        self.registry.set_role(participant_id, ROLE_DOCTOR, room_id)
        self.lobby.ensure_room(room_id)
        logger.info("[Lobby] doctor=%s joined room=%s", participant_id, room_id)

        await self.transport.send(
            participant.channel_name,
            events.LOBBY_UPDATED,
            self._lobby_payload(room_id),
        )

    async def patient_check_in(
        self,
        participant_id: str,
        room_id: str,
        name: str,
        info: Optional[Dict] = None,
    ) -> None:
        """`info` carries any extra patientInfo fields through to the lobby entry."""
        participant = self.registry.get(participant_id)
        if participant is None:
            return

        if participant.room_id != room_id:
            await self._withdraw_from_lobby(participant)
        self.registry.set_role(participant_id, ROLE_PATIENT, room_id, display_name=name)
        self.lobby.check_in(
            room_id,
            LobbyEntry(socket_id=participant_id, name=name, info=dict(info or {})),
        )
        logger.info("[Lobby] patient %r (%s) waiting in room=%s", name, participant_id, room_id)

        await self.push_lobby(room_id)

    # ── Signalling ───────────────────────────────────────────────────────────

    async def offer(self, participant_id: str, to_patient_id: str, offer) -> bool:
        return await self.router.offer(participant_id, to_patient_id, offer)

    async def answer(self, participant_id: str, to_doctor_id: str, answer) -> bool:
        return await self.router.answer(participant_id, to_doctor_id, answer)

    async def candidate(self, participant_id: str, to_id: str, candidate) -> bool:
        return await self.router.candidate(participant_id, to_id, candidate)

    async def decline(self, participant_id: str, to_doctor_id: str) -> bool:
        return await self.router.decline(participant_id, to_doctor_id)

    async def hang_up(self, participant_id: str, to_id: str) -> bool:
        return await self.router.hang_up(participant_id, to_id)

    # ── Disconnect ───────────────────────────────────────────────────────────

    async def disconnect(self, participant_id: str) -> None:
        participant = self.registry.remove(participant_id)
        if participant is None:
            return
        logger.info("[Signal] participant=%s (%s) disconnected", participant_id, participant.role)

        await self._withdraw_from_lobby(participant)
        await self.router.end_call(participant)

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def push_lobby(self, room_id: str) -> None:
        payload = self._lobby_payload(room_id)
        for doctor in self.registry.doctors_in(room_id):
            await self.transport.send(doctor.channel_name, events.LOBBY_UPDATED, payload)

    async def _withdraw_from_lobby(self, participant: Participant) -> None:
        if not participant.is_patient or participant.room_id is None:
            return
        if self.lobby.remove(participant.room_id, participant.id):
            logger.info("[Lobby] patient=%s left room=%s", participant.id, participant.room_id)
            await self.push_lobby(participant.room_id)

    def _lobby_payload(self, room_id: str) -> List[Dict]:
        return [entry.as_dict() for entry in self.lobby.snapshot(room_id)]
