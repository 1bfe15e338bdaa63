"""
signaling/router.py

Point-to-point relay for WebRTC signalling. Payloads (offers, answers, ICE
candidates) are opaque and forwarded unchanged. Nothing is queued or retried:
a message for a participant that is no longer connected is dropped.
"""

import logging

from . import events

logger = logging.getLogger(__name__)


class SignalingRouter:

    def __init__(self, registry, transport):
        self.registry  = registry
        self.transport = transport

    async def forward(self, to_id, event, data=None) -> bool:
        target = self.registry.get(to_id) if to_id else None
        if target is None:
            logger.debug("[Signal] dropping %s for absent participant=%s", event, to_id)
            return False
        await self.transport.send(target.channel_name, event, data)
        return True

    # ── OFFER / ANSWER / ICE ─────────────────────────────────────────────────

    async def offer(self, from_id, to_patient_id, offer) -> bool:
        logger.info("[Signal] doctor=%s sending offer to patient=%s", from_id, to_patient_id)
        delivered = await self.forward(
            to_patient_id,
            events.CALL_INCOMING,
            {"fromDoctorId": from_id, "offer": offer},
        )
        # ringing pairs the two sides, but never at the expense of a live call
        if delivered and not (
            self._busy_elsewhere(from_id, to_patient_id)
            or self._busy_elsewhere(to_patient_id, from_id)
        ):
            self.registry.pair(from_id, to_patient_id)
        return delivered

    async def answer(self, from_id, to_doctor_id, answer) -> bool:
        logger.info("[Signal] patient=%s sending answer to doctor=%s", from_id, to_doctor_id)
        delivered = await self.forward(
            to_doctor_id,
            events.CALL_ANSWERED,
            {"fromPatientId": from_id, "answer": answer},
        )
        if not delivered:
            return False

        # answering commits to this call; whoever either side was paired with is told it ended
        displaced = [
            partner_id
            for partner_id in (
                self._busy_elsewhere(from_id, to_doctor_id),
                self._busy_elsewhere(to_doctor_id, from_id),
            )
            if partner_id
        ]
        if self.registry.pair(from_id, to_doctor_id):
            for partner_id in displaced:
                logger.info("[Signal] call with %s replaced, ending it", partner_id)
                await self.forward(partner_id, events.CALL_ENDED)
        return True

    async def candidate(self, from_id, to_id, candidate) -> bool:
        return await self.forward(
            to_id,
            events.RECEIVE_ICE_CANDIDATE,
            {"fromId": from_id, "candidate": candidate},
        )

    # ── DECLINE / HANG-UP ────────────────────────────────────────────────────

    async def decline(self, from_id, to_doctor_id) -> bool:
        logger.info("[Signal] patient=%s declined call from doctor=%s", from_id, to_doctor_id)
        self._clear_call(from_id, to_doctor_id)
        return await self.forward(to_doctor_id, events.CALL_DECLINED)

    async def hang_up(self, from_id, to_id) -> bool:
        logger.info("[Signal] hang up from %s to %s", from_id, to_id)
        self._clear_call(from_id, to_id)
        return await self.forward(to_id, events.CALL_ENDED)

    async def end_call(self, participant) -> bool:
        """
        Tell the partner of a departing participant that the call is over.

        `participant` has usually been removed from the registry already; a
        partner that no longer points back at it is left alone.
        """
        partner_id = participant.call_partner_id
        if partner_id is None:
            return False
        participant.call_partner_id = None

        partner = self.registry.get(partner_id)
        if partner is None or partner.call_partner_id != participant.id:
            return False
        self.registry.unpair(partner_id)

        logger.info("[Signal] call between %s and %s ended by disconnect", participant.id, partner_id)
        return await self.forward(partner_id, events.CALL_ENDED)

    def _busy_elsewhere(self, participant_id, other_id):
        """Partner id if `participant_id` is in a call with someone other than `other_id`."""
        participant = self.registry.get(participant_id)
        if participant is None or participant.call_partner_id in (None, other_id):
            return None
        return participant.call_partner_id

    def _clear_call(self, from_id, to_id):
        # only the call between these two; a stray hang-up leaves other calls alone
        sender = self.registry.get(from_id)
        if sender is not None and to_id and sender.call_partner_id == to_id:
            self.registry.unpair(from_id)
