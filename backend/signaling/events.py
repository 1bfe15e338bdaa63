# signaling/events.py
#
# Event names on the wire. Every WebSocket frame is {"type": <name>, "data": <payload>}.

# ── Client → server ───────────────────────────────────────────────────────────
DOCTOR_JOIN_ROOM   = "doctor-join-room"
PATIENT_CHECK_IN   = "patient-check-in"
OFFER_TO_PATIENT   = "offer-to-patient"
ANSWER_TO_DOCTOR   = "answer-to-doctor"
SEND_ICE_CANDIDATE = "send-ice-candidate"
CALL_DECLINED      = "call-declined-by-patient"     # same name in both directions
HANG_UP            = "hang-up"

# ── Server → client ───────────────────────────────────────────────────────────
ASSIGNED              = "assigned"
LOBBY_UPDATED         = "lobby-updated"
CALL_INCOMING         = "call-incoming-from-doctor"
CALL_ANSWERED         = "call-answered-by-patient"
RECEIVE_ICE_CANDIDATE = "receive-ice-candidate"
CALL_ENDED            = "call-ended"
ERROR                 = "error"
