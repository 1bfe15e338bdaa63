import pytest
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.apps import apps

from signaling.routing import websocket_urlpatterns

pytestmark = pytest.mark.asyncio

application = URLRouter(websocket_urlpatterns)


@pytest.fixture(autouse=True)
async def clean_state():
    yield
    apps.get_app_config("signaling").state.clear()
    await get_channel_layer().flush()


async def open_client():
    communicator = WebsocketCommunicator(application, "/ws/signaling/")
    connected, _ = await communicator.connect()
    assert connected
    assigned = await communicator.receive_json_from()
    assert assigned["type"] == "assigned"
    return communicator, assigned["data"]["id"]


async def check_in(communicator, name, room_id="R1"):
    await communicator.send_json_to({
        "type": "patient-check-in",
        "data": {"doctorRoomId": room_id, "patientInfo": {"name": name}},
    })


async def test_full_call_between_doctor_and_patient():
    doctor, doctor_id = await open_client()
    await doctor.send_json_to({"type": "doctor-join-room", "data": "R1"})
    assert await doctor.receive_json_from() == {"type": "lobby-updated", "data": []}

    ann, ann_id = await open_client()
    await check_in(ann, "Ann")
    assert await doctor.receive_json_from() == {
        "type": "lobby-updated",
        "data": [{"name": "Ann", "socketId": ann_id}],
    }

    offer = {"type": "offer", "sdp": "v=0 doctor"}
    await doctor.send_json_to({"type": "offer-to-patient", "data": {"toPatientId": ann_id, "offer": offer}})
    assert await ann.receive_json_from() == {
        "type": "call-incoming-from-doctor",
        "data": {"fromDoctorId": doctor_id, "offer": offer},
    }

    answer = {"type": "answer", "sdp": "v=0 patient"}
    await ann.send_json_to({"type": "answer-to-doctor", "data": {"toDoctorId": doctor_id, "answer": answer}})
    assert await doctor.receive_json_from() == {
        "type": "call-answered-by-patient",
        "data": {"fromPatientId": ann_id, "answer": answer},
    }

    candidate = {"candidate": "candidate:1 1 udp 2122260223 10.0.0.2 50000 typ host"}
    await ann.send_json_to({"type": "send-ice-candidate", "data": {"toId": doctor_id, "candidate": candidate}})
    assert await doctor.receive_json_from() == {
        "type": "receive-ice-candidate",
        "data": {"fromId": ann_id, "candidate": candidate},
    }

    await doctor.send_json_to({"type": "hang-up", "data": {"toId": ann_id}})
    assert await ann.receive_json_from() == {"type": "call-ended", "data": None}
    assert await ann.receive_nothing()

    await ann.disconnect()
    await doctor.disconnect()


async def test_doctor_joining_late_sees_waiting_patients_in_order():
    ann, ann_id = await open_client()
    bob, bob_id = await open_client()
    await check_in(ann, "Ann")
    # separate sockets are handled concurrently; let Ann's check-in land first
    assert await ann.receive_nothing()
    await check_in(bob, "Bob")
    assert await bob.receive_nothing()

    doctor, _ = await open_client()
    await doctor.send_json_to({"type": "doctor-join-room", "data": {"roomId": "R1"}})
    assert await doctor.receive_json_from() == {
        "type": "lobby-updated",
        "data": [
            {"name": "Ann", "socketId": ann_id},
            {"name": "Bob", "socketId": bob_id},
        ],
    }

    for communicator in (ann, bob, doctor):
        await communicator.disconnect()


async def test_patient_disconnect_updates_doctor_once():
    doctor, _ = await open_client()
    await doctor.send_json_to({"type": "doctor-join-room", "data": "R1"})
    await doctor.receive_json_from()

    ann, _ = await open_client()
    bob, bob_id = await open_client()
    await check_in(ann, "Ann")
    await doctor.receive_json_from()
    await check_in(bob, "Bob")
    await doctor.receive_json_from()

    await ann.disconnect()

    assert await doctor.receive_json_from() == {
        "type": "lobby-updated",
        "data": [{"name": "Bob", "socketId": bob_id}],
    }
    assert await doctor.receive_nothing()

    await bob.disconnect()
    await doctor.disconnect()


async def test_partner_is_told_when_other_side_drops_mid_call():
    doctor, doctor_id = await open_client()
    await doctor.send_json_to({"type": "doctor-join-room", "data": "R1"})
    await doctor.receive_json_from()

    ann, ann_id = await open_client()
    await check_in(ann, "Ann")
    await doctor.receive_json_from()

    await doctor.send_json_to({"type": "offer-to-patient", "data": {"toPatientId": ann_id, "offer": {"sdp": "x"}}})
    await ann.receive_json_from()

    await doctor.disconnect()

    assert await ann.receive_json_from() == {"type": "call-ended", "data": None}
    await ann.disconnect()


async def test_decline_reaches_the_doctor():
    doctor, doctor_id = await open_client()
    ann, _ = await open_client()

    await ann.send_json_to({"type": "call-declined-by-patient", "data": {"toDoctorId": doctor_id}})

    assert await doctor.receive_json_from() == {"type": "call-declined-by-patient", "data": None}
    await ann.disconnect()
    await doctor.disconnect()


async def test_message_for_absent_participant_is_dropped_silently():
    doctor, _ = await open_client()

    await doctor.send_json_to({"type": "offer-to-patient", "data": {"toPatientId": "gone", "offer": {"sdp": "x"}}})
    await doctor.send_json_to({"type": "hang-up", "data": {"toId": "gone"}})

    assert await doctor.receive_nothing()
    await doctor.disconnect()


async def test_bad_frames_are_rejected_without_closing_the_socket():
    client, _ = await open_client()

    await client.send_to(text_data="{not json")
    reply = await client.receive_json_from()
    assert reply["type"] == "error"
    assert reply["data"]["event"] is None

    await client.send_json_to({"type": "launch-rockets"})
    reply = await client.receive_json_from()
    assert reply["type"] == "error"
    assert reply["data"]["event"] == "launch-rockets"

    await client.send_json_to({"type": "patient-check-in", "data": {"doctorRoomId": "R1"}})
    reply = await client.receive_json_from()
    assert reply["type"] == "error"
    assert reply["data"]["event"] == "patient-check-in"
    assert "patientInfo" in reply["data"]["errors"]

    await client.send_json_to({"type": "offer-to-patient", "data": {"toPatientId": "x"}})
    reply = await client.receive_json_from()
    assert "offer" in reply["data"]["errors"]

    await client.send_json_to({"type": "doctor-join-room", "data": "R9"})
    assert await client.receive_json_from() == {"type": "lobby-updated", "data": []}

    await client.disconnect()


async def test_extra_patient_info_reaches_the_doctor():
    doctor, _ = await open_client()
    await doctor.send_json_to({"type": "doctor-join-room", "data": "R1"})
    await doctor.receive_json_from()

    ann, ann_id = await open_client()
    await ann.send_json_to({
        "type": "patient-check-in",
        "data": {
            "doctorRoomId": "R1",
            "patientInfo": {"name": "Ann", "age": 34, "socketId": "spoofed"},
        },
    })

    assert await doctor.receive_json_from() == {
        "type": "lobby-updated",
        "data": [{"name": "Ann", "age": 34, "socketId": ann_id}],
    }

    await ann.disconnect()
    await doctor.disconnect()
