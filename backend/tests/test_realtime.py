"""
Realtime channel: WebSocket subscription plus publisher implementations.
"""
import asyncio
import logging

from fastapi.testclient import TestClient

from leaguehub.main import app
from leaguehub.routes.realtime import get_publisher, hub
from leaguehub.services.realtime import (
    NOTIFICATION_CREATED,
    TOURNAMENT_UPDATED,
    ConnectionHub,
    NullPublisher,
    RealtimeEvent,
    RecordingPublisher,
)


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(message)


def test_websocket_receives_tournament_events(client: TestClient):
    # Use the real hub instead of the recording publisher
    app.dependency_overrides.pop(get_publisher, None)
    tournament_id = client.post("/api/tournaments", json={"name": "Live Cup"}).json()["id"]

    with client.websocket_connect(f"/ws/tournaments/{tournament_id}") as websocket:
        joined = websocket.receive_json()
        assert joined["event"] == "joined"
        assert joined["tournament_id"] == tournament_id
        assert hub.subscriber_count(tournament_id) == 1

        response = client.post(f"/api/tournaments/{tournament_id}/notifications", json={"message": "Gates open"})
        assert response.status_code == 201

        first = websocket.receive_json()
        second = websocket.receive_json()

    assert first["event"] == NOTIFICATION_CREATED
    assert first["data"]["message"] == "Gates open"
    assert second["event"] == TOURNAMENT_UPDATED
    assert second["data"]["notifications"][0]["message"] == "Gates open"


def test_websocket_channels_are_per_tournament(client: TestClient):
    app.dependency_overrides.pop(get_publisher, None)
    watched = client.post("/api/tournaments", json={"name": "Watched"}).json()["id"]
    other = client.post("/api/tournaments", json={"name": "Other"}).json()["id"]

    with client.websocket_connect(f"/ws/tournaments/{watched}") as websocket:
        websocket.receive_json()
        client.post(f"/api/tournaments/{other}/teams", json={"name": "Elsewhere"})
        client.post(f"/api/tournaments/{watched}/teams", json={"name": "Here"})

        event = websocket.receive_json()

    assert event["event"] == TOURNAMENT_UPDATED
    assert event["tournament_id"] == watched
    assert [t["name"] for t in event["data"]["teams"]] == ["Here"]


def test_hub_fans_out_to_channel_subscribers():
    async def scenario():
        hub = ConnectionHub()
        a, b, elsewhere = FakeSocket(), FakeSocket(), FakeSocket()
        hub.subscribe(1, a)
        hub.subscribe(1, b)
        hub.subscribe(2, elsewhere)

        hub.publish(RealtimeEvent(name=TOURNAMENT_UPDATED, tournament_id=1, data={"id": 1}))
        for _ in range(3):
            await asyncio.sleep(0)
        return a, b, elsewhere

    a, b, elsewhere = asyncio.run(scenario())

    expected = {"event": TOURNAMENT_UPDATED, "tournament_id": 1, "data": {"id": 1}}
    assert a.sent == [expected]
    assert b.sent == [expected]
    assert elsewhere.sent == []


def test_hub_drops_failing_subscriber(caplog):
    async def scenario():
        hub = ConnectionHub()
        broken = FakeSocket(fail=True)
        hub.subscribe(7, broken)
        hub.publish(RealtimeEvent(name=TOURNAMENT_UPDATED, tournament_id=7))
        for _ in range(3):
            await asyncio.sleep(0)
        return hub.subscriber_count(7)

    with caplog.at_level(logging.WARNING, logger="leaguehub.services.realtime"):
        assert asyncio.run(scenario()) == 0

    assert "Dropping subscriber of tournament 7: connection reset" in caplog.text


def test_hub_unsubscribe():
    async def scenario():
        hub = ConnectionHub()
        socket = FakeSocket()
        hub.subscribe(3, socket)
        hub.unsubscribe(3, socket)
        hub.unsubscribe(3, socket)
        hub.publish(RealtimeEvent(name=TOURNAMENT_UPDATED, tournament_id=3))
        await asyncio.sleep(0)
        return hub.subscriber_count(3), socket.sent

    assert asyncio.run(scenario()) == (0, [])


def test_recording_and_null_publishers():
    recorder = RecordingPublisher()
    recorder.publish(RealtimeEvent(name=NOTIFICATION_CREATED, tournament_id=1))
    recorder.publish(RealtimeEvent(name=TOURNAMENT_UPDATED, tournament_id=1))

    assert recorder.names() == [NOTIFICATION_CREATED, TOURNAMENT_UPDATED]
    recorder.clear()
    assert recorder.events == []

    assert NullPublisher().publish(RealtimeEvent(name=TOURNAMENT_UPDATED, tournament_id=1)) is None
