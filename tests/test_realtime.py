"""SSE broker fan-out, broadcast endpoints and the in-app inbox."""

import json

from autoplatform.services.event_broker import EventBroker, broker, format_sse

API = "/api/v1/realtime"


def test_format_sse_frame():
    frame = format_sse("order.created", {"id": 1}, event_id="abc")
    assert frame == 'id: abc\nevent: order.created\ndata: {"id": 1}\n\n'


def test_publish_targets_users_and_roles():
    events = EventBroker()
    alice = events.subscribe("alice", "user")
    boss = events.subscribe("bob", "manager")
    other = events.subscribe("carol", "user")

    assert events.publish("ping", {}, user_ids=["alice"], roles=["manager"]) == 2
    assert alice.queue.qsize() == 1
    assert boss.queue.qsize() == 1
    assert other.queue.empty()

    assert events.publish("ping", {}) == 3


def test_full_queue_drops_events():
    events = EventBroker(max_queue_size=1)
    subscriber = events.subscribe("alice", "user")
    assert events.publish("one", {}) == 1
    assert events.publish("two", {}) == 0
    assert subscriber.dropped == 1
    assert events.stats()["droppedEvents"] == 1


def test_unsubscribe():
    events = EventBroker()
    subscriber = events.subscribe("alice", "user")
    assert events.unsubscribe(subscriber.id) is True
    assert events.unsubscribe(subscriber.id) is False
    assert events.stats()["totalConnections"] == 0


def test_events_stream_requires_token(client):
    assert client.get(f"{API}/events").status_code == 401


def test_broadcast_reaches_subscribers(client, admin_headers):
    subscriber = broker.subscribe("driver-1", "user")
    res = client.post(f"{API}/broadcast", json={"event": "fleet.alert", "data": {"msg": "storm"},
                                                 "roles": ["user"]}, headers=admin_headers)
    assert res.get_json()["data"]["delivered"] == 1

    frame = subscriber.queue.get_nowait()
    assert "event: fleet.alert" in frame
    payload = json.loads(frame.split("data: ", 1)[1])
    assert payload["data"] == {"msg": "storm"}


def test_connections_stats(client, admin_headers, user_headers):
    broker.subscribe("driver-1", "user")
    assert client.get(f"{API}/connections", headers=user_headers).status_code == 403
    data = client.get(f"{API}/connections", headers=admin_headers).get_json()["data"]
    assert data["totalConnections"] == 1
    assert data["byRole"] == {"user": 1}


def test_register_and_unregister_device(client, user_headers):
    res = client.post(f"{API}/notifications/register-device", json={"token": "t-1"}, headers=user_headers)
    assert res.get_json()["error"] == "MISSING_DEVICE_INFO"

    res = client.post(f"{API}/notifications/register-device",
                      json={"token": "t-1", "deviceInfo": {"platform": "ios"}}, headers=user_headers)
    assert res.status_code == 200

    assert client.post(f"{API}/notifications/unregister-device", json={"token": "t-1"},
                       headers=user_headers).status_code == 200
    res = client.post(f"{API}/notifications/unregister-device", json={"token": "t-2"}, headers=user_headers)
    assert res.get_json()["error"] == "DEVICE_NOT_FOUND"
    res = client.post(f"{API}/notifications/unregister-device", json={}, headers=user_headers)
    assert res.get_json()["error"] == "MISSING_TOKEN"


def test_mark_read_rejects_bad_ids(client, user_headers):
    res = client.put(f"{API}/notifications/mark-read", json={"notificationIds": ["nope"]}, headers=user_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "INVALID_NOTIFICATION_IDS"


def test_mark_read_only_touches_own_inbox(app, client, make_user, auth_headers):
    from autoplatform.models.notification_model import Notification

    owner, stranger = make_user(), make_user()
    with app.app_context():
        note = Notification(userId=owner["_id"], title="Order shipped", message="On its way").save()

    res = client.put(f"{API}/notifications/mark-read", json={"notificationIds": [str(note["_id"])]},
                     headers=auth_headers(stranger))
    assert res.get_json()["data"]["modifiedCount"] == 0

    res = client.put(f"{API}/notifications/mark-read", json={"notificationIds": [str(note["_id"])]},
                     headers=auth_headers(owner))
    assert res.get_json()["data"]["modifiedCount"] == 1

    inbox = client.get(f"{API}/notifications", headers=auth_headers(owner)).get_json()["data"]
    assert inbox["unread"] == 0
    assert inbox["total"] == 1
