import json
import queue
import threading
import uuid

from ..utils.helpers import utcnow
from ..utils.logger import Log
from ..utils.serialization import to_jsonable


class Subscriber:
    def __init__(self, user_id, role, max_queue_size):
        self.id = uuid.uuid4().hex
        self.user_id = str(user_id) if user_id is not None else None
        self.role = role
        self.connected_at = utcnow()
        self.queue = queue.Queue(maxsize=max_queue_size)
        self.dropped = 0

    def offer(self, message):
        try:
            self.queue.put_nowait(message)
            return True
        except queue.Full:
            self.dropped += 1
            return False


def format_sse(event, data, event_id=None):
    """Render one Server-Sent-Events frame."""
    lines = []
    if event_id:
        lines.append(f"id: {event_id}")
    if event:
        lines.append(f"event: {event}")
    payload = json.dumps(to_jsonable(data))
    for line in payload.splitlines() or [""]:
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"


class EventBroker:
    """
    In-process registry of SSE subscribers. Each subscriber owns a bounded
    queue; publishing never blocks and a full queue drops the event.
    """

    def __init__(self, max_queue_size=100):
        self.max_queue_size = max_queue_size
        self._subscribers = {}
        self._lock = threading.Lock()

    def subscribe(self, user_id=None, role=None):
        subscriber = Subscriber(user_id, role, self.max_queue_size)
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
        Log.info(f"[event_broker.py][EventBroker][subscribe][user:{user_id}] subscriber {subscriber.id}")
        return subscriber

    def unsubscribe(self, subscriber_id):
        with self._lock:
            removed = self._subscribers.pop(subscriber_id, None)
        if removed:
            Log.info(f"[event_broker.py][EventBroker][unsubscribe][user:{removed.user_id}] subscriber {subscriber_id}")
        return removed is not None

    def publish(self, event, data, user_ids=None, roles=None):
        """
        Fan an event out to subscribers matching `user_ids` or `roles`
        (everyone when both are empty). Returns how many accepted it.
        """
        user_ids = {str(u) for u in user_ids} if user_ids else None
        roles = set(roles) if roles else None
        message = format_sse(event, {"event": event, "data": data, "timestamp": utcnow()}, uuid.uuid4().hex)

        with self._lock:
            targets = list(self._subscribers.values())

        delivered = 0
        for subscriber in targets:
            if user_ids is None and roles is None:
                wanted = True
            else:
                wanted = (user_ids is not None and subscriber.user_id in user_ids) or (
                    roles is not None and subscriber.role in roles
                )
            if wanted and subscriber.offer(message):
                delivered += 1
        return delivered

    def stats(self):
        with self._lock:
            subscribers = list(self._subscribers.values())
        by_role = {}
        for subscriber in subscribers:
            by_role[subscriber.role or "unknown"] = by_role.get(subscriber.role or "unknown", 0) + 1
        return {
            "totalConnections": len(subscribers),
            "uniqueUsers": len({s.user_id for s in subscribers if s.user_id}),
            "byRole": by_role,
            "droppedEvents": sum(s.dropped for s in subscribers),
        }


broker = EventBroker()
