# services/mobile_service.py
import hashlib

import requests

from ..extensions.db import db, redis_connection
from ..models.mobile_model import PushNotification
from ..models.notification_model import DeviceToken, Notification
from ..models.user_model import User
from ..utils.helpers import utcnow
from ..utils.logger import Log


def rollout_bucket(flag_name, user_id):
    """Stable 0-99 bucket for a user within a flag."""
    digest = hashlib.sha256(f"{flag_name}:{user_id}".encode("utf-8")).hexdigest()
    return int(digest, 16) % 100


def is_flag_enabled_for(flag, user_id):
    if not flag or flag.get("status") == "disabled":
        return False
    return rollout_bucket(flag["name"], user_id) < int(flag.get("rolloutPercentage", 0))


class PushNotificationService:

    @staticmethod
    def enqueue_delivery(notification_id):
        """Hand delivery to the rq worker (see tasks.deliver_push_notification)."""
        job = redis_connection.queue.enqueue("tasks.deliver_push_notification", str(notification_id))
        Log.info(f"[mobile_service.py][PushNotificationService][enqueue_delivery] job {job.id} for {notification_id}")
        return job.id

    @staticmethod
    def schedule_delivery(notification_id, run_at):
        """Queue delivery for `run_at` (naive UTC) through rq-scheduler."""
        job = redis_connection.scheduler.enqueue_at(run_at, "tasks.deliver_push_notification", str(notification_id))
        Log.info(f"[mobile_service.py][PushNotificationService][schedule_delivery] job {job.id} for {notification_id} "
                 f"at {run_at.isoformat()}")
        return job.id

    @staticmethod
    def resolve_recipients(target_users):
        if "all" in target_users:
            users = db.get_collection(User.collection_name).find({"status": "active"}, {"_id": 1})
            return [str(u["_id"]) for u in users]
        return [str(u) for u in target_users]

    @staticmethod
    def deliver(notification_id, gateway_url=None, gateway_key=None):
        """
        Write an inbox entry per recipient and, when a gateway is configured,
        post the push payload for their active device tokens.
        """
        log_tag = f"[mobile_service.py][PushNotificationService][deliver][{notification_id}]"
        push = PushNotification.get_by_id(notification_id)
        if push is None:
            Log.info(f"{log_tag} notification not found")
            return None
        if push.get("status") in ("sent", "cancelled"):
            return push.get("stats")

        recipients = PushNotificationService.resolve_recipients(push.get("targetUsers") or [])
        tokens = DeviceToken.active_tokens_for(recipients)

        inbox = [
            Notification(
                userId=user_id,
                title=push["title"],
                message=push["body"],
                type=push.get("type", "info"),
                data={**(push.get("data") or {}), "pushNotificationId": str(push["_id"])},
            ).to_dict()
            for user_id in recipients
        ]
        if inbox:
            db.get_collection(Notification.collection_name).insert_many(inbox)

        push_accepted = 0
        push_error = None
        if gateway_url and tokens:
            try:
                response = requests.post(
                    gateway_url,
                    json={
                        "tokens": tokens,
                        "title": push["title"],
                        "body": push["body"],
                        "data": push.get("data") or {},
                    },
                    headers={"Authorization": f"Bearer {gateway_key}"} if gateway_key else {},
                    timeout=15,
                )
                if response.status_code < 400:
                    push_accepted = len(tokens)
                else:
                    push_error = f"gateway status {response.status_code}"
            except requests.RequestException as e:
                push_error = str(e)
            if push_error:
                Log.error(f"{log_tag} push gateway error: {push_error}")

        stats = {
            "targetUsers": len(recipients),
            "deviceTokens": len(tokens),
            "inAppDelivered": len(inbox),
            "pushAccepted": push_accepted,
        }
        PushNotification.update(push["_id"], status="sent", sentAt=utcnow(), stats=stats, pushError=push_error)
        Log.info(f"{log_tag} delivered {stats}")
        return stats
