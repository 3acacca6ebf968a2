# rq jobs; run `rq worker notifications` plus `rqscheduler` for scheduled pushes
from dotenv import load_dotenv

from autoplatform import create_app
from autoplatform.models.mobile_model import PushNotification
from autoplatform.services.mobile_service import PushNotificationService
from autoplatform.utils.logger import Log

load_dotenv()

_app = None


def _get_app():
    global _app
    if _app is None:
        _app = create_app()
    return _app


def deliver_push_notification(notification_id):
    app = _get_app()
    with app.app_context():
        try:
            return PushNotificationService.deliver(
                notification_id,
                gateway_url=app.config.get("PUSH_GATEWAY_URL"),
                gateway_key=app.config.get("PUSH_GATEWAY_KEY"),
            )
        except Exception as e:
            Log.error(f"[tasks.py][deliver_push_notification][{notification_id}] {e}")
            PushNotification.update(notification_id, status="failed", failureReason=str(e))
            raise
