# utils/database_setup.py
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ..extensions.db import db
from ..models.auto_parts_model import AutoPart, AutoPartOrder
from ..models.feedback_model import Feedback
from ..models.incident_model import Incident
from ..models.media_model import MediaFile
from ..models.mobile_model import FeatureFlag, MobileRelease, PushNotification
from ..models.notification_model import DeviceToken, Notification
from ..models.security_model import Session, TwoFactorAuth, UserDevice
from ..models.user_activity_model import UserActivity
from ..models.user_model import User
from ..utils.logger import Log

# (collection, keys, options)
INDEXES = [
    (User.collection_name, [("email", ASCENDING)], {"unique": True}),
    (User.collection_name, [("createdAt", DESCENDING)], {}),
    (User.collection_name, [("lastLoginAt", DESCENDING)], {}),
    (AutoPart.collection_name, [("partNumber", ASCENDING)], {"unique": True}),
    (AutoPart.collection_name, [("category", ASCENDING), ("brand", ASCENDING)], {}),
    (AutoPartOrder.collection_name, [("createdAt", DESCENDING)], {}),
    (AutoPartOrder.collection_name, [("status", ASCENDING), ("createdAt", DESCENDING)], {}),
    (AutoPartOrder.collection_name, [("createdBy", ASCENDING)], {}),
    (Incident.collection_name, [("status", ASCENDING), ("createdAt", DESCENDING)], {}),
    (Feedback.collection_name, [("userId", ASCENDING), ("createdAt", DESCENDING)], {}),
    (Feedback.collection_name, [("feedbackReference", ASCENDING)], {"unique": True}),
    (UserActivity.collection_name, [("timestamp", DESCENDING)], {}),
    (UserActivity.collection_name, [("userId", ASCENDING), ("timestamp", DESCENDING)], {}),
    (MediaFile.collection_name, [("uploadedBy", ASCENDING), ("createdAt", DESCENDING)], {}),
    (MobileRelease.collection_name, [("version", ASCENDING), ("platform", ASCENDING)], {"unique": True}),
    (PushNotification.collection_name, [("status", ASCENDING), ("scheduledFor", ASCENDING)], {}),
    (FeatureFlag.collection_name, [("name", ASCENDING)], {"unique": True}),
    (Notification.collection_name, [("userId", ASCENDING), ("createdAt", DESCENDING)], {}),
    (DeviceToken.collection_name, [("token", ASCENDING)], {"unique": True}),
    (Session.collection_name, [("jti", ASCENDING)], {"unique": True}),
    (Session.collection_name, [("refreshJti", ASCENDING)], {"unique": True}),
    (Session.collection_name, [("expiresAt", ASCENDING)], {"expireAfterSeconds": 0}),
    (UserDevice.collection_name, [("userId", ASCENDING), ("deviceId", ASCENDING)], {"unique": True}),
    (TwoFactorAuth.collection_name, [("userId", ASCENDING)], {"unique": True}),
]


def setup_database_indexes():
    """
    Create the indexes the API relies on. create_index is idempotent, so
    this runs on every start.
    """
    log_tag = "[database_setup.py][setup_database_indexes]"
    Log.info(f"{log_tag} Creating database indexes...")

    try:
        for collection_name, keys, options in INDEXES:
            db.get_collection(collection_name).create_index(keys, **options)
    except PyMongoError as e:
        Log.error(f"{log_tag} Error: {str(e)}")
        return False

    Log.info(f"{log_tag} {len(INDEXES)} indexes ensured")
    return True
