from .base_model import BaseModel
from ..utils.helpers import utcnow


class Notification(BaseModel):
    """In-app inbox entry for a single user."""
    collection_name = "notifications"

    def __init__(self, userId, title, message, type="info", data=None, **kwargs):
        super().__init__(**kwargs)
        self.userId = str(userId)
        self.title = title
        self.message = message
        self.type = type
        self.data = data or {}
        self.status = "unread"
        self.readAt = None


class DeviceToken(BaseModel):
    """Push token registered by a mobile client."""
    collection_name = "device_tokens"

    @classmethod
    def register(cls, user_id, token, device_info):
        now = utcnow()
        cls.get_collection().update_one(
            {"token": token},
            {
                "$set": {
                    "userId": str(user_id),
                    "deviceInfo": device_info,
                    "isActive": True,
                    "updatedAt": now,
                },
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
        )

    @classmethod
    def unregister(cls, user_id, token):
        result = cls.get_collection().update_one(
            {"token": token, "userId": str(user_id)},
            {"$set": {"isActive": False, "updatedAt": utcnow()}},
        )
        return result.matched_count

    @classmethod
    def active_tokens_for(cls, user_ids=None):
        query = {"isActive": True}
        if user_ids is not None:
            query["userId"] = {"$in": [str(u) for u in user_ids]}
        return [doc["token"] for doc in cls.get_collection().find(query, {"token": 1})]
