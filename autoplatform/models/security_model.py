from .base_model import BaseModel
from ..utils.helpers import utcnow


class Session(BaseModel):
    """
    One login. `jti` is the current access token id and `refreshJti` the
    refresh token id; the session lives until the refresh token expires.
    """
    collection_name = "sessions"

    def __init__(self, user_id, jti, access_expires_at, refresh_jti, refresh_expires_at, ip_address=None,
                 user_agent=None, device_id=None, **kwargs):
        super().__init__(**kwargs)
        self.userId = str(user_id)
        self.jti = jti
        self.accessExpiresAt = access_expires_at
        self.refreshJti = refresh_jti
        self.expiresAt = refresh_expires_at
        self.ipAddress = ip_address
        self.userAgent = user_agent
        self.deviceId = device_id
        self.lastActivity = utcnow()

    @classmethod
    def active_for_user(cls, user_id):
        return list(
            cls.get_collection()
            .find({"userId": str(user_id), "expiresAt": {"$gt": utcnow()}})
            .sort("createdAt", -1)
        )

    @classmethod
    def get_by_jti(cls, jti):
        return cls.get_collection().find_one({"jti": jti})

    @classmethod
    def get_by_refresh_jti(cls, refresh_jti):
        return cls.get_collection().find_one({"refreshJti": refresh_jti})

    @classmethod
    def rotate_access(cls, session_id, jti, access_expires_at):
        now = utcnow()
        return cls.get_collection().update_one(
            {"_id": session_id},
            {"$set": {"jti": jti, "accessExpiresAt": access_expires_at, "lastActivity": now, "updatedAt": now}},
        ).modified_count

    @classmethod
    def delete_by_jti(cls, jti):
        return cls.get_collection().delete_one({"jti": jti}).deleted_count


class UserDevice(BaseModel):
    collection_name = "user_devices"

    @classmethod
    def upsert(cls, user_id, device_id, device_name=None, platform=None, ip_address=None, user_agent=None):
        now = utcnow()
        cls.get_collection().update_one(
            {"userId": str(user_id), "deviceId": device_id},
            {
                "$set": {
                    "deviceName": device_name,
                    "platform": platform,
                    "ipAddress": ip_address,
                    "userAgent": user_agent,
                    "lastSeenAt": now,
                    "updatedAt": now,
                },
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
        )

    @classmethod
    def list_for_user(cls, user_id):
        return list(cls.get_collection().find({"userId": str(user_id)}).sort("lastSeenAt", -1))


class TwoFactorAuth(BaseModel):
    """
    TOTP enrolment. Backup codes are bcrypt hashes; each one is single-use.
    """
    collection_name = "two_factor_auth"

    @classmethod
    def get_for_user(cls, user_id):
        return cls.get_collection().find_one({"userId": str(user_id)})

    @classmethod
    def upsert_secret(cls, user_id, secret, hashed_backup_codes):
        now = utcnow()
        cls.get_collection().update_one(
            {"userId": str(user_id)},
            {
                "$set": {
                    "secret": secret,
                    "isEnabled": False,
                    "backupCodes": hashed_backup_codes,
                    "updatedAt": now,
                },
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
        )

    @classmethod
    def set_enabled(cls, user_id, enabled):
        now = utcnow()
        fields = {"isEnabled": enabled, "updatedAt": now}
        fields["enabledAt" if enabled else "disabledAt"] = now
        return cls.get_collection().update_one({"userId": str(user_id)}, {"$set": fields}).modified_count

    @classmethod
    def pull_backup_code(cls, user_id, hashed_code):
        """Remove one stored hash; False when another request already took it."""
        result = cls.get_collection().update_one(
            {"userId": str(user_id), "backupCodes": hashed_code},
            {"$pull": {"backupCodes": hashed_code}, "$set": {"updatedAt": utcnow()}},
        )
        return result.modified_count == 1
