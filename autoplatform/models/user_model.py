import bcrypt

from .base_model import BaseModel
from ..utils.helpers import utcnow, to_object_id

SENSITIVE_FIELDS = ("password",)


class User(BaseModel):
    """
    Platform account. Passwords are stored as bcrypt hashes.
    """
    collection_name = "users"

    def __init__(self, name, email, password, role="user", status="active", location=None, **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.email = email.strip().lower()
        self.password = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
        self.role = role
        self.status = status
        self.location = location or {}
        self.lastLoginAt = None

    @classmethod
    def get_by_email(cls, email):
        if not email:
            return None
        return cls.get_collection().find_one({"email": email.strip().lower()})

    @staticmethod
    def check_password(user, password):
        hashed = (user or {}).get("password")
        if not hashed or password is None:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))

    @classmethod
    def touch_last_login(cls, user_id):
        cls.get_collection().update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"lastLoginAt": utcnow()}},
        )

    @staticmethod
    def public(user):
        """Copy of the user document without credential fields."""
        if user is None:
            return None
        clean = {k: v for k, v in user.items() if k not in SENSITIVE_FIELDS}
        if "_id" in clean:
            clean["_id"] = str(clean["_id"])
        return clean
