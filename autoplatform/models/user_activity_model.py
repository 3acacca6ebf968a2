from .base_model import BaseModel
from ..utils.helpers import utcnow


class UserActivity(BaseModel):
    """
    A tracked user event (page_view, session_start, session_end, conversion,
    purchase, feature_use, ...).
    """
    collection_name = "user_activities"

    def __init__(self, userId, type, sessionId=None, page=None, feature=None, duration=None, amount=None,
                 metadata=None, userAgent=None, ipAddress=None, timestamp=None, **kwargs):
        super().__init__(**kwargs)
        self.userId = str(userId)
        self.type = type
        self.sessionId = sessionId
        self.page = page
        self.feature = feature
        self.duration = duration
        self.amount = amount
        self.metadata = metadata or {}
        self.userAgent = userAgent
        self.ipAddress = ipAddress
        self.timestamp = timestamp or utcnow()
