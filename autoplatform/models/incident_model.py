from .base_model import BaseModel
from ..utils.helpers import utcnow


class Incident(BaseModel):
    collection_name = "incidents"

    def __init__(self, title, description, priority="medium", severity="medium", category="general",
                 location=None, vehicleId=None, tags=None, created_by=None, **kwargs):
        super().__init__(created_by=created_by, **kwargs)
        self.title = title
        self.description = description
        self.priority = priority
        self.severity = severity
        self.category = category
        self.location = location
        self.vehicleId = vehicleId
        self.tags = tags or []
        self.status = "open"
        self.assignedTo = None
        self.resolvedAt = None
        self.comments = []
        self.attachments = []
        self.history = [self.history_entry("created", created_by)]

    @staticmethod
    def history_entry(action, user_id, **details):
        entry = {"action": action, "userId": str(user_id) if user_id else None, "timestamp": utcnow()}
        if details:
            entry["details"] = details
        return entry
