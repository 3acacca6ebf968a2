import random
import time

from .base_model import BaseModel


class Feedback(BaseModel):
    collection_name = "feedback"

    def __init__(self, type, subject, message, userId, category=None, priority="medium", rating=None,
                 attachments=None, metadata=None, **kwargs):
        super().__init__(**kwargs)
        self.type = type
        self.subject = subject
        self.message = message
        self.category = category
        self.priority = priority
        self.rating = rating
        self.attachments = attachments or []
        self.metadata = metadata or {}
        self.userId = str(userId)
        self.status = "open"
        self.feedbackReference = self.generate_reference()
        self.assignedTo = None
        self.adminResponse = None
        self.responses = []

    @staticmethod
    def generate_reference():
        # Reference ids only need to be unique-ish and human readable
        return f"FB-{int(time.time() * 1000)}-{random.randint(0, 999):03d}"
