from .base_model import BaseModel


class MobileRelease(BaseModel):
    collection_name = "mobile_releases"

    def __init__(self, version, platform, buildNumber, releaseNotes="", minOsVersion=None, downloadUrl=None,
                 forceUpdate=False, **kwargs):
        super().__init__(**kwargs)
        self.version = version
        self.platform = platform
        self.buildNumber = buildNumber
        self.releaseNotes = releaseNotes
        self.minOsVersion = minOsVersion
        self.downloadUrl = downloadUrl
        self.forceUpdate = forceUpdate
        self.status = "draft"
        self.publishedAt = None


class PushNotification(BaseModel):
    """
    Outbound push campaign. `targetUsers` is a list of user ids or ["all"].
    """
    collection_name = "push_notifications"

    def __init__(self, title, body, type, targetUsers, data=None, scheduledFor=None, status="pending", **kwargs):
        super().__init__(**kwargs)
        self.title = title
        self.body = body
        self.type = type
        self.targetUsers = targetUsers
        self.data = data or {}
        self.scheduledFor = scheduledFor
        self.status = status
        self.sentAt = None
        self.stats = {"targetUsers": 0, "deviceTokens": 0, "inAppDelivered": 0, "pushAccepted": 0}


class FeatureFlag(BaseModel):
    collection_name = "feature_flags"

    def __init__(self, name, description="", status="disabled", rolloutPercentage=100, platform="all", **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.description = description
        self.status = status
        self.rolloutPercentage = rolloutPercentage
        self.platform = platform

    @classmethod
    def get_by_name(cls, name):
        return cls.get_collection().find_one({"name": name})
