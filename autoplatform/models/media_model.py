from .base_model import BaseModel


def get_file_type(mimetype):
    """Bucket a MIME type into image / video / audio / document / other."""
    mimetype = (mimetype or "").lower()
    if mimetype.startswith("image/"):
        return "image"
    if mimetype.startswith("video/"):
        return "video"
    if mimetype.startswith("audio/"):
        return "audio"
    if mimetype.startswith("text/") or mimetype in (
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ):
        return "document"
    return "other"


class MediaFile(BaseModel):
    """Metadata for a file stored in external object storage."""
    collection_name = "media_files"

    def __init__(self, filename, mimetype, size, url, uploadedBy, originalName=None, category="general",
                 description="", tags=None, **kwargs):
        super().__init__(**kwargs)
        self.filename = filename
        self.originalName = originalName or filename
        self.mimetype = mimetype
        self.size = int(size)
        self.url = url
        self.type = get_file_type(mimetype)
        self.category = category
        self.description = description
        self.tags = tags or []
        self.uploadedBy = str(uploadedBy)
        self.views = 0
        self.downloads = 0
