# autoplatform/models/base_model.py

from ..extensions.db import db
from ..utils.helpers import utcnow, to_object_id


class BaseModel:
    """
    A base class for models providing common CRUD operations.
    """
    collection_name = None

    def __init__(self, created_by=None, **kwargs):
        if created_by:
            self.createdBy = str(created_by)
        self.createdAt = utcnow()
        self.updatedAt = utcnow()

        # Initialize model attributes based on kwargs
        for key, value in kwargs.items():
            setattr(self, key, value)

    def to_dict(self):
        """
        Convert the model object to a dictionary representation.
        """
        return {key: getattr(self, key) for key in self.__dict__}

    def save(self):
        """
        Insert the document and return the created document with its _id.
        """
        document = self.to_dict()
        result = self.get_collection().insert_one(document)
        document["_id"] = result.inserted_id
        return document

    @classmethod
    def get_collection(cls):
        return db.get_collection(cls.collection_name)

    @classmethod
    def get_by_id(cls, record_id):
        """
        Retrieve a document by its id. Returns None for unknown or malformed ids.
        """
        object_id = to_object_id(record_id)
        if object_id is None:
            return None
        return cls.get_collection().find_one({"_id": object_id})

    @classmethod
    def update(cls, record_id, **updates):
        """
        $set the given fields and bump updatedAt. Returns the modified count.
        """
        object_id = to_object_id(record_id)
        if object_id is None:
            return 0
        updates["updatedAt"] = utcnow()
        result = cls.get_collection().update_one({"_id": object_id}, {"$set": updates})
        return result.modified_count

    @classmethod
    def delete(cls, record_id):
        object_id = to_object_id(record_id)
        if object_id is None:
            return 0
        return cls.get_collection().delete_one({"_id": object_id}).deleted_count
