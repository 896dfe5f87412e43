"""
Shared pieces for models read from MongoDB.

The auth service never inserts documents; it reads account records written
by the account system and updates single fields in place. Models therefore
only need to come *out* of pymongo cleanly.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional, TypeVar

from bson import ObjectId
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    WithJsonSchema,
)


def _coerce_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid ObjectId: {value!r}")


# BSON ObjectId in Python, 24-char hex string in JSON
PyObjectId = Annotated[
    ObjectId,
    PlainValidator(_coerce_object_id),
    PlainSerializer(str, return_type=str, when_used="json-unless-none"),
    WithJsonSchema({"type": "string", "pattern": "^[0-9a-f]{24}$"}),
]

_DocT = TypeVar("_DocT", bound="MongoDocument")


class MongoDocument(BaseModel):
    """
    Base for document models.

    `_id` is exposed as `id`. Fields owned by other services are ignored on
    read, so new account attributes never break authentication.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    @classmethod
    def from_mongo(cls: type[_DocT], data: Optional[dict]) -> Optional[_DocT]:
        """Build a model from a raw pymongo document; None passes through."""
        if data is None:
            return None
        return cls.model_validate(data)
