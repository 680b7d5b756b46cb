"""
Base model for MongoDB document models.

PyObjectId lets Pydantic v2 validate BSON ObjectIds and serialise them as
strings. MongoBaseModel maps the Mongo ``_id`` onto ``id`` and provides
to_mongo() / from_mongo() for moving between models and raw documents.
"""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema


class PyObjectId(ObjectId):
    """BSON ObjectId that Pydantic v2 knows how to validate and serialize."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def _validate(cls, v: Any) -> ObjectId:
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError(f"Invalid ObjectId: {v!r}")


class MongoBaseModel(BaseModel):
    """Base for document models; ``id`` is stored as ``_id``."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Return a dict ready for insertion; a None ``_id`` is dropped."""
        data = self.model_dump(by_alias=True, exclude_none=False)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["MongoBaseModel"]:
        """Build a model from a raw document; None passes through as None."""
        if data is None:
            return None
        return cls.model_validate(data)
