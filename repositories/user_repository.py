"""
Async MongoDB repository for the `users` collection.

User ids cross the service boundary as strings; an id that is not a valid
ObjectId resolves to "not found" rather than raising.
PyMongoError is raised as PersistenceError (503).
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import ConflictError, PersistenceError
from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"


class UserRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    @contextmanager
    def _db_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except DuplicateKeyError as e:
            raise ConflictError("Email or mobile number already registered") from e
        except PyMongoError as e:
            log.error(
                "user_repository_error",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceError("User store is unavailable") from e

    async def ensure_indexes(self) -> None:
        with self._db_errors("ensure_indexes"):
            await self._col.create_index([("email", ASCENDING)], unique=True)
            await self._col.create_index([("mobile_number", ASCENDING)], unique=True)

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        if not ObjectId.is_valid(user_id):
            return None
        with self._db_errors("find_by_id"):
            doc = await self._col.find_one({"_id": ObjectId(user_id)})
        return UserDoc.from_mongo(doc)

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        with self._db_errors("find_by_email"):
            doc = await self._col.find_one({"email": email.lower()})
        return UserDoc.from_mongo(doc)

    async def email_exists(self, email: str) -> bool:
        with self._db_errors("email_exists"):
            return await self._col.count_documents({"email": email.lower()}, limit=1) > 0

    async def mobile_exists(self, mobile_number: str) -> bool:
        with self._db_errors("mobile_exists"):
            return (
                await self._col.count_documents({"mobile_number": mobile_number}, limit=1)
                > 0
            )

    async def insert(self, user: UserDoc) -> UserDoc:
        now = datetime.now(timezone.utc)
        user = user.model_copy(
            update={"email": user.email.lower(), "created_at": now, "updated_at": now}
        )
        with self._db_errors("insert"):
            result = await self._col.insert_one(user.to_mongo())
        return user.model_copy(update={"id": result.inserted_id})

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        if not ObjectId.is_valid(user_id):
            return False
        with self._db_errors("update_password"):
            result = await self._col.update_one(
                {"_id": ObjectId(user_id)},
                {
                    "$set": {
                        "password_hash": password_hash,
                        "updated_at": datetime.now(timezone.utc),
                    }
                },
            )
        return result.matched_count > 0

    async def update_profile(
        self, user_id: str, fields: dict[str, Any]
    ) -> Optional[UserDoc]:
        if not ObjectId.is_valid(user_id):
            return None
        update = dict(fields)
        if "email" in update:
            update["email"] = update["email"].lower()
        update["updated_at"] = datetime.now(timezone.utc)
        with self._db_errors("update_profile"):
            doc = await self._col.find_one_and_update(
                {"_id": ObjectId(user_id)},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        return UserDoc.from_mongo(doc)
