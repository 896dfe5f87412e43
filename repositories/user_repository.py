"""MongoDB implementation of UserStore over the `users` collection.

Reads map documents onto UserDoc. The only writes are to `totp_secret`;
each is a single-document update, so concurrent enrollments for one user
resolve as last-write-wins without leaving a partial record.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)


def _object_id(user_id: str) -> Optional[ObjectId]:
    if isinstance(user_id, ObjectId):
        return user_id
    if isinstance(user_id, str) and ObjectId.is_valid(user_id):
        return ObjectId(user_id)
    return None


class UserRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)

    async def get_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": email})
        return UserDoc.from_mongo(doc)

    async def get_by_id(self, user_id: str) -> Optional[UserDoc]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return UserDoc.from_mongo(doc)

    async def set_totp_secret(self, user_id: str, secret: str) -> bool:
        return await self._update(user_id, {"$set": {"totp_secret": secret}})

    async def clear_totp_secret(self, user_id: str) -> bool:
        return await self._update(user_id, {"$set": {"totp_secret": None}})

    async def _update(self, user_id: str, update: dict) -> bool:
        oid = _object_id(user_id)
        if oid is None:
            return False
        update.setdefault("$set", {})["updated_at"] = datetime.now(timezone.utc)
        result = await self._col.update_one({"_id": oid}, update)
        if result.matched_count == 0:
            log.warning("user_update_no_match", user_id=user_id)
        return result.matched_count > 0
