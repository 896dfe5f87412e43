"""
User document model.

Maps to the `users` MongoDB collection, which is owned by the account
system. The auth service reads every field and writes only `totp_secret`.

A user has second-factor authentication enabled iff `totp_secret` is set.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoDocument


class UserDoc(MongoDocument):
    """
    Document model for the `users` collection.

    role values: customer, deluxe, accounting, admin
    """

    email: str
    password_hash: Optional[str] = None
    totp_secret: Optional[str] = None
    role: str = "customer"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def user_id(self) -> str:
        return str(self.id)

    @property
    def totp_enabled(self) -> bool:
        return bool(self.totp_secret)
