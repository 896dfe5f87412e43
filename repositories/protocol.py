"""UserStore protocol. Services depend on this, not on the Mongo repository."""

from typing import Optional, Protocol

from schemas.models.user import UserDoc


class UserStore(Protocol):
    async def get_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def get_by_id(self, user_id: str) -> Optional[UserDoc]: ...

    async def set_totp_secret(self, user_id: str, secret: str) -> bool: ...

    async def clear_totp_secret(self, user_id: str) -> bool: ...
