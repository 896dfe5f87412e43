"""Email/password validation against the user store.

Unknown email, an account without a password, and a wrong password all
raise the same InvalidCredentialsError with the same message, so a caller
cannot probe which accounts exist.
"""

from __future__ import annotations

from errors import InvalidCredentialsError
from repositories.protocol import UserStore
from schemas.models.user import UserDoc
from shared.crypto import verify_password
from shared.logging import get_logger

log = get_logger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class PasswordAuthenticator:
    def __init__(self, users: UserStore) -> None:
        self._users = users

    async def validate(self, email: str, password: str) -> UserDoc:
        user = await self._users.get_by_email(normalize_email(email))
        if not user or not user.password_hash:
            # Do not reveal which part failed
            log.warning(
                "login_failed", reason="invalid_credentials", email_exists=bool(user)
            )
            raise InvalidCredentialsError()

        if not verify_password(password or "", user.password_hash):
            log.warning("login_failed", reason="invalid_password", user_id=user.user_id)
            raise InvalidCredentialsError()

        return user

    def reverify(self, user: UserDoc, password: str) -> None:
        """Re-check the password of an already authenticated user."""
        if not user.password_hash or not verify_password(
            password or "", user.password_hash
        ):
            log.warning("password_reverification_failed", user_id=user.user_id)
            raise InvalidCredentialsError()
