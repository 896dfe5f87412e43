"""
Shared test fixtures.

Provides an in-memory UserStore, ready-made services wired to it, and a
few seeded accounts. No network or database connections are made.
"""

from __future__ import annotations

from typing import Optional

import pytest
from bson import ObjectId

from config import JWTSettings
from schemas.models.user import UserDoc
from services.enrollment_coordinator import EnrollmentCoordinator
from services.password_authenticator import PasswordAuthenticator
from services.second_factor_coordinator import SecondFactorCoordinator
from services.token_service import TokenService
from services.totp_provider import TotpProvider
from shared.crypto import hash_password
from tests.accounts import (
    JIM_EMAIL,
    JIM_PASSWORD,
    OTHER_TOTP_EMAIL,
    OTHER_TOTP_PASSWORD,
    OTHER_TOTP_SECRET,
    TEST_JWT_SECRET,
    TOTP_USER_EMAIL,
    TOTP_USER_PASSWORD,
    TOTP_USER_SECRET,
)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class InMemoryUserStore:
    """UserStore backed by a dict, keyed by user id string."""

    def __init__(self) -> None:
        self.users: dict[str, UserDoc] = {}
        self.writes: list[tuple[str, Optional[str]]] = []

    def add(
        self,
        email: str,
        password: Optional[str],
        totp_secret: Optional[str] = None,
        role: str = "customer",
    ) -> UserDoc:
        user = UserDoc(
            _id=ObjectId(),
            email=email,
            password_hash=hash_password(password) if password else None,
            totp_secret=totp_secret,
            role=role,
        )
        self.users[user.user_id] = user
        return user

    async def get_by_email(self, email: str) -> Optional[UserDoc]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    async def get_by_id(self, user_id: str) -> Optional[UserDoc]:
        return self.users.get(str(user_id))

    async def set_totp_secret(self, user_id: str, secret: str) -> bool:
        return self._write(user_id, secret)

    async def clear_totp_secret(self, user_id: str) -> bool:
        return self._write(user_id, None)

    def _write(self, user_id: str, secret: Optional[str]) -> bool:
        user = self.users.get(str(user_id))
        if user is None:
            return False
        self.users[user.user_id] = user.model_copy(update={"totp_secret": secret})
        self.writes.append((user.user_id, secret))
        return True


@pytest.fixture
def jwt_settings(monkeypatch) -> JWTSettings:
    for var in ("JWT_PRIVATE_KEY", "JWT_PUBLIC_KEY", "JWT_KEY_ID"):
        monkeypatch.delenv(var, raising=False)
    return JWTSettings(jwt_secret=TEST_JWT_SECRET)


@pytest.fixture
def token_service(jwt_settings) -> TokenService:
    return TokenService(jwt_settings)


@pytest.fixture
def totp_provider() -> TotpProvider:
    return TotpProvider(issuer="auth-core-test")


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def jim(user_store) -> UserDoc:
    return user_store.add(JIM_EMAIL, JIM_PASSWORD)


@pytest.fixture
def totp_user(user_store) -> UserDoc:
    return user_store.add(TOTP_USER_EMAIL, TOTP_USER_PASSWORD, TOTP_USER_SECRET)


@pytest.fixture
def other_totp_user(user_store) -> UserDoc:
    return user_store.add(
        OTHER_TOTP_EMAIL, OTHER_TOTP_PASSWORD, OTHER_TOTP_SECRET, role="admin"
    )


@pytest.fixture
def password_authenticator(user_store) -> PasswordAuthenticator:
    return PasswordAuthenticator(user_store)


@pytest.fixture
def second_factor(
    user_store, password_authenticator, totp_provider, token_service
) -> SecondFactorCoordinator:
    return SecondFactorCoordinator(
        user_store, password_authenticator, totp_provider, token_service
    )


@pytest.fixture
def enrollment(
    user_store, password_authenticator, totp_provider, token_service
) -> EnrollmentCoordinator:
    return EnrollmentCoordinator(
        user_store, password_authenticator, totp_provider, token_service
    )
