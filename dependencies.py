"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived objects (the user store,
TokenService, TotpProvider) are created once in the app lifespan and stored
on app.state; per-request objects are assembled from them here.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from errors import AuthenticationError
from repositories.protocol import UserStore
from schemas.models.token import AccessClaims
from services.enrollment_coordinator import EnrollmentCoordinator
from services.password_authenticator import PasswordAuthenticator
from services.second_factor_coordinator import SecondFactorCoordinator
from services.token_service import TokenService
from services.totp_provider import TotpProvider


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_totp_provider(request: Request) -> TotpProvider:
    return request.app.state.totp_provider


def get_password_authenticator(
    users: UserStore = Depends(get_user_store),
) -> PasswordAuthenticator:
    return PasswordAuthenticator(users)


def get_second_factor_coordinator(
    users: UserStore = Depends(get_user_store),
    passwords: PasswordAuthenticator = Depends(get_password_authenticator),
    totp: TotpProvider = Depends(get_totp_provider),
    tokens: TokenService = Depends(get_token_service),
) -> SecondFactorCoordinator:
    return SecondFactorCoordinator(users, passwords, totp, tokens)


def get_enrollment_coordinator(
    users: UserStore = Depends(get_user_store),
    passwords: PasswordAuthenticator = Depends(get_password_authenticator),
    totp: TotpProvider = Depends(get_totp_provider),
    tokens: TokenService = Depends(get_token_service),
) -> EnrollmentCoordinator:
    return EnrollmentCoordinator(users, passwords, totp, tokens)


def get_bearer_token(
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None


def require_access(
    token: Optional[str] = Depends(get_bearer_token),
    tokens: TokenService = Depends(get_token_service),
) -> AccessClaims:
    """Require a valid ``access`` token; any other token type is rejected."""
    if not token:
        raise AuthenticationError("missing access token")
    return tokens.verify_as(token, AccessClaims)
