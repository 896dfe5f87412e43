"""
Typed signed-token issuance and verification.

A single signer over the closed set of claim variants in
schemas.models.token. Key material is read once from JWTSettings when the
service is built and never changes afterwards, so one instance can be shared
by every request without locking.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Type, TypeVar

import jwt
from pydantic import ValidationError as PydanticValidationError

from config import JWTSettings
from errors import MalformedOrForgedTokenError
from schemas.models.token import (
    AccessClaims,
    SecondFactorPendingClaims,
    TokenClaims,
    TokenType,
    TotpSetupClaims,
    token_claims_adapter,
)
from shared.logging import get_logger

log = get_logger(__name__)

_REGISTERED_CLAIMS = ("iss", "aud", "iat", "exp", "nbf", "jti")

C = TypeVar("C", AccessClaims, SecondFactorPendingClaims, TotpSetupClaims)


def _load_keys(settings: JWTSettings) -> tuple:
    if settings.use_rs256:
        # Support keys provided via env with literal \n sequences
        private_key = settings.jwt_private_key.replace("\\n", "\n").encode("utf-8")
        public_key = settings.jwt_public_key.replace("\\n", "\n").encode("utf-8")
        return private_key, public_key
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET must be set when RS256 keys are not provided")
    return settings.jwt_secret, settings.jwt_secret


class TokenService:
    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings
        self._algorithm = settings.algorithm
        self._signing_key, self._verification_key = _load_keys(settings)
        self._ttls: dict[str, int] = {
            TokenType.ACCESS.value: settings.access_token_ttl_seconds,
            TokenType.SECOND_FACTOR_PENDING.value: (
                settings.second_factor_token_ttl_seconds
            ),
            TokenType.TOTP_SETUP_SECRET.value: settings.setup_token_ttl_seconds,
        }

    def ttl_for(self, token_type: TokenType) -> int:
        return self._ttls[token_type.value]

    def issue(self, claims: TokenClaims, now: Optional[datetime] = None) -> str:
        """Sign *claims* and return the compact JWT string."""
        now = now or datetime.now(timezone.utc)
        expires = now + timedelta(seconds=self.ttl_for(TokenType(claims.type)))
        payload = claims.model_dump(mode="json")
        payload.update(
            {
                "iss": self._settings.jwt_issuer,
                "aud": self._settings.jwt_audience,
                "iat": int(now.timestamp()),
                "exp": int(expires.timestamp()),
            }
        )
        headers = (
            {"kid": self._settings.jwt_key_id} if self._settings.jwt_key_id else None
        )
        return jwt.encode(
            payload, self._signing_key, algorithm=self._algorithm, headers=headers
        )

    def verify(self, token: str) -> TokenClaims:
        """Check signature, registered claims and shape; return the typed claims.

        Raises:
            MalformedOrForgedTokenError: for any token that is not a well-formed,
                unexpired token signed with this process's key.
        """
        if not token or not isinstance(token, str):
            raise self._reject("malformed")
        try:
            payload = jwt.decode(
                token,
                self._verification_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise self._reject("expired") from None
        except jwt.InvalidSignatureError:
            raise self._reject("invalid_signature") from None
        except (jwt.InvalidAudienceError, jwt.InvalidIssuerError):
            raise self._reject("invalid_claims") from None
        except jwt.InvalidTokenError:
            raise self._reject("malformed") from None

        for name in _REGISTERED_CLAIMS:
            payload.pop(name, None)
        try:
            return token_claims_adapter.validate_python(payload)
        except PydanticValidationError:
            raise self._reject("malformed") from None

    def verify_as(self, token: str, expected: Type[C]) -> C:
        """Verify *token* and require it to be of the claim variant *expected*."""
        claims = self.verify(token)
        if not isinstance(claims, expected):
            raise self._reject(
                "wrong_type",
                token_type=claims.type,
                expected_type=expected.model_fields["type"].default,
            )
        return claims

    def _reject(self, reason: str, **context) -> MalformedOrForgedTokenError:
        log.warning("token_rejected", reason=reason, **context)
        return MalformedOrForgedTokenError(reason)

