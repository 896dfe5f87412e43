"""
Binding a TOTP secret to an authenticated account.

Setup tokens are minted here, by the server, when an authenticated user
without a secret asks for their status: a fresh candidate secret is
generated and signed into a `totp_setup_secret` token bound to that user.
setup() then requires, all together:

    1. the account password, re-entered
    2. a valid setup token minted for this same user
    3. a current one-time code for the secret inside that token

Only when every check passes is the secret written, in a single update.
Once written, a second setup() fails with AlreadyEnrolledError, so each
fresh setup token can enable the second factor at most once.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from errors import (
    AlreadyEnrolledError,
    DataIntegrityError,
    InvalidTotpCodeError,
    MalformedOrForgedTokenError,
    ValidationError,
)
from repositories.protocol import UserStore
from schemas.models.token import AccessClaims, TotpSetupClaims
from schemas.models.user import UserDoc
from services.password_authenticator import PasswordAuthenticator
from services.token_service import TokenService
from services.totp_provider import TotpProvider
from shared.logging import get_logger

log = get_logger(__name__)


class TwoFactorState(str, Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    DISABLED = "disabled"
    ENABLED = "enabled"


@dataclass(frozen=True)
class SetupMaterial:
    """What a client needs to seed an authenticator app and call setup()."""

    secret: str
    setup_token: str
    provisioning_uri: str


@dataclass(frozen=True)
class TwoFactorStatus:
    state: TwoFactorState
    user: Optional[UserDoc] = None
    setup: Optional[SetupMaterial] = None

    @property
    def totp_enabled(self) -> bool:
        return self.state is TwoFactorState.ENABLED


class EnrollmentCoordinator:
    def __init__(
        self,
        users: UserStore,
        passwords: PasswordAuthenticator,
        totp: TotpProvider,
        tokens: TokenService,
    ) -> None:
        self._users = users
        self._passwords = passwords
        self._totp = totp
        self._tokens = tokens

    async def status(self, access_token: Optional[str]) -> TwoFactorStatus:
        """Report whether the bearer of *access_token* has TOTP enabled.

        A missing token yields NOT_AUTHENTICATED. A token that is present but
        rejected raises, so callers report it like any other token failure.

        Raises:
            MalformedOrForgedTokenError: the token is invalid, not an access
                token, or names a user that no longer exists.
        """
        if not access_token:
            return TwoFactorStatus(TwoFactorState.NOT_AUTHENTICATED)

        claims = self._tokens.verify_as(access_token, AccessClaims)
        user = await self._load(claims.sub)

        if user.totp_enabled:
            return TwoFactorStatus(TwoFactorState.ENABLED, user)
        return TwoFactorStatus(
            TwoFactorState.DISABLED, user, self.begin_enrollment(user)
        )

    def begin_enrollment(self, user: UserDoc) -> SetupMaterial:
        """Generate a candidate secret and sign it into a setup token for *user*."""
        secret = self._totp.generate_secret()
        setup_token = self._tokens.issue(
            TotpSetupClaims(sub=user.user_id, secret=secret)
        )
        return SetupMaterial(
            secret=secret,
            setup_token=setup_token,
            provisioning_uri=self._totp.provisioning_uri(secret, user.email),
        )

    async def setup(
        self,
        user_id: str,
        password: str,
        setup_token: str,
        initial_code: str,
        now: Optional[datetime] = None,
    ) -> UserDoc:
        """Enable the second factor for *user_id*.

        Raises:
            AlreadyEnrolledError: a secret is already bound to the account.
            InvalidCredentialsError: the re-entered password is wrong.
            MalformedOrForgedTokenError: setup_token is invalid, of another
                type, or was minted for a different user.
            InvalidTotpCodeError: initial_code does not match the candidate secret.
        """
        user = await self._load(user_id)
        if user.totp_enabled:
            log.warning(
                "two_factor_setup_failed", user_id=user_id, reason="already_enrolled"
            )
            raise AlreadyEnrolledError()

        self._passwords.reverify(user, password)

        claims = self._tokens.verify_as(setup_token, TotpSetupClaims)
        if claims.sub != user.user_id:
            log.warning(
                "two_factor_setup_failed", user_id=user_id, reason="subject_mismatch"
            )
            raise MalformedOrForgedTokenError("subject_mismatch")

        if not self._totp.verify_code(claims.secret, initial_code, now):
            log.warning(
                "two_factor_setup_failed", user_id=user_id, reason="code_mismatch"
            )
            raise InvalidTotpCodeError()

        if not await self._users.set_totp_secret(user.user_id, claims.secret):
            log.error("two_factor_setup_write_failed", user_id=user_id)
            raise DataIntegrityError("user record not found while enabling 2FA")

        log.info("two_factor_enabled", user_id=user_id)
        return user.model_copy(update={"totp_secret": claims.secret})

    async def disable(self, user_id: str, password: str) -> UserDoc:
        """Remove the second factor from *user_id* after re-checking the password."""
        user = await self._load(user_id)
        self._passwords.reverify(user, password)

        if not user.totp_enabled:
            raise ValidationError("two-factor authentication is not enabled")

        if not await self._users.clear_totp_secret(user.user_id):
            log.error("two_factor_disable_write_failed", user_id=user_id)
            raise DataIntegrityError("user record not found while disabling 2FA")

        log.info("two_factor_disabled", user_id=user_id)
        return user.model_copy(update={"totp_secret": None})

    async def _load(self, user_id: str) -> UserDoc:
        user = await self._users.get_by_id(user_id)
        if user is None:
            log.warning("two_factor_unknown_user", user_id=user_id)
            raise MalformedOrForgedTokenError("unknown_subject")
        return user
