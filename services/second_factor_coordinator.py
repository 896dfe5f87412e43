"""
Login state machine.

    AwaitingCredentials ──login──▶ Authenticated            (no TOTP secret)
                         └───────▶ AwaitingSecondFactor      (TOTP secret set)
    AwaitingSecondFactor ──verify_second_factor──▶ Authenticated
                                               └─▶ Rejected (retry with a new code)

Between the two steps only the user id travels, inside a signed
`second_factor_pending` token. verify_second_factor() always loads the secret
of the user named by that token; no client-supplied id is ever consulted.
The pending token is stateless and may be presented again after a rejected
code until it expires.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from errors import (
    DataIntegrityError,
    InvalidTotpCodeError,
    MalformedOrForgedTokenError,
)
from repositories.protocol import UserStore
from schemas.models.token import (
    AMR_PASSWORD,
    AMR_TOTP,
    AccessClaims,
    SecondFactorPendingClaims,
)
from schemas.models.user import UserDoc
from services.password_authenticator import PasswordAuthenticator
from services.token_service import TokenService
from services.totp_provider import TotpProvider
from shared.logging import get_logger

log = get_logger(__name__)


class LoginState(str, Enum):
    AWAITING_SECOND_FACTOR = "awaiting_second_factor"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login step.

    ``token`` is an access token when ``state`` is AUTHENTICATED and a
    second-factor-pending token when it is AWAITING_SECOND_FACTOR.
    """

    state: LoginState
    token: str
    user: UserDoc

    @property
    def second_factor_required(self) -> bool:
        return self.state is LoginState.AWAITING_SECOND_FACTOR


class SecondFactorCoordinator:
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

    async def login(self, email: str, password: str) -> LoginResult:
        user = await self._passwords.validate(email, password)

        if not user.totp_enabled:
            token = self._issue_access(user, [AMR_PASSWORD])
            log.info("login_success", user_id=user.user_id, auth_method="password")
            return LoginResult(LoginState.AUTHENTICATED, token, user)

        tmp_token = self._tokens.issue(SecondFactorPendingClaims(sub=user.user_id))
        log.info("login_second_factor_required", user_id=user.user_id)
        return LoginResult(LoginState.AWAITING_SECOND_FACTOR, tmp_token, user)

    async def verify_second_factor(
        self, tmp_token: str, code: str, now: Optional[datetime] = None
    ) -> LoginResult:
        """Exchange a pending token plus a valid one-time code for access.

        Raises:
            MalformedOrForgedTokenError: tmp_token is not a valid pending token.
            InvalidTotpCodeError: the code does not match the bound user's secret.
            DataIntegrityError: the bound user has no secret on record.
        """
        claims = self._tokens.verify_as(tmp_token, SecondFactorPendingClaims)

        user = await self._users.get_by_id(claims.sub)
        if user is None:
            log.warning("second_factor_failed", reason="unknown_subject")
            raise MalformedOrForgedTokenError("unknown_subject")

        if not user.totp_enabled:
            log.error(
                "second_factor_integrity_fault",
                user_id=user.user_id,
                reason="pending_token_without_secret",
            )
            raise DataIntegrityError(
                "second factor requested for an account without a TOTP secret"
            )

        if not self._totp.verify_code(user.totp_secret, code, now):
            log.warning(
                "second_factor_failed", user_id=user.user_id, reason="code_mismatch"
            )
            raise InvalidTotpCodeError()

        token = self._issue_access(user, [AMR_PASSWORD, AMR_TOTP])
        log.info("login_success", user_id=user.user_id, auth_method="password+totp")
        return LoginResult(LoginState.AUTHENTICATED, token, user)

    def _issue_access(self, user: UserDoc, amr: list[str]) -> str:
        return self._tokens.issue(
            AccessClaims(sub=user.user_id, amr=amr, role=user.role)
        )
