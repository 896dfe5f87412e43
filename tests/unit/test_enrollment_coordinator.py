"""Unit tests for TOTP enrollment: status, setup and disable."""

from datetime import datetime, timezone

import jwt
import pyotp
import pytest

from errors import (
    AlreadyEnrolledError,
    InvalidCredentialsError,
    InvalidTotpCodeError,
    MalformedOrForgedTokenError,
    ValidationError,
)
from schemas.models.token import (
    AccessClaims,
    SecondFactorPendingClaims,
    TotpSetupClaims,
)
from services.enrollment_coordinator import TwoFactorState
from tests.accounts import (
    JIM_EMAIL,
    JIM_PASSWORD,
    OTHER_TOTP_SECRET,
    TOTP_USER_PASSWORD,
    TOTP_USER_SECRET,
)


def _access(token_service, user) -> str:
    return token_service.issue(AccessClaims(sub=user.user_id, role=user.role))


class TestStatus:
    async def test_no_token(self, enrollment):
        status = await enrollment.status(None)
        assert status.state is TwoFactorState.NOT_AUTHENTICATED
        assert status.user is None

    async def test_garbage_token(self, enrollment):
        with pytest.raises(MalformedOrForgedTokenError) as exc_info:
            await enrollment.status("not.a.jwt")
        assert exc_info.value.reason == "malformed"

    @pytest.mark.parametrize("kind", ["pending", "setup"])
    async def test_non_access_token_is_rejected_as_wrong_type(
        self, enrollment, token_service, totp_user, kind
    ):
        claims = (
            SecondFactorPendingClaims(sub=totp_user.user_id)
            if kind == "pending"
            else TotpSetupClaims(sub=totp_user.user_id, secret=TOTP_USER_SECRET)
        )
        with pytest.raises(MalformedOrForgedTokenError) as exc_info:
            await enrollment.status(token_service.issue(claims))
        assert exc_info.value.reason == "wrong_type"

    async def test_unknown_user(self, enrollment, token_service):
        token = token_service.issue(AccessClaims(sub="507f1f77bcf86cd799439011"))
        with pytest.raises(MalformedOrForgedTokenError) as exc_info:
            await enrollment.status(token)
        assert exc_info.value.reason == "unknown_subject"

    async def test_enabled(self, enrollment, token_service, totp_user):
        status = await enrollment.status(_access(token_service, totp_user))
        assert status.state is TwoFactorState.ENABLED
        assert status.totp_enabled
        assert status.user.email == totp_user.email
        assert status.setup is None

    async def test_disabled_offers_setup_material(
        self, enrollment, token_service, jim
    ):
        status = await enrollment.status(_access(token_service, jim))

        assert status.state is TwoFactorState.DISABLED
        assert not status.totp_enabled
        setup = status.setup
        claims = token_service.verify_as(setup.setup_token, TotpSetupClaims)
        assert claims.sub == jim.user_id
        assert claims.secret == setup.secret
        assert setup.provisioning_uri.startswith("otpauth://totp/")
        assert f"secret={setup.secret}" in setup.provisioning_uri

    async def test_each_status_call_offers_a_fresh_secret(
        self, enrollment, token_service, jim
    ):
        token = _access(token_service, jim)
        first = await enrollment.status(token)
        second = await enrollment.status(token)
        assert first.setup.secret != second.setup.secret


class TestSetup:
    async def _material(self, enrollment, jim):
        return enrollment.begin_enrollment(jim)

    async def test_success_binds_secret(self, enrollment, user_store, jim):
        material = await self._material(enrollment, jim)
        code = pyotp.TOTP(material.secret).now()

        updated = await enrollment.setup(
            jim.user_id, JIM_PASSWORD, material.setup_token, code
        )

        assert updated.totp_secret == material.secret
        assert user_store.users[jim.user_id].totp_secret == material.secret
        assert user_store.writes == [(jim.user_id, material.secret)]

    async def test_second_setup_is_rejected(self, enrollment, user_store, jim):
        material = await self._material(enrollment, jim)
        code = pyotp.TOTP(material.secret).now()
        await enrollment.setup(jim.user_id, JIM_PASSWORD, material.setup_token, code)

        with pytest.raises(AlreadyEnrolledError):
            await enrollment.setup(
                jim.user_id, JIM_PASSWORD, material.setup_token, code
            )
        assert len(user_store.writes) == 1

    async def test_already_enrolled_user(self, enrollment, user_store, totp_user):
        material = enrollment.begin_enrollment(totp_user)
        code = pyotp.TOTP(material.secret).now()
        with pytest.raises(AlreadyEnrolledError):
            await enrollment.setup(
                totp_user.user_id, TOTP_USER_PASSWORD, material.setup_token, code
            )
        assert user_store.writes == []
        assert user_store.users[totp_user.user_id].totp_secret == TOTP_USER_SECRET

    async def test_wrong_password(self, enrollment, user_store, jim):
        material = await self._material(enrollment, jim)
        code = pyotp.TOTP(material.secret).now()
        with pytest.raises(InvalidCredentialsError):
            await enrollment.setup(jim.user_id, "wrong", material.setup_token, code)
        assert user_store.writes == []

    async def test_wrong_code(self, enrollment, user_store, jim):
        material = await self._material(enrollment, jim)
        with pytest.raises(InvalidTotpCodeError):
            await enrollment.setup(
                jim.user_id, JIM_PASSWORD, material.setup_token, "000000"
            )
        assert user_store.writes == []

    async def test_code_for_another_secret(self, enrollment, user_store, jim):
        material = await self._material(enrollment, jim)
        now = datetime.now(timezone.utc)
        foreign = pyotp.TOTP(OTHER_TOTP_SECRET).at(now)
        if foreign == pyotp.TOTP(material.secret).at(now):
            pytest.skip("codes collide at this instant")
        with pytest.raises(InvalidTotpCodeError):
            await enrollment.setup(
                jim.user_id, JIM_PASSWORD, material.setup_token, foreign, now
            )
        assert user_store.writes == []

    async def test_forged_setup_token(self, enrollment, user_store, jim):
        secret = pyotp.random_base32()
        other_key = pyotp.random_base32()

        forged = jwt.encode(
            {"sub": jim.user_id, "type": "totp_setup_secret", "secret": secret},
            other_key,
            algorithm="HS256",
        )
        with pytest.raises(MalformedOrForgedTokenError):
            await enrollment.setup(
                jim.user_id, JIM_PASSWORD, forged, pyotp.TOTP(secret).now()
            )
        assert user_store.writes == []

    async def test_access_token_as_setup_token(
        self, enrollment, token_service, user_store, jim
    ):
        with pytest.raises(MalformedOrForgedTokenError) as exc_info:
            await enrollment.setup(
                jim.user_id, JIM_PASSWORD, _access(token_service, jim), "123456"
            )
        assert exc_info.value.reason == "wrong_type"
        assert user_store.writes == []

    async def test_setup_token_minted_for_another_user(
        self, enrollment, user_store, jim
    ):
        mallory = user_store.add("mallory@juice-sh.op", "mallory-pw")
        material = enrollment.begin_enrollment(mallory)
        code = pyotp.TOTP(material.secret).now()

        with pytest.raises(MalformedOrForgedTokenError) as exc_info:
            await enrollment.setup(
                jim.user_id, JIM_PASSWORD, material.setup_token, code
            )
        assert exc_info.value.reason == "subject_mismatch"
        assert user_store.writes == []

    async def test_unknown_user(self, enrollment, user_store, jim):
        material = await self._material(enrollment, jim)
        with pytest.raises(MalformedOrForgedTokenError):
            await enrollment.setup(
                "507f1f77bcf86cd799439011",
                JIM_PASSWORD,
                material.setup_token,
                pyotp.TOTP(material.secret).now(),
            )
        assert user_store.writes == []

    async def test_enrolled_user_can_complete_second_factor(
        self, enrollment, second_factor, token_service, jim
    ):
        material = await self._material(enrollment, jim)
        totp = pyotp.TOTP(material.secret)
        await enrollment.setup(
            jim.user_id, JIM_PASSWORD, material.setup_token, totp.now()
        )

        login = await second_factor.login(JIM_EMAIL, JIM_PASSWORD)
        assert login.second_factor_required

        result = await second_factor.verify_second_factor(login.token, totp.now())
        assert token_service.verify_as(result.token, AccessClaims).sub == jim.user_id


class TestDisable:
    async def test_disable(self, enrollment, user_store, totp_user):
        updated = await enrollment.disable(totp_user.user_id, TOTP_USER_PASSWORD)
        assert updated.totp_secret is None
        assert user_store.users[totp_user.user_id].totp_secret is None

    async def test_wrong_password(self, enrollment, user_store, totp_user):
        with pytest.raises(InvalidCredentialsError):
            await enrollment.disable(totp_user.user_id, "wrong")
        assert user_store.writes == []

    async def test_not_enabled(self, enrollment, user_store, jim):
        with pytest.raises(ValidationError):
            await enrollment.disable(jim.user_id, JIM_PASSWORD)
        assert user_store.writes == []
