"""
Login endpoints.

POST /user/login  - email + password; returns an access token, or a
                    pending token when the account has a second factor
POST /2fa/verify  - pending token + one-time code; returns an access token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import get_second_factor_coordinator
from schemas.dto.requests.auth import LoginRequest, TwoFactorVerifyRequest
from schemas.dto.responses.auth import (
    AuthenticationPayload,
    LoginResponse,
    TotpRequiredData,
    TotpRequiredResponse,
)
from schemas.dto.responses.common import ErrorResponse
from services.second_factor_coordinator import LoginResult, SecondFactorCoordinator

router = APIRouter(
    tags=["auth"],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)


def _authenticated(result: LoginResult) -> JSONResponse:
    body = LoginResponse(
        authentication=AuthenticationPayload(
            token=result.token, umail=result.user.email
        )
    )
    return JSONResponse(content=body.model_dump(by_alias=True, exclude_none=True))


@router.post("/user/login")
async def login(
    body: LoginRequest,
    coordinator: SecondFactorCoordinator = Depends(get_second_factor_coordinator),
) -> JSONResponse:
    result = await coordinator.login(body.email, body.password)
    if result.second_factor_required:
        pending = TotpRequiredResponse(data=TotpRequiredData(tmp_token=result.token))
        return JSONResponse(content=pending.model_dump(by_alias=True))
    return _authenticated(result)


@router.post("/2fa/verify")
async def verify_second_factor(
    body: TwoFactorVerifyRequest,
    coordinator: SecondFactorCoordinator = Depends(get_second_factor_coordinator),
) -> JSONResponse:
    result = await coordinator.verify_second_factor(body.tmp_token, body.totp_token)
    return _authenticated(result)
