"""
Second-factor enrollment endpoints. All require a bearer ``access`` token.

GET  /2fa/status   - whether TOTP is enabled; setup material when it is not
POST /2fa/setup    - password + setup token + first code; enables TOTP
POST /2fa/disable  - password; disables TOTP
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import get_bearer_token, get_enrollment_coordinator, require_access
from errors import AuthenticationError
from schemas.dto.requests.auth import TwoFactorDisableRequest, TwoFactorSetupRequest
from schemas.dto.responses.auth import TwoFactorStatusResponse
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from schemas.models.token import AccessClaims
from services.enrollment_coordinator import EnrollmentCoordinator, TwoFactorState

router = APIRouter(
    prefix="/2fa",
    tags=["2fa"],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)


@router.get("/status")
async def status(
    token: Optional[str] = Depends(get_bearer_token),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
) -> JSONResponse:
    result = await coordinator.status(token)
    if result.state is TwoFactorState.NOT_AUTHENTICATED:
        raise AuthenticationError("missing access token")

    body = TwoFactorStatusResponse(
        totp_enabled=result.totp_enabled, email=result.user.email
    )
    if result.setup is not None:
        body = body.model_copy(
            update={
                "secret": result.setup.secret,
                "setup_token": result.setup.setup_token,
                "provisioning_uri": result.setup.provisioning_uri,
            }
        )
    return JSONResponse(content=body.model_dump(by_alias=True, exclude_none=True))


@router.post("/setup")
async def setup(
    body: TwoFactorSetupRequest,
    claims: AccessClaims = Depends(require_access),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
) -> JSONResponse:
    await coordinator.setup(
        claims.sub, body.password, body.setup_token, body.initial_token
    )
    resp = MessageResponse(success=True, message="two-factor authentication enabled")
    return JSONResponse(content=resp.model_dump())


@router.post("/disable")
async def disable(
    body: TwoFactorDisableRequest,
    claims: AccessClaims = Depends(require_access),
    coordinator: EnrollmentCoordinator = Depends(get_enrollment_coordinator),
) -> JSONResponse:
    await coordinator.disable(claims.sub, body.password)
    resp = MessageResponse(success=True, message="two-factor authentication disabled")
    return JSONResponse(content=resp.model_dump())
