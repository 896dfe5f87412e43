"""
Response DTOs for authentication endpoints.

AuthenticationPayload   - token block inside LoginResponse
LoginResponse           - POST /user/login, POST /2fa/verify  (200, authenticated)
TotpRequiredResponse    - POST /user/login  (200, second factor required)
TwoFactorStatusResponse - GET /2fa/status  (200)
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

TOTP_TOKEN_REQUIRED = "totp_token_required"


class AuthenticationPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    umail: Optional[str] = None


class LoginResponse(BaseModel):
    """Body returned once the caller is fully authenticated."""

    model_config = ConfigDict(populate_by_name=True)

    authentication: AuthenticationPayload


class TotpRequiredData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tmp_token: str = Field(serialization_alias="tmpToken")


class TotpRequiredResponse(BaseModel):
    """Body returned when the password was valid but a TOTP code is owed."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["totp_token_required"] = TOTP_TOKEN_REQUIRED
    data: TotpRequiredData


class TwoFactorStatusResponse(BaseModel):
    """Response body for GET /2fa/status.

    The setup fields are only present while second factor is disabled.
    """

    model_config = ConfigDict(populate_by_name=True)

    totp_enabled: bool = Field(serialization_alias="totpEnabled")
    email: Optional[str] = None
    secret: Optional[str] = None
    setup_token: Optional[str] = Field(default=None, serialization_alias="setupToken")
    provisioning_uri: Optional[str] = Field(
        default=None, serialization_alias="provisioningUri"
    )
