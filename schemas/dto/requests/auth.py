"""
Request DTOs for authentication endpoints.

LoginRequest             - POST /user/login
TwoFactorVerifyRequest   - POST /2fa/verify
TwoFactorSetupRequest    - POST /2fa/setup
TwoFactorDisableRequest  - POST /2fa/disable

Wire names are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Request body for POST /user/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TwoFactorVerifyRequest(BaseModel):
    """Request body for POST /2fa/verify.

    ``tmpToken`` is the pending token returned by login; ``totpToken`` is the
    6-digit code from the authenticator app.
    """

    model_config = ConfigDict(populate_by_name=True)

    tmp_token: str = Field(alias="tmpToken", min_length=1)
    totp_token: str = Field(alias="totpToken", min_length=1)


class TwoFactorSetupRequest(BaseModel):
    """Request body for POST /2fa/setup."""

    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(min_length=1)
    setup_token: str = Field(alias="setupToken", min_length=1)
    initial_token: str = Field(alias="initialToken", min_length=1)


class TwoFactorDisableRequest(BaseModel):
    """Request body for POST /2fa/disable."""

    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(min_length=1)
