"""
Signed token claim sets.

Every token carries a `type` tag from a closed set. Each variant declares
only the fields it needs and rejects anything else, so a claim set of one
type can never validate as another.

    access                 - fully authenticated bearer credential
    second_factor_pending  - password verified, one-time code still owed
    totp_setup_secret      - authorises binding `secret` to `sub`

Registered JWT claims (iss, aud, iat, exp) are added and checked by the
TokenService and are not part of these models.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class TokenType(str, Enum):
    ACCESS = "access"
    SECOND_FACTOR_PENDING = "second_factor_pending"
    TOTP_SETUP_SECRET = "totp_setup_secret"


# Authentication Methods References
AMR_PASSWORD = "pwd"
AMR_TOTP = "otp"


class _Claims(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    sub: str = Field(min_length=1)


class AccessClaims(_Claims):
    type: Literal["access"] = "access"
    amr: list[str] = [AMR_PASSWORD]
    role: str = "customer"


class SecondFactorPendingClaims(_Claims):
    type: Literal["second_factor_pending"] = "second_factor_pending"


class TotpSetupClaims(_Claims):
    type: Literal["totp_setup_secret"] = "totp_setup_secret"
    secret: str = Field(min_length=16)


TokenClaims = Annotated[
    Union[AccessClaims, SecondFactorPendingClaims, TotpSetupClaims],
    Field(discriminator="type"),
]

token_claims_adapter: TypeAdapter[TokenClaims] = TypeAdapter(TokenClaims)
