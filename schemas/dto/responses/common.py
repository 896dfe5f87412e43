"""
Response bodies shared by several endpoints.

ErrorResponse    - every non-2xx body, built from AppError.to_dict()
HealthResponse   - GET /health
MessageResponse  - {success, message} acknowledgement for 2FA changes
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

CheckStatus = Literal["ok", "error"]


class ErrorResponse(BaseModel):
    """Error body.

    ``code`` is stable and machine-readable (``invalid_credentials``,
    ``invalid_totp_code``, ``invalid_token``, ``already_enrolled``,
    ``validation_error``, ``data_integrity_fault``, ``internal_error``);
    ``error`` is for humans.
    """

    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["healthy", "unhealthy"]
    checks: dict[str, CheckStatus]


class MessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
