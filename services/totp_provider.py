"""
TOTP (RFC 6238) secret generation and code verification.

Algorithm contract shared with client authenticator apps:
base32 secret, HMAC-SHA1, 30-second step, 6 decimal digits.

verify_code() accepts the code for the current step and for exactly one step
either side of it (±30s of clock drift). The window is fixed; widening it
makes codes proportionally easier to guess.
"""

from __future__ import annotations

import binascii
import hmac
from datetime import datetime, timezone
from typing import Optional

import pyotp

from shared.logging import get_logger

log = get_logger(__name__)

TOTP_DIGITS = 6
TOTP_INTERVAL_SECONDS = 30
TOTP_VALID_WINDOW = 1

# 32 base32 characters = 160 bits, the RFC 4226 recommended key length
SECRET_LENGTH = 32


class TotpProvider:
    def __init__(self, issuer: str = "auth-core") -> None:
        self.issuer = issuer

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL_SECONDS)

    def generate_secret(self) -> str:
        """Generate a new base32 secret. Only used during enrollment."""
        return pyotp.random_base32(length=SECRET_LENGTH)

    def code_at(self, secret: str, now: Optional[datetime] = None) -> str:
        """Return the code an authenticator app would show at *now*."""
        return self._totp(secret).at(now or datetime.now(timezone.utc))

    def verify_code(
        self, secret: str, code: str, now: Optional[datetime] = None
    ) -> bool:
        """Check *code* against the steps before, at and after *now*."""
        if not code or len(code) != TOTP_DIGITS:
            return False
        if not (code.isascii() and code.isdigit()):
            return False
        now = now or datetime.now(timezone.utc)
        totp = self._totp(secret)
        try:
            for offset in range(-TOTP_VALID_WINDOW, TOTP_VALID_WINDOW + 1):
                expected = totp.at(now, counter_offset=offset)
                if hmac.compare_digest(expected, code):
                    return True
        except (binascii.Error, ValueError) as e:
            log.warning("totp_secret_unusable", error_type=type(e).__name__)
            return False
        return False

    def provisioning_uri(self, secret: str, account_name: str) -> str:
        """otpauth:// URI for QR-code enrollment in authenticator apps."""
        return self._totp(secret).provisioning_uri(
            name=account_name, issuer_name=self.issuer
        )
