"""Unit tests for TotpProvider.

The reference secret below is the ASCII string "12345678901234567890"
base32-encoded, as used by the RFC 4226 / RFC 6238 test vectors.
"""

from datetime import datetime, timezone

import pyotp
import pytest

from services.totp_provider import TotpProvider

RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"

# RFC 4226 Appendix D HOTP values, indexed by counter
HOTP_VALUES = [
    "755224",
    "287082",
    "359152",
    "969429",
    "338314",
    "254676",
    "287922",
    "162583",
    "399871",
    "520489",
]


def _at(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


@pytest.fixture
def provider() -> TotpProvider:
    return TotpProvider(issuer="Juice Shop")


class TestReferenceVectors:
    @pytest.mark.parametrize(
        "unix_time, expected",
        [
            (59, "287082"),
            (1111111109, "081804"),
            (1111111111, "050471"),
            (1234567890, "005924"),
            (2000000000, "279037"),
            (20000000000, "353130"),
        ],
    )
    def test_rfc6238_sha1_vectors(self, provider, unix_time, expected):
        # 6-digit codes are the low six digits of the RFC's 8-digit values
        assert provider.code_at(RFC_SECRET, _at(unix_time)) == expected
        assert provider.verify_code(RFC_SECRET, expected, _at(unix_time))


class TestDriftWindow:
    NOW = _at(4 * 30 + 5)  # inside time step 4

    @pytest.mark.parametrize("step", [3, 4, 5], ids=["previous", "current", "next"])
    def test_adjacent_steps_accepted(self, provider, step):
        assert provider.verify_code(RFC_SECRET, HOTP_VALUES[step], self.NOW)

    @pytest.mark.parametrize("step", [0, 1, 2, 6, 7], ids=lambda s: f"step_{s}")
    def test_steps_outside_window_rejected(self, provider, step):
        assert not provider.verify_code(RFC_SECRET, HOTP_VALUES[step], self.NOW)

    def test_window_edges_follow_step_boundaries(self, provider):
        # last second of step 5 still accepts step 4, first second of step 6 does not
        assert provider.verify_code(RFC_SECRET, HOTP_VALUES[4], _at(5 * 30 + 29))
        assert not provider.verify_code(RFC_SECRET, HOTP_VALUES[4], _at(6 * 30))


class TestInteroperability:
    def test_matches_client_generator(self, provider):
        secret = provider.generate_secret()
        now = datetime.now(timezone.utc)
        client_code = pyotp.TOTP(secret).at(now)
        assert provider.code_at(secret, now) == client_code
        assert provider.verify_code(secret, client_code, now)

    def test_juice_shop_secret_accepts_authenticator_code(self, provider):
        secret = "IFTXE3SPOEYVURT2MRYGI52TKJ4HC3KH"
        assert provider.verify_code(secret, pyotp.TOTP(secret).now())

    def test_provisioning_uri(self, provider):
        uri = provider.provisioning_uri(RFC_SECRET, "jim@juice-sh.op")
        assert uri.startswith("otpauth://totp/")
        assert f"secret={RFC_SECRET}" in uri
        assert "issuer=Juice%20Shop" in uri
        assert pyotp.parse_uri(uri).secret == RFC_SECRET


class TestSecretGeneration:
    def test_secret_is_base32_of_expected_length(self, provider):
        secret = provider.generate_secret()
        assert len(secret) == 32
        assert set(secret) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")

    def test_secrets_are_unique(self, provider):
        assert len({provider.generate_secret() for _ in range(20)}) == 20


class TestMalformedInput:
    @pytest.mark.parametrize(
        "code",
        ["", "28708", "2870821", "28708a", " 287082", "２８７０８２"],
        ids=["empty", "short", "long", "letter", "padded", "fullwidth_digits"],
    )
    def test_malformed_codes_rejected(self, provider, code):
        assert not provider.verify_code(RFC_SECRET, code, _at(59))

    def test_unusable_secret_rejected(self, provider):
        assert not provider.verify_code("not base32!", "287082", _at(59))
