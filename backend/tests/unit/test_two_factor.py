"""
Unit tests for TOTP verification and provisioning.

Times are multiples of the 30-second step so window edges are exact.
"""

import base64
from urllib.parse import unquote

import pyotp
import pytest

from quizfest.services.two_factor import TwoFactorVerifier

SECRET = "JBSWY3DPEHPK3PXP"
T = 30_000.0  # start of step 1000


@pytest.fixture
def verifier():
    return TwoFactorVerifier(tolerance_steps=2, issuer="Quiz Fest Admin")


class TestVerify:

    def test_code_accepted_at_generation_time(self, verifier):
        code = verifier.now(SECRET, for_time=T)

        assert verifier.verify(SECRET, code, for_time=T) is True

    @pytest.mark.parametrize("offset", [-60, -30, 0, 30, 60, 89])
    def test_accepted_within_two_steps(self, verifier, offset):
        code = verifier.now(SECRET, for_time=T)

        assert verifier.verify(SECRET, code, for_time=T + offset) is True

    @pytest.mark.parametrize("offset", [-90, -61, 90, 120, 3600])
    def test_rejected_outside_two_steps(self, verifier, offset):
        code = verifier.now(SECRET, for_time=T)

        assert verifier.verify(SECRET, code, for_time=T + offset) is False

    def test_zero_tolerance(self):
        strict = TwoFactorVerifier(tolerance_steps=0)
        code = strict.now(SECRET, for_time=T)

        assert strict.verify(SECRET, code, for_time=T + 29) is True
        assert strict.verify(SECRET, code, for_time=T + 30) is False

    def test_matches_reference_implementation(self, verifier):
        assert verifier.now(SECRET, for_time=T) == pyotp.TOTP(SECRET).at(T)

    @pytest.mark.parametrize("code", ["", "12345", "1234567", "abcdef", "12 456", None])
    def test_malformed_codes_rejected(self, verifier, code):
        assert verifier.verify(SECRET, code, for_time=T) is False

    def test_wrong_secret(self, verifier):
        code = verifier.now(SECRET, for_time=T)

        assert verifier.verify("KRUGS4ZANFZSAYJA", code, for_time=T) is False


class TestProvisioning:

    def test_generates_new_secret(self, verifier):
        first = verifier.build_provisioning("festadmin")
        second = verifier.build_provisioning("festadmin")

        assert first.secret != second.secret
        assert len(first.secret) == 32
        base64.b32decode(first.secret)

    def test_provisioning_uri(self, verifier):
        provisioning = verifier.build_provisioning("festadmin", secret=SECRET)
        uri = unquote(provisioning.provisioning_uri)

        assert uri.startswith("otpauth://totp/")
        assert "festadmin" in uri
        assert "issuer=Quiz Fest Admin" in uri
        assert f"secret={SECRET}" in uri

    def test_qr_code_is_png_data_url(self, verifier):
        provisioning = verifier.build_provisioning("festadmin", secret=SECRET)

        prefix = "data:image/png;base64,"
        assert provisioning.qr_code_image.startswith(prefix)
        png = base64.b64decode(provisioning.qr_code_image[len(prefix):])
        assert png.startswith(b"\x89PNG\r\n\x1a\n")

    def test_generated_secret_verifies(self, verifier):
        provisioning = verifier.build_provisioning("festadmin")
        code = verifier.now(provisioning.secret, for_time=T)

        assert verifier.verify(provisioning.secret, code, for_time=T) is True
