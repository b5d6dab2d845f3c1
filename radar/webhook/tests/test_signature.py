"""Tests for webhook signature verification."""

import hashlib
import hmac
import json

import pytest

from radar.core.logging import setup_logging
from radar.webhook.signature import (
    SignatureResult,
    SignatureVerifier,
    sign_body,
    verify_signature,
)

SECRET = "It's a Secret to Everybody"
BODY = b"Hello, World!"


def _sign(body: bytes, secret: str = SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def test_valid_signature() -> None:
    assert verify_signature(BODY, _sign(BODY), SECRET) == SignatureResult.VALID


def test_known_vector() -> None:
    # Published example for X-Hub-Signature-256
    header = "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"

    assert verify_signature(BODY, header, SECRET) == SignatureResult.VALID


def test_sign_body_matches_known_vector() -> None:
    assert sign_body(BODY, SECRET) == (
        "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"
    )


def test_uppercase_hex_is_accepted() -> None:
    header = "sha256=" + _sign(BODY).removeprefix("sha256=").upper()

    assert verify_signature(BODY, header, SECRET) == SignatureResult.VALID


def test_verification_disabled_without_secret() -> None:
    result = verify_signature(BODY, None, "")

    assert result == SignatureResult.DISABLED
    assert result.accepted is True


@pytest.mark.parametrize("header", [None, ""])
def test_missing_signature(header: str | None) -> None:
    result = verify_signature(BODY, header, SECRET)

    assert result == SignatureResult.MISSING_SIGNATURE
    assert result.accepted is False


@pytest.mark.parametrize(
    "header",
    [
        "sha1=abcdef",
        "757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17",
        "sha256=not-hex",
        "sha256=abc",
        "sha256= 757107ea",
    ],
)
def test_invalid_signature_format(header: str) -> None:
    assert verify_signature(BODY, header, SECRET) == SignatureResult.INVALID_SIGNATURE


def test_signature_mismatch_on_tampered_body() -> None:
    assert verify_signature(BODY + b"!", _sign(BODY), SECRET) == SignatureResult.SIGNATURE_MISMATCH


def test_signature_mismatch_on_wrong_secret() -> None:
    assert verify_signature(BODY, _sign(BODY, "other"), SECRET) == SignatureResult.SIGNATURE_MISMATCH


def test_short_digest_is_a_mismatch() -> None:
    assert verify_signature(BODY, "sha256=abcd", SECRET) == SignatureResult.SIGNATURE_MISMATCH


def test_rejection_log_contains_no_secret_material(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(log_level="DEBUG")
    verifier = SignatureVerifier(SECRET)
    received = _sign(BODY, "attacker")
    expected = _sign(BODY)

    result = verifier.verify(BODY, received)

    assert result == SignatureResult.SIGNATURE_MISMATCH
    output = capsys.readouterr().out
    assert SECRET not in output
    assert received.removeprefix("sha256=") not in output
    assert expected.removeprefix("sha256=") not in output
    log_data = json.loads(output.strip().splitlines()[-1])
    assert log_data["event"] == "webhook.signature.rejected"
    assert log_data["result"] == "signature_mismatch"


def test_verifier_reports_enabled_state() -> None:
    assert SignatureVerifier(SECRET).enabled is True
    assert SignatureVerifier("").enabled is False
