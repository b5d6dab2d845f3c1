"""HMAC-SHA256 verification of inbound webhook bodies."""

import hashlib
import hmac
import re
from enum import StrEnum

from radar.core.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="
_HEX_DIGEST = re.compile(r"(?:[0-9a-fA-F]{2})*")


class SignatureResult(StrEnum):
    """Outcome of a signature check."""

    VALID = "valid"
    DISABLED = "disabled"
    MISSING_SIGNATURE = "missing_signature"
    INVALID_SIGNATURE = "invalid_signature"
    SIGNATURE_MISMATCH = "signature_mismatch"

    @property
    def accepted(self) -> bool:
        """Whether the request may be processed."""
        return self in (SignatureResult.VALID, SignatureResult.DISABLED)


def sign_body(body: bytes, secret: str) -> str:
    """Compute the ``sha256=<hex>`` header value GitHub sends for body."""
    return SIGNATURE_PREFIX + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature_header: str | None, secret: str) -> SignatureResult:
    """Verify a ``sha256=<hex>`` signature header against the raw body.

    Args:
        body: Raw request body, exactly as received
        signature_header: Value of the X-Hub-Signature-256 header
        secret: Shared webhook secret; empty disables verification

    Returns:
        SignatureResult describing the outcome
    """
    if not secret:
        return SignatureResult.DISABLED

    if not signature_header:
        return SignatureResult.MISSING_SIGNATURE

    if not signature_header.startswith(SIGNATURE_PREFIX):
        return SignatureResult.INVALID_SIGNATURE

    signature_hex = signature_header[len(SIGNATURE_PREFIX) :]
    if not _HEX_DIGEST.fullmatch(signature_hex):
        return SignatureResult.INVALID_SIGNATURE
    received = bytes.fromhex(signature_hex)

    expected = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    if not hmac.compare_digest(expected, received):
        return SignatureResult.SIGNATURE_MISMATCH

    return SignatureResult.VALID


class SignatureVerifier:
    """Verifies webhook signatures with a configured shared secret.

    Only the outcome is ever logged. Digests and the secret stay out of the
    log stream.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret
        if not secret:
            logger.warning("webhook.signature.disabled")

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    def verify(self, body: bytes, signature_header: str | None) -> SignatureResult:
        """Verify a request body and log the outcome.

        Args:
            body: Raw request body
            signature_header: X-Hub-Signature-256 header value

        Returns:
            SignatureResult
        """
        result = verify_signature(body, signature_header, self._secret)
        if not result.accepted:
            logger.warning("webhook.signature.rejected", result=result.value, body_len=len(body))
        return result
