"""
GitHub webhook signature verification.

GitHub signs every delivery with HMAC-SHA256 over the raw request body and
sends the hex digest in the ``X-Hub-Signature-256`` header as ``sha256=<hex>``.
"""

import hashlib
import hmac
from typing import Optional

from reasonet.exceptions import WebhookSignatureError

SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """
    Compute the ``sha256=`` signature GitHub would send for a body.

    Args:
        body: Raw request body
        secret: Shared webhook secret

    Returns:
        Signature header value
    """
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256)
    return f"{SIGNATURE_PREFIX}{digest.hexdigest()}"


def verify_signature(
    body: bytes, signature: Optional[str], secret: Optional[str]
) -> bool:
    """
    Check a delivery's signature header against the shared secret.

    Never raises: a missing header, missing secret, wrong prefix or any
    malformed value yields False.

    Args:
        body: Raw request body
        signature: Value of the X-Hub-Signature-256 header
        secret: Shared webhook secret

    Returns:
        True if the signature matches
    """
    if not signature or not secret or not isinstance(body, (bytes, bytearray)):
        return False
    if not signature.startswith(SIGNATURE_PREFIX):
        return False

    try:
        expected = compute_signature(bytes(body), secret)
        return hmac.compare_digest(
            expected.encode("ascii"), signature.encode("ascii")
        )
    except (UnicodeError, TypeError, ValueError):
        return False


def require_signature(
    body: bytes, signature: Optional[str], secret: Optional[str]
) -> None:
    """
    Reject a delivery whose signature does not verify.

    Raises:
        WebhookSignatureError: If the header is missing or does not match
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not signature:
        raise WebhookSignatureError("Missing X-Hub-Signature-256 header")
    if not verify_signature(body, signature, secret):
        raise WebhookSignatureError("Signature does not match payload")
