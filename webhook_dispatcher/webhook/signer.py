"""HMAC-SHA256 signing of webhook bodies."""

import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "X-Webhook-Signature"


def sign(payload: bytes, secret: str) -> str:
    """Compute the hex-encoded HMAC-SHA256 of ``payload`` keyed by ``secret``.

    The payload must be the exact bytes that go on the wire.
    """
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def build_signature_header(payload: bytes, secret: Optional[str]) -> Optional[str]:
    """Return the signature header value, or None for unsigned deliveries."""
    if not secret:
        return None
    return sign(payload, secret)


def verify(payload: bytes, secret: str, signature: str) -> bool:
    """Check a received signature against the body it arrived with."""
    if not signature:
        return False
    return hmac.compare_digest(sign(payload, secret), signature.strip().lower())
