"""Webhook payload authentication.

GitHub signs every delivery with ``X-Hub-Signature: sha1=<hex>``, an
HMAC-SHA1 over the raw request body keyed with the shared webhook secret.
The body must be verified before it is decoded; callers only get the bytes
back once the digest matches.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac

from .errors import AuthError
from .logging import get_logger

SIGNATURE_PREFIX = "sha1="


def compute_signature(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha1).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    secret: str,
    raw_body: bytes,
    event_type: str | None,
    signature_header: str | None,
) -> bytes:
    """Return ``raw_body`` if it carries a valid signature, else raise AuthError."""
    if not event_type:
        raise AuthError("X-GitHub-Event header missing")
    if not signature_header:
        raise AuthError("X-Hub-Signature missing")
    if not signature_header.startswith(SIGNATURE_PREFIX):
        raise AuthError(f"X-Hub-Signature does not start with {SIGNATURE_PREFIX}")
    try:
        want = binascii.unhexlify(signature_header[len(SIGNATURE_PREFIX):])
    except (binascii.Error, ValueError) as exc:
        raise AuthError(f"Error decoding X-Hub-Signature: {exc}") from exc
    if not secret:
        raise AuthError("webhook secret not configured")

    got = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha1).digest()
    if not hmac.compare_digest(want, got):
        get_logger().error(
            f"X-Hub-Signature: want {want.hex()}, got {got.hex()}",
            operation="verify_signature",
        )
        raise AuthError("X-Hub-Signature wrong")
    return raw_body


__all__ = ["SIGNATURE_PREFIX", "compute_signature", "verify_signature"]
