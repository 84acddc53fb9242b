# app/woocommerce/signature.py
# =============================
# WooCommerce webhook signatures
# base64(HMAC-SHA256(secret, raw body)) in `x-wc-webhook-signature`
# =============================

import base64
import hashlib
import hmac
import logging
from typing import Optional, Union

from app.config import Settings
from app.errors import SignatureMismatch, SignatureMissing

SIGNATURE_HEADER = "x-wc-webhook-signature"

logger = logging.getLogger("uvicorn.error")


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(secret: Union[str, bytes], body: bytes) -> str:
    digest = hmac.new(_as_bytes(secret), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify(secret: Union[str, bytes], body: bytes, supplied: Optional[str]) -> bool:
    """
    True when `supplied` is the signature WooCommerce would send for `body`.
    An empty secret means "not configured yet" and always verifies.
    """
    if not secret:
        return True
    if not supplied:
        return False
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected.encode("ascii"), supplied.encode("utf-8"))


def check_webhook_signature(
    settings: Settings,
    event_type: str,
    body: bytes,
    supplied: Optional[str],
) -> bool:
    """
    Apply the configured policy for one inbound webhook.

    Returns True when the signature matched (or checking is off), False when it
    did not match but the mismatch is tolerated. Raises SignatureMissing or
    SignatureMismatch when the request has to be rejected.
    """
    if settings.skip_signature_validation:
        logger.info("Skipping webhook signature validation as configured")
        return True

    secret = settings.secret_for(event_type)
    if not secret:
        logger.info("No secret configured for %s, skipping validation", event_type)
        return True

    if not supplied:
        logger.error("[Signature] %s header missing for %s", SIGNATURE_HEADER, event_type)
        raise SignatureMissing("Webhook signature missing")

    if verify(secret, body, supplied):
        logger.info("[Signature] %s signature valid (%d bytes)", event_type, len(body))
        return True

    logger.warning("[Signature] %s signature mismatch (%d bytes)", event_type, len(body))
    if settings.enforce_signature:
        raise SignatureMismatch("Invalid webhook signature")

    logger.warning("[Signature] enforcement disabled, accepting %s anyway", event_type)
    return False
