"""
Payment Verifier: authenticity check for gateway callbacks.

Pure and stateless. The gateway signs "<order id>|<payment id>" with
HMAC-SHA256 under the shared key secret and sends the hex digest.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass

from .errors import PaymentVerificationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentCallback:
    """Identifiers the gateway hands back after a successful payment."""

    order_id: str
    payment_id: str
    signature: str


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_payment_signature(callback: PaymentCallback, secret: str) -> PaymentCallback:
    """
    Return the callback unchanged if its signature is authentic.

    Raises:
        PaymentVerificationFailed: missing fields or signature mismatch.
    """
    if not (callback.order_id and callback.payment_id and callback.signature):
        raise PaymentVerificationFailed("missing callback fields")
    if not secret:
        raise PaymentVerificationFailed("verification secret not configured")

    expected = compute_signature(callback.order_id, callback.payment_id, secret)
    # compare_digest does not stop at the first differing byte
    if not hmac.compare_digest(expected, callback.signature.strip().lower()):
        logger.warning(f"🚫 Signature mismatch for gateway order {callback.order_id} payment {callback.payment_id}")
        raise PaymentVerificationFailed()
    return callback
