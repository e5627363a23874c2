"""
Razorpay payment gateway adapter.

Order creation goes through the Razorpay SDK. Signature checks are plain
HMAC-SHA256 so they do not depend on the SDK or on network access.
"""
import hmac
import hashlib
import random
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict
import razorpay
from .config import config
from .errors import ExternalError
from .logging import logger

_razorpay_client = None


def get_razorpay_client():
    """Get or create the Razorpay client."""
    global _razorpay_client
    if _razorpay_client is None:
        if not config.RAZORPAY_KEY_ID or not config.RAZORPAY_KEY_SECRET:
            raise ExternalError('Payment gateway is not configured')
        _razorpay_client = razorpay.Client(auth=(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET))
    return _razorpay_client


def to_minor_units(amount: Any) -> int:
    """Major currency units to minor units (x100, rounded half-up)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def new_receipt() -> str:
    """Receipt id: rcpt_ followed by 10 digits."""
    return f"rcpt_{random.randint(0, 10 ** 10 - 1):010d}"


def create_order(amount_minor: int, currency: str, receipt: str, notes: Dict[str, str]) -> Dict[str, Any]:
    """
    Create a gateway order.

    Args:
        amount_minor: Amount in minor units (paise for INR)
        currency: ISO currency code
        receipt: Merchant receipt id
        notes: Key/value notes echoed back in webhooks

    Returns:
        The gateway order (contains 'id', 'amount', 'currency')

    Raises:
        ExternalError: the gateway rejected the request or could not be reached
    """
    try:
        order = get_razorpay_client().order.create(data={
            'amount': amount_minor,
            'currency': currency,
            'receipt': receipt,
            'notes': notes
        })
    except ExternalError:
        raise
    except Exception as e:
        logger.error(f"Razorpay order creation failed: {e}")
        raise ExternalError('Payment gateway error, please try again')

    logger.info(f"Created gateway order {order.get('id')} for {amount_minor} {currency}")
    return order


def sign(message: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of `message`."""
    return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()


def verify_signature(message: bytes, signature: str, secret: str) -> bool:
    """Constant-time comparison of `signature` against the expected HMAC."""
    if not signature or not secret:
        return False
    # compare_digest rejects str with non-ASCII characters, so compare bytes
    expected = sign(message, secret).encode('ascii')
    return hmac.compare_digest(expected, str(signature).encode('utf-8'))


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    """Checkout signature: HMAC over `order_id|payment_id` with the key secret."""
    message = f"{order_id}|{payment_id}".encode('utf-8')
    return verify_signature(message, signature, config.RAZORPAY_KEY_SECRET)


def verify_webhook_signature(raw_body: bytes, signature: str) -> bool:
    """Webhook signature: HMAC over the exact request bytes with the webhook secret."""
    return verify_signature(raw_body, signature, config.RAZORPAY_WEBHOOK_SECRET)
