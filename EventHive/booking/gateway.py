"""
Payment gateway boundary.

The pipeline only needs two calls from the gateway: open an order for an
amount, and refund a captured payment. RazorpayGateway is the production
implementation; the active class is chosen by settings.PAYMENT_GATEWAY_CLASS.
"""
import logging
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.utils.module_loading import import_string

from .errors import GatewayError

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Gateways take amounts in the smallest currency unit (paise, cents)"""
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class PaymentGateway(ABC):
    """Interface for the external payment gateway"""

    name = 'GATEWAY'

    @abstractmethod
    def create_order(self, amount: Decimal, currency: str, receipt: str, metadata: dict) -> dict:
        """Open an order and return at least {'id': <gateway order id>}"""
        ...

    @abstractmethod
    def refund(self, payment_id: str, amount: Decimal, notes: dict | None = None) -> dict:
        """Refund a captured payment and return at least {'id': <refund id>}"""
        ...

    @property
    def public_key(self) -> str:
        """Key the buyer's browser needs to open the checkout widget"""
        return ''


class RazorpayGateway(PaymentGateway):
    name = 'RAZORPAY'

    def __init__(self, key_id: str | None = None, key_secret: str | None = None):
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        self._client = None

    @property
    def public_key(self) -> str:
        return self.key_id

    def _razorpay_client(self):
        if not self.key_id or not self.key_secret:
            raise GatewayError("Payment gateway is not configured")
        if self._client is None:
            import razorpay

            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    def create_order(self, amount: Decimal, currency: str, receipt: str, metadata: dict) -> dict:
        client = self._razorpay_client()
        try:
            order = client.order.create({
                'amount': to_minor_units(amount),
                'currency': currency,
                'receipt': receipt[:40],
                # Razorpay notes are flat string maps
                'notes': {key: str(value) for key, value in metadata.items()},
            })
        except Exception as e:
            logger.error(f"❌ Razorpay order creation failed for {receipt}: {e}")
            raise GatewayError("Failed to create payment order") from e
        return order

    def refund(self, payment_id: str, amount: Decimal, notes: dict | None = None) -> dict:
        client = self._razorpay_client()
        try:
            return client.payment.refund(payment_id, {
                'amount': to_minor_units(amount),
                'notes': {key: str(value) for key, value in (notes or {}).items()},
            })
        except Exception as e:
            logger.error(f"❌ Razorpay refund failed for payment {payment_id}: {e}")
            raise GatewayError("Failed to refund payment") from e


def get_gateway() -> PaymentGateway:
    """Instantiate the configured gateway"""
    return import_string(settings.PAYMENT_GATEWAY_CLASS)()
