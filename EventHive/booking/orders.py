"""
Order Service: prices a cart server-side and opens a gateway order.

Nothing is persisted here. The validated cart, amount and attendee
snapshot travel in a signed checkout token that the gateway callback has
to present again, so an abandoned checkout leaves no row and holds no
inventory.
"""
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.core import signing
from django.utils import timezone

from catalog.reader import CatalogReader

from .cart import Cart
from .errors import (
    EventNotFound,
    InsufficientInventory,
    MixedCurrency,
    PaymentVerificationFailed,
    QuantityExceedsCap,
    StaleOrderCallback,
    TierInactive,
    TierNotFound,
)
from .gateway import PaymentGateway, get_gateway, to_minor_units

logger = logging.getLogger(__name__)

CHECKOUT_TOKEN_SALT = 'booking.checkout'


@dataclass(frozen=True)
class Attendee:
    """Contact details captured at purchase time."""

    name: str
    email: str
    phone: str = ''

    @classmethod
    def from_user(cls, user, name=None, email=None, phone=None):
        return cls(
            name=name or user.get_full_name() or user.username,
            email=email or user.email,
            phone=phone or user.phone_number or '',
        )

    def as_dict(self) -> dict:
        return {'name': self.name, 'email': self.email, 'phone': self.phone}


@dataclass(frozen=True)
class PricedLine:
    tier_id: int
    tier_name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Quote:
    """Authoritative server-side price of a cart."""

    event: object
    buyer_id: int
    cart: Cart
    lines: tuple[PricedLine, ...]
    currency: str

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal('0.00'))

    @property
    def is_free(self) -> bool:
        return self.total == 0


@dataclass(frozen=True)
class CheckoutOrder:
    """What the buyer's browser needs to complete payment at the gateway."""

    order_id: str
    amount: Decimal
    currency: str
    receipt: str
    key_id: str
    checkout_token: str

    @property
    def amount_minor(self) -> int:
        return to_minor_units(self.amount)


@dataclass(frozen=True)
class Checkout:
    """Order details recovered from a checkout token at callback time."""

    order_id: str
    event_id: int
    buyer_id: int
    cart: Cart
    amount: Decimal
    currency: str
    receipt: str
    attendee: Attendee
    issued_at: float = field(default=0.0)


def build_receipt(event_id, buyer_id) -> str:
    """Audit reference embedding event, buyer and time; not a security control"""
    return f"receipt_{event_id}_{buyer_id}_{int(time.time() * 1000)}"


class OrderService:
    """Service for pricing carts and opening gateway orders."""

    def __init__(self, gateway: PaymentGateway | None = None, reader=CatalogReader) -> None:
        self._gateway = gateway
        self._reader = reader

    @property
    def gateway(self) -> PaymentGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def quote(self, buyer, event_id, cart: Cart, now=None) -> Quote:
        """
        Re-read every tier and price the cart from current catalog values.

        The inventory comparison here is only a soft pre-check; the committer
        repeats it under row locks.

        Raises:
            EventNotFound, TierNotFound, TierInactive, QuantityExceedsCap,
            InsufficientInventory, MixedCurrency
        """
        now = now or timezone.now()
        event = self._reader.get_event(event_id)
        if event is None:
            raise EventNotFound(event_id)

        tiers = self._reader.get_tiers(event.pk, cart.tier_ids)
        lines = []
        for line in cart:
            tier = tiers.get(line.tier_id)
            if tier is None:
                raise TierNotFound(line.tier_id)
            if not tier.is_on_sale(now):
                raise TierInactive(tier.pk, tier.name)
            if line.quantity > tier.max_per_user:
                raise QuantityExceedsCap(tier.pk, line.quantity, tier.max_per_user)
            if line.quantity > tier.remaining_quantity:
                raise InsufficientInventory(tier.pk, line.quantity, tier.remaining_quantity)
            lines.append(PricedLine(
                tier_id=tier.pk,
                tier_name=tier.name,
                quantity=line.quantity,
                unit_price=tier.price,
            ))

        currencies = {tiers[line.tier_id].currency for line in cart}
        if len(currencies) > 1:
            raise MixedCurrency(currencies)

        return Quote(
            event=event,
            buyer_id=buyer.pk,
            cart=cart,
            lines=tuple(lines),
            currency=currencies.pop(),
        )

    def open_order(self, quote: Quote, attendee: Attendee) -> CheckoutOrder:
        """
        Open a gateway order for the quoted total.

        Raises:
            GatewayError: the gateway rejected or could not be reached.
        """
        receipt = build_receipt(quote.event.pk, quote.buyer_id)
        metadata = {
            'event_id': quote.event.pk,
            'user_id': quote.buyer_id,
            'attendee_name': attendee.name,
            'attendee_email': attendee.email,
            'attendee_phone': attendee.phone,
            'ticket_types': quote.cart.to_pairs(),
            'merchant_name': settings.PAYMENT_MERCHANT_NAME,
            'merchant_category': 'event_booking',
        }
        order = self.gateway.create_order(quote.total, quote.currency, receipt, metadata)
        order_id = order['id']

        token = signing.dumps(
            {
                'oid': order_id,
                'eid': quote.event.pk,
                'bid': quote.buyer_id,
                'cart': quote.cart.to_pairs(),
                'amt': str(quote.total),
                'cur': quote.currency,
                'rcp': receipt,
                'att': attendee.as_dict(),
                'iat': time.time(),
            },
            salt=CHECKOUT_TOKEN_SALT,
            compress=True,
        )
        logger.info(f"🧾 Gateway order {order_id} opened: {quote.total} {quote.currency} ({receipt})")
        return CheckoutOrder(
            order_id=order_id,
            amount=quote.total,
            currency=quote.currency,
            receipt=receipt,
            key_id=self.gateway.public_key,
            checkout_token=token,
        )

    def load_checkout(self, token: str, order_id: str, buyer_id) -> Checkout:
        """
        Recover the order opened by open_order() for a gateway callback.

        Raises:
            StaleOrderCallback: the order is older than CHECKOUT_ORDER_TTL_SECONDS.
            PaymentVerificationFailed: the token was tampered with or belongs
                to another order or buyer.
        """
        try:
            payload = signing.loads(
                token,
                salt=CHECKOUT_TOKEN_SALT,
                max_age=settings.CHECKOUT_ORDER_TTL_SECONDS,
            )
        except signing.SignatureExpired:
            logger.warning(f"⏰ Stale callback for gateway order {order_id}")
            raise StaleOrderCallback(order_id)
        except signing.BadSignature:
            raise PaymentVerificationFailed("checkout token tampered")

        if payload['oid'] != order_id:
            raise PaymentVerificationFailed("checkout token belongs to another order")
        if payload['bid'] != buyer_id:
            raise PaymentVerificationFailed("checkout token belongs to another buyer")

        return Checkout(
            order_id=payload['oid'],
            event_id=payload['eid'],
            buyer_id=payload['bid'],
            cart=Cart.from_pairs(payload['cart']),
            amount=Decimal(payload['amt']),
            currency=payload['cur'],
            receipt=payload['rcp'],
            attendee=Attendee(**payload['att']),
            issued_at=payload.get('iat', 0.0),
        )
