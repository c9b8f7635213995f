"""
Booking Committer: turns a verified payment into a durable booking.

This module is the only writer of TicketTier.remaining_quantity. Every
write happens inside one transaction holding row locks on the tiers it
touches, so two commits for the same tier are serialized by the database
and the second one sees the first one's decrement.
"""
import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.crypto import get_random_string

from catalog.reader import CatalogReader
from EventHive.enums import BookingStatus, PaymentStatus

from .cart import Cart
from .errors import (
    AmountMismatch,
    BookingNotFound,
    DuplicatePaymentCallback,
    OversoldAttempt,
    TierNotFound,
)
from .models import Booking, BookingLineItem, PaymentRecord, PaymentReconciliation
from .orders import Attendee
from .state import transition
from .verification import PaymentCallback

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'


def generate_booking_reference(event_id) -> str:
    """Human-facing reference, unique across all bookings"""
    return f"EVT-{event_id}-{get_random_string(10, REFERENCE_ALPHABET)}"


class BookingCommitter:
    """
    Atomic settlement of a cart into Booking, line items and PaymentRecord.
    """

    def __init__(self, reader=CatalogReader) -> None:
        self._reader = reader

    @staticmethod
    def _ensure_not_settled(payment: PaymentCallback) -> None:
        record = (
            PaymentRecord.objects.select_related('booking')
            .filter(gateway_order_id=payment.order_id, gateway_payment_id=payment.payment_id)
            .first()
        )
        if record is not None:
            raise DuplicatePaymentCallback(payment.order_id, payment.payment_id, record.booking.reference)

        # A payment already queued for refund must not be booked on replay
        if PaymentReconciliation.objects.filter(
            gateway_order_id=payment.order_id, gateway_payment_id=payment.payment_id
        ).exists():
            raise DuplicatePaymentCallback(payment.order_id, payment.payment_id)

    def commit(
        self,
        *,
        user,
        event_id,
        cart: Cart,
        attendee: Attendee,
        amount: Decimal,
        currency: str,
        payment: PaymentCallback | None = None,
        gateway_name: str = 'RAZORPAY',
        gateway_response: dict | None = None,
    ) -> Booking:
        """
        Create a CONFIRMED/COMPLETED booking for a cart, all or nothing.

        payment is None only for free carts, which skip the gateway.

        Raises:
            DuplicatePaymentCallback: the gateway pair was already settled.
            OversoldAttempt: a tier no longer has enough remaining inventory.
            AmountMismatch: current prices do not add up to the paid amount.
            TierNotFound: a cart tier does not belong to the event.
        """
        with transaction.atomic():
            if payment is not None:
                self._ensure_not_settled(payment)

            # 1. re-read each tier under a row lock
            tiers = self._reader.lock_tiers(event_id, cart.tier_ids)
            if payment is not None:
                # a replay that waited on the locks sees the winner's PaymentRecord now
                self._ensure_not_settled(payment)
            for line in cart:
                tier = tiers.get(line.tier_id)
                if tier is None:
                    raise TierNotFound(line.tier_id)
                # 2. inventory may have gone while the buyer was at the gateway
                if tier.remaining_quantity < line.quantity:
                    logger.warning(
                        f"❌ INSUFFICIENT TICKETS at commit: tier {tier.pk} - "
                        f"Available: {tier.remaining_quantity}, Requested: {line.quantity}"
                    )
                    raise OversoldAttempt(tier.pk, line.quantity, tier.remaining_quantity)

            subtotal = sum(
                (tiers[line.tier_id].price * line.quantity for line in cart), Decimal('0.00')
            )
            if subtotal != Decimal(amount):
                logger.warning(f"❌ Amount mismatch at commit: priced {subtotal}, paid {amount}")
                raise AmountMismatch(subtotal, Decimal(amount))

            # 3. decrement inventory
            for line in cart:
                tier = tiers[line.tier_id]
                tier.remaining_quantity -= line.quantity
                tier.save(update_fields=['remaining_quantity', 'updated_at'])

            # 4. booking and line items, prices frozen at the locked read
            booking = Booking(
                reference=generate_booking_reference(event_id),
                user=user,
                event_id=event_id,
                subtotal_amount=subtotal,
                discount_amount=Decimal('0.00'),
                final_amount=subtotal,
                currency=currency,
                attendee_name=attendee.name,
                attendee_email=attendee.email,
                attendee_phone=attendee.phone,
            )
            transition(booking, BookingStatus.CONFIRMED, PaymentStatus.COMPLETED)
            booking.save()

            for line in cart:
                tier = tiers[line.tier_id]
                BookingLineItem.objects.create(
                    booking=booking,
                    tier=tier,
                    quantity=line.quantity,
                    unit_price=tier.price,
                    line_total=tier.price * line.quantity,
                )

            # 5. payment record; the unique pair catches a concurrent replay
            if payment is not None:
                try:
                    PaymentRecord.objects.create(
                        booking=booking,
                        gateway=gateway_name,
                        gateway_order_id=payment.order_id,
                        gateway_payment_id=payment.payment_id,
                        gateway_signature=payment.signature,
                        amount=subtotal,
                        currency=currency,
                        status=PaymentStatus.COMPLETED,
                        gateway_response=gateway_response or {},
                        completed_at=timezone.now(),
                    )
                except IntegrityError:
                    logger.warning(f"⚠️ Concurrent replay of gateway payment {payment.payment_id}")
                    raise DuplicatePaymentCallback(payment.order_id, payment.payment_id)

        logger.info(
            f"🎫 Booking {booking.reference} committed: {cart.total_quantity} tickets, "
            f"{booking.final_amount} {booking.currency}"
        )
        return booking

    def release(self, booking_id, user=None) -> Booking:
        """
        Cancel a confirmed booking and return its units to inventory.

        Raises:
            BookingNotFound: no such booking (for this user, when given).
            InvalidStateTransition: the booking is not CONFIRMED.
        """
        with transaction.atomic():
            queryset = Booking.objects.select_for_update()
            if user is not None:
                queryset = queryset.filter(user=user)
            booking = queryset.filter(pk=booking_id).first()
            if booking is None:
                raise BookingNotFound(booking_id)

            transition(booking, BookingStatus.CANCELLED, booking.payment_status)

            items = list(booking.line_items.all())
            tiers = self._reader.lock_tiers(booking.event_id, [item.tier_id for item in items])
            for item in items:
                tier = tiers[item.tier_id]
                tier.remaining_quantity += item.quantity
                tier.save(update_fields=['remaining_quantity', 'updated_at'])

            booking.save(update_fields=['booking_status', 'payment_status', 'cancelled_at'])

        logger.info(f"🔓 Booking {booking.reference} cancelled, inventory released")
        return booking
