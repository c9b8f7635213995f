"""
Refund bookkeeping for captured payments that cannot stand.

Two cases end up here: a verified payment whose commit lost the inventory
race (or hit a price change), and a paid booking cancelled by its buyer.
"""
import logging

from django.db import transaction
from django.utils import timezone

from EventHive.enums import BookingStatus, PaymentStatus, ReconciliationReason, ReconciliationStatus

from .models import PaymentReconciliation
from .state import can_transition, transition

logger = logging.getLogger(__name__)


def open_reconciliation(*, order_id, payment_id, user, event_id, amount, currency, reason, cart=None, booking=None):
    """Record money to be returned; idempotent per gateway pair"""
    reconciliation, created = PaymentReconciliation.objects.get_or_create(
        gateway_order_id=order_id,
        gateway_payment_id=payment_id,
        defaults={
            'user': user,
            'event_id': event_id,
            'booking': booking,
            'amount': amount,
            'currency': currency,
            'reason': reason,
            'cart': cart or [],
        },
    )
    if created:
        logger.error(
            f"💸 Reconciliation {reconciliation.pk} opened ({reason}) for payment {payment_id}: "
            f"{amount} {currency}"
        )
    return reconciliation


def open_cancellation_refund(booking):
    """Queue a refund for a cancelled paid booking; None for free bookings"""
    payment = getattr(booking, 'payment', None)
    if payment is None or booking.final_amount == 0:
        return None
    return open_reconciliation(
        order_id=payment.gateway_order_id,
        payment_id=payment.gateway_payment_id,
        user=booking.user,
        event_id=booking.event_id,
        amount=payment.amount,
        currency=payment.currency,
        reason=ReconciliationReason.CANCELLED,
        booking=booking,
    )


def apply_refund(reconciliation_id, gateway):
    """
    Refund one open reconciliation through the gateway.

    The row stays locked while the gateway is called so two workers cannot
    refund the same payment twice. A gateway failure is recorded on the
    row, committed, then re-raised so the caller can retry.

    Raises:
        GatewayError: the gateway refused; the row stays OPEN.
    """
    failure = None
    with transaction.atomic():
        reconciliation = (
            PaymentReconciliation.objects.select_for_update()
            .select_related('booking')
            .get(pk=reconciliation_id)
        )
        if reconciliation.status != ReconciliationStatus.OPEN:
            logger.info(f"Reconciliation {reconciliation_id} already {reconciliation.status}")
            return reconciliation

        reconciliation.attempts += 1
        try:
            refund = gateway.refund(
                reconciliation.gateway_payment_id,
                reconciliation.amount,
                notes={'reason': reconciliation.reason, 'order_id': reconciliation.gateway_order_id},
            )
        except Exception as e:
            reconciliation.last_error = str(e)[:2000]
            reconciliation.save(update_fields=['attempts', 'last_error'])
            failure = e
        else:
            reconciliation.status = ReconciliationStatus.REFUNDED
            reconciliation.gateway_refund_id = refund.get('id', '')
            reconciliation.resolved_at = timezone.now()
            reconciliation.last_error = ''
            reconciliation.save(update_fields=['attempts', 'status', 'gateway_refund_id', 'resolved_at', 'last_error'])

            booking = reconciliation.booking
            if booking is not None and can_transition(booking, BookingStatus.CANCELLED, PaymentStatus.REFUNDED):
                transition(booking, BookingStatus.CANCELLED, PaymentStatus.REFUNDED)
                booking.save(update_fields=['booking_status', 'payment_status', 'cancelled_at'])
                booking.payment.status = PaymentStatus.REFUNDED
                booking.payment.save(update_fields=['status'])

    if failure is not None:
        logger.error(f"❌ Refund attempt {reconciliation.attempts} failed for reconciliation {reconciliation_id}: {failure}")
        raise failure

    logger.info(f"✅ Reconciliation {reconciliation_id} refunded ({reconciliation.gateway_refund_id})")
    return reconciliation
