"""
Checkout pipeline: order -> verify -> commit -> issue -> notify.

Views call into this module only. Each step raises a PipelineError whose
category decides how the caller surfaces it.
"""
import logging

from django.conf import settings
from django.db import DatabaseError

from EventHive.enums import ReconciliationReason

from .cart import Cart
from .committer import BookingCommitter
from .errors import (
    AmountMismatch,
    BookingNotFound,
    DuplicatePaymentCallback,
    InsufficientInventory,
    OversoldAttempt,
    TicketNotFound,
)
from .issuer import TicketIssuer
from .models import Booking, PaymentRecord, Ticket
from .orders import Attendee, OrderService
from .reconciliation import open_cancellation_refund, open_reconciliation
from .verification import PaymentCallback, verify_payment_signature

logger = logging.getLogger(__name__)


def _queue(task, *args):
    """Hand work to Celery; a broker outage must not fail a settled checkout"""
    try:
        task.delay(*args)
    except Exception as e:
        logger.error(f"❌ Could not queue {task.name}{args}: {e}", exc_info=True)


def _issue_and_notify(booking):
    from .tasks import issue_tickets_task, send_tickets_task

    try:
        tickets = TicketIssuer.issue(booking)
    except DatabaseError as e:
        logger.error(f"❌ Inline ticket issue failed for {booking.reference}: {e}; deferring to worker")
        _queue(issue_tickets_task, booking.pk)
        return []

    _queue(send_tickets_task, booking.pk)
    return tickets


def start_checkout(user, event_id, cart: Cart, attendee: Attendee, order_service=None, committer=None):
    """
    Price the cart and open a gateway order.

    Returns ('order', CheckoutOrder) for a paid cart. A cart that prices to
    zero never reaches the gateway and is committed straight away:
    ('booking', Booking).
    """
    order_service = order_service or OrderService()
    quote = order_service.quote(user, event_id, cart)

    if quote.is_free:
        committer = committer or BookingCommitter()
        try:
            booking = committer.commit(
                user=user,
                event_id=quote.event.pk,
                cart=cart,
                attendee=attendee,
                amount=quote.total,
                currency=quote.currency,
            )
        except OversoldAttempt as e:
            # nothing was charged, so losing the race is a plain sold-out
            raise InsufficientInventory(e.tier_id, e.requested, e.available) from e
        _issue_and_notify(booking)
        return 'booking', booking

    return 'order', order_service.open_order(quote, attendee)


def settle_payment(user, callback: PaymentCallback, checkout_token: str, order_service=None, committer=None):
    """
    Turn a gateway payment callback into a confirmed booking.

    Raises:
        PaymentVerificationFailed, StaleOrderCallback: nothing is written.
        DuplicatePaymentCallback: the pair was settled before.
        OversoldAttempt, AmountMismatch: money was captured but no booking
            exists; a reconciliation is opened and a refund queued first.
    """
    from .tasks import refund_payment_task

    verify_payment_signature(callback, settings.RAZORPAY_KEY_SECRET)

    order_service = order_service or OrderService()
    checkout = order_service.load_checkout(checkout_token, callback.order_id, user.pk)

    committer = committer or BookingCommitter()
    try:
        booking = committer.commit(
            user=user,
            event_id=checkout.event_id,
            cart=checkout.cart,
            attendee=checkout.attendee,
            amount=checkout.amount,
            currency=checkout.currency,
            payment=callback,
            gateway_response={
                'razorpay_order_id': callback.order_id,
                'razorpay_payment_id': callback.payment_id,
                'receipt': checkout.receipt,
            },
        )
    except (OversoldAttempt, AmountMismatch) as e:
        record = (
            PaymentRecord.objects.select_related('booking')
            .filter(gateway_order_id=callback.order_id, gateway_payment_id=callback.payment_id)
            .first()
        )
        if record is not None:
            # a concurrent delivery of the same payment already booked it
            logger.warning(f"🔁 Payment {callback.payment_id} already settled as {record.booking.reference}")
            raise DuplicatePaymentCallback(callback.order_id, callback.payment_id, record.booking.reference) from e

        reason = (
            ReconciliationReason.OVERSOLD if isinstance(e, OversoldAttempt)
            else ReconciliationReason.AMOUNT_MISMATCH
        )
        reconciliation = open_reconciliation(
            order_id=callback.order_id,
            payment_id=callback.payment_id,
            user=user,
            event_id=checkout.event_id,
            amount=checkout.amount,
            currency=checkout.currency,
            reason=reason,
            cart=checkout.cart.to_pairs(),
        )
        e.reconciliation_id = reconciliation.pk
        _queue(refund_payment_task, reconciliation.pk)
        raise

    logger.info(f"✅ Payment {callback.payment_id} settled as booking {booking.reference}")
    _issue_and_notify(booking)
    return booking


def cancel_booking(user, reference: str, committer=None):
    """Cancel a confirmed booking, release its units and queue any refund"""
    from .tasks import refund_payment_task

    booking = get_booking_by_reference(user, reference)
    committer = committer or BookingCommitter()
    booking = committer.release(booking.pk, user=user)

    reconciliation = open_cancellation_refund(booking)
    if reconciliation is not None:
        _queue(refund_payment_task, reconciliation.pk)
        booking.refresh_from_db()
    return booking


def _bookings_for(user):
    return Booking.objects.filter(user=user).select_related('event', 'payment')


def get_booking_by_reference(user, reference: str) -> Booking:
    booking = _bookings_for(user).filter(reference=reference).first()
    if booking is None:
        raise BookingNotFound(reference)
    return booking


def get_booking_by_id(user, booking_id) -> Booking:
    booking = _bookings_for(user).filter(pk=booking_id).first()
    if booking is None:
        raise BookingNotFound(booking_id)
    return booking


def verify_ticket(token: str) -> Ticket:
    """
    Look up a ticket by the token printed in its verification URL.

    Raises:
        TicketNotFound: unknown token.
    """
    ticket = (
        Ticket.objects.select_related('booking', 'booking__event', 'tier')
        .filter(verification_token=token)
        .first()
    )
    if ticket is None:
        logger.warning(f"⚠️ Unknown ticket verification token {token[:8]}...")
        raise TicketNotFound()
    return ticket
