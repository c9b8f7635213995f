"""
Booking state machine.

Checkout itself never persists an intermediate row: a cart is priced,
paid for at the gateway, verified, then committed in one transaction.
A Booking therefore starts life in memory as PENDING/PENDING and is saved
only after confirm. From then on the only moves are cancellation and
refund.
"""
from django.utils import timezone

from EventHive.enums import BookingStatus, PaymentStatus

from .errors import InvalidStateTransition

ALLOWED_TRANSITIONS = {
    (BookingStatus.PENDING, PaymentStatus.PENDING): {
        (BookingStatus.CONFIRMED, PaymentStatus.COMPLETED),
    },
    (BookingStatus.CONFIRMED, PaymentStatus.COMPLETED): {
        (BookingStatus.CANCELLED, PaymentStatus.COMPLETED),
        (BookingStatus.CANCELLED, PaymentStatus.REFUNDED),
    },
    (BookingStatus.CANCELLED, PaymentStatus.COMPLETED): {
        (BookingStatus.CANCELLED, PaymentStatus.REFUNDED),
    },
}


def can_transition(booking, booking_status, payment_status) -> bool:
    current = (booking.booking_status, booking.payment_status)
    return (booking_status, payment_status) in ALLOWED_TRANSITIONS.get(current, set())


def transition(booking, booking_status, payment_status, now=None):
    """
    Move a booking to a new (booking status, payment status) pair.

    Sets the matching timestamps but does not save; callers persist the
    booking inside their own transaction.

    Raises:
        InvalidStateTransition: the move is not in ALLOWED_TRANSITIONS.
    """
    current = (booking.booking_status, booking.payment_status)
    if not can_transition(booking, booking_status, payment_status):
        raise InvalidStateTransition(current, (booking_status, payment_status))

    now = now or timezone.now()
    if booking_status == BookingStatus.CONFIRMED and current[0] != BookingStatus.CONFIRMED:
        booking.confirmed_at = now
    if booking_status == BookingStatus.CANCELLED and current[0] != BookingStatus.CANCELLED:
        booking.cancelled_at = now

    booking.booking_status = booking_status
    booking.payment_status = payment_status
    return booking
