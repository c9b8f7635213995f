import pytest

from booking.errors import InvalidStateTransition
from booking.models import Booking
from booking.state import can_transition, transition
from EventHive.enums import BookingStatus, PaymentStatus


def make_booking(booking_status, payment_status):
    return Booking(booking_status=booking_status, payment_status=payment_status)


def test_confirm_sets_confirmed_at():
    booking = make_booking(BookingStatus.PENDING, PaymentStatus.PENDING)
    transition(booking, BookingStatus.CONFIRMED, PaymentStatus.COMPLETED)

    assert booking.booking_status == BookingStatus.CONFIRMED
    assert booking.payment_status == PaymentStatus.COMPLETED
    assert booking.confirmed_at is not None
    assert booking.cancelled_at is None


def test_cancel_then_refund():
    booking = make_booking(BookingStatus.CONFIRMED, PaymentStatus.COMPLETED)
    transition(booking, BookingStatus.CANCELLED, PaymentStatus.COMPLETED)
    cancelled_at = booking.cancelled_at
    transition(booking, BookingStatus.CANCELLED, PaymentStatus.REFUNDED)

    assert booking.payment_status == PaymentStatus.REFUNDED
    assert booking.cancelled_at == cancelled_at


@pytest.mark.parametrize(
    "current, requested",
    [
        ((BookingStatus.PENDING, PaymentStatus.PENDING), (BookingStatus.CANCELLED, PaymentStatus.REFUNDED)),
        ((BookingStatus.CONFIRMED, PaymentStatus.COMPLETED), (BookingStatus.CONFIRMED, PaymentStatus.COMPLETED)),
        ((BookingStatus.CANCELLED, PaymentStatus.COMPLETED), (BookingStatus.CONFIRMED, PaymentStatus.COMPLETED)),
        ((BookingStatus.CANCELLED, PaymentStatus.REFUNDED), (BookingStatus.CANCELLED, PaymentStatus.COMPLETED)),
    ],
)
def test_disallowed_moves_raise(current, requested):
    booking = make_booking(*current)
    assert not can_transition(booking, *requested)
    with pytest.raises(InvalidStateTransition):
        transition(booking, *requested)
    assert (booking.booking_status, booking.payment_status) == current
