"""
Parallel commits against one tier. SQLite ignores SELECT ... FOR UPDATE,
so this only runs with TEST_USE_POSTGRES=1 against a live PostgreSQL
(configured through the POSTGRES_* variables read by EventHive.settings).
"""
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from django.db import connection, connections

from booking.cart import Cart
from booking.committer import BookingCommitter
from booking.errors import DuplicatePaymentCallback, OversoldAttempt
from booking.models import Booking, PaymentRecord
from booking.orders import Attendee
from catalog.models import TicketTier

from .conftest import signed_callback

pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(connection.vendor != "postgresql", reason="row locks need PostgreSQL"),
]


def test_ten_buyers_five_units(user, event):
    tier = TicketTier.objects.create(event=event, name="Last Call", price=Decimal("100.00"), total_quantity=5)
    attendee = Attendee.from_user(user)

    def attempt(n):
        try:
            BookingCommitter().commit(
                user=user,
                event_id=event.pk,
                cart=Cart.from_pairs([(tier.pk, 1)]),
                attendee=attendee,
                amount=Decimal("100.00"),
                currency="INR",
                payment=signed_callback(f"order_{n}", f"pay_{n}"),
            )
            return "booked"
        except OversoldAttempt:
            return "oversold"
        finally:
            connections.close_all()

    with ThreadPoolExecutor(max_workers=10) as pool:
        outcomes = list(pool.map(attempt, range(10)))

    assert outcomes.count("booked") == 5
    assert outcomes.count("oversold") == 5
    tier.refresh_from_db()
    assert tier.remaining_quantity == 0
    assert Booking.objects.filter(event=event).count() == 5


def test_simultaneous_redeliveries_book_once(user, event):
    tier = TicketTier.objects.create(event=event, name="Encore", price=Decimal("100.00"), total_quantity=1)
    attendee = Attendee.from_user(user)
    callback = signed_callback("order_1", "pay_1")

    def deliver(_):
        try:
            BookingCommitter().commit(
                user=user,
                event_id=event.pk,
                cart=Cart.from_pairs([(tier.pk, 1)]),
                attendee=attendee,
                amount=Decimal("100.00"),
                currency="INR",
                payment=callback,
            )
            return "booked"
        except DuplicatePaymentCallback:
            return "duplicate"
        except OversoldAttempt:
            return "oversold"
        finally:
            connections.close_all()

    with ThreadPoolExecutor(max_workers=5) as pool:
        outcomes = list(pool.map(deliver, range(5)))

    # a redelivery must never look like a lost race, which would refund a booked payment
    assert outcomes.count("booked") == 1
    assert outcomes.count("duplicate") == 4
    assert PaymentRecord.objects.filter(gateway_payment_id="pay_1").count() == 1
    tier.refresh_from_db()
    assert tier.remaining_quantity == 0
