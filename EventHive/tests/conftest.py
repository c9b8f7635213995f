"""
Common fixtures: users, an event with ticket tiers, an authenticated DRF
client and helpers that walk a cart through the gateway callback.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from booking.cart import Cart
from booking.orders import Attendee, OrderService
from booking.verification import PaymentCallback, compute_signature
from catalog.models import Event, TicketTier
from user.models import User

from .fakes import FakeGateway


@pytest.fixture(autouse=True)
def reset_gateway():
    FakeGateway.reset()
    cache.clear()
    yield
    FakeGateway.reset()


@pytest.fixture
def organizer(db):
    return User.objects.create_user(username="organizer", password="pass12345", email="org@example.com")


@pytest.fixture
def user(db):
    """Create a test buyer."""
    return User.objects.create_user(
        username="buyer",
        password="pass12345",
        email="buyer@example.com",
        first_name="Asha",
        last_name="Rao",
        phone_number="9999999999",
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(username="buyer2", password="pass12345", email="buyer2@example.com")


@pytest.fixture
def event(organizer):
    return Event.objects.create(
        title="Indie Night",
        venue_name="Blue Frog",
        venue_address="Mumbai",
        start_datetime=timezone.now() + timedelta(days=30),
        organizer=organizer,
    )


@pytest.fixture
def ga_tier(event):
    return TicketTier.objects.create(
        event=event, name="General Admission", price=Decimal("500.00"), total_quantity=100, max_per_user=6
    )


@pytest.fixture
def vip_tier(event):
    return TicketTier.objects.create(
        event=event, name="VIP", price=Decimal("1500.00"), total_quantity=10, max_per_user=2
    )


@pytest.fixture
def free_tier(event):
    return TicketTier.objects.create(
        event=event, name="Community Pass", price=Decimal("0.00"), total_quantity=5, max_per_user=2
    )


@pytest.fixture
def api_client(user):
    """DRF client authenticated with the buyer's token."""
    token = Token.objects.create(user=user)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")
    return client


@pytest.fixture
def attendee(user):
    return Attendee.from_user(user)


def signed_callback(order_id, payment_id):
    return PaymentCallback(
        order_id=order_id,
        payment_id=payment_id,
        signature=compute_signature(order_id, payment_id, settings.RAZORPAY_KEY_SECRET),
    )


@pytest.fixture
def open_checkout(user, attendee):
    """Open a gateway order for a cart and return (CheckoutOrder, service)."""
    def _open(event, pairs, buyer=None):
        service = OrderService()
        quote = service.quote(buyer or user, event.pk, Cart.from_pairs(pairs))
        return service.open_order(quote, attendee)
    return _open
