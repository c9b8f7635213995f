from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command

from booking.committer import BookingCommitter
from booking.errors import DuplicatePaymentCallback, GatewayError
from booking.models import Booking, PaymentReconciliation, Ticket
from booking.reconciliation import apply_refund, open_reconciliation
from booking.services import settle_payment
from booking.orders import OrderService
from catalog.models import TicketTier
from EventHive.enums import BookingStatus, ReconciliationReason, ReconciliationStatus

from .conftest import signed_callback
from .fakes import FakeGateway

pytestmark = pytest.mark.django_db


@pytest.fixture
def reconciliation(user, event):
    return open_reconciliation(
        order_id="order_9",
        payment_id="pay_9",
        user=user,
        event_id=event.pk,
        amount=Decimal("500.00"),
        currency="INR",
        reason=ReconciliationReason.OVERSOLD,
        cart=[[1, 1]],
    )


def test_open_is_idempotent_per_payment(reconciliation, user, event):
    again = open_reconciliation(
        order_id="order_9",
        payment_id="pay_9",
        user=user,
        event_id=event.pk,
        amount=Decimal("500.00"),
        currency="INR",
        reason=ReconciliationReason.OVERSOLD,
    )
    assert again.pk == reconciliation.pk


def test_refund_applied_once(reconciliation):
    gateway = FakeGateway()

    first = apply_refund(reconciliation.pk, gateway)
    second = apply_refund(reconciliation.pk, gateway)

    assert first.status == ReconciliationStatus.REFUNDED
    assert second.status == ReconciliationStatus.REFUNDED
    assert len(FakeGateway.refunds) == 1
    assert first.gateway_refund_id == FakeGateway.refunds[0]["id"]


def test_refund_failure_recorded_and_raised(reconciliation):
    FakeGateway.fail_refunds = True

    with pytest.raises(GatewayError):
        apply_refund(reconciliation.pk, FakeGateway())

    reconciliation.refresh_from_db()
    assert reconciliation.status == ReconciliationStatus.OPEN
    assert reconciliation.attempts == 1
    assert "refund" in reconciliation.last_error


def test_reconcile_command_retries_open_items(reconciliation):
    FakeGateway.fail_refunds = True
    with pytest.raises(GatewayError):
        apply_refund(reconciliation.pk, FakeGateway())
    FakeGateway.fail_refunds = False

    out = StringIO()
    call_command("reconcile_payments", stdout=out)

    reconciliation.refresh_from_db()
    assert reconciliation.status == ReconciliationStatus.REFUNDED
    assert reconciliation.attempts == 2
    assert "Refunded: 1" in out.getvalue()


def test_reconcile_command_dry_run(reconciliation):
    out = StringIO()
    call_command("reconcile_payments", "--dry-run", stdout=out)

    reconciliation.refresh_from_db()
    assert reconciliation.status == ReconciliationStatus.OPEN
    assert "pay_9" in out.getvalue()
    assert FakeGateway.refunds == []


def test_reissue_command_repairs_missing_tickets(user, event, ga_tier, open_checkout):
    order = open_checkout(event, [(ga_tier.pk, 2)])
    booking = settle_payment(user, signed_callback(order.order_id, "pay_1"), order.checkout_token, OrderService())
    Ticket.objects.filter(booking=booking).delete()

    out = StringIO()
    call_command("reissue_tickets", stdout=out)

    assert Ticket.objects.filter(booking=booking).count() == 2
    assert booking.reference in out.getvalue()


def test_periodic_sweep_requeues_open_refunds(reconciliation):
    from booking.tasks import retry_open_refunds

    assert retry_open_refunds() == 1

    reconciliation.refresh_from_db()
    assert reconciliation.status == ReconciliationStatus.REFUNDED


class UncheckedCommitter(BookingCommitter):
    """Never looks for an earlier settlement, so only the tier locks stop a replay."""

    def _ensure_not_settled(self, payment):
        pass


def test_replay_of_settled_payment_is_never_refunded(user, event, vip_tier, open_checkout):
    order = open_checkout(event, [(vip_tier.pk, 1)])
    TicketTier.objects.filter(pk=vip_tier.pk).update(remaining_quantity=1)
    callback = signed_callback(order.order_id, "pay_1")
    booking = settle_payment(user, callback, order.checkout_token, OrderService())

    with pytest.raises(DuplicatePaymentCallback) as exc:
        settle_payment(user, callback, order.checkout_token, OrderService(), UncheckedCommitter())

    assert exc.value.booking_reference == booking.reference
    assert not PaymentReconciliation.objects.exists()
    assert FakeGateway.refunds == []
    booking.refresh_from_db()
    assert booking.booking_status == BookingStatus.CONFIRMED
    assert Booking.objects.count() == 1
