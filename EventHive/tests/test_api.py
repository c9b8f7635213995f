"""
Checkout flow through the HTTP API with the fake gateway and eager Celery.
"""
from decimal import Decimal

import pytest
from django.core import mail
from django.urls import reverse

from booking.committer import BookingCommitter
from booking.models import Booking, PaymentReconciliation, PaymentRecord, Ticket
from catalog.models import TicketTier
from EventHive.enums import BookingStatus, PaymentStatus, ReconciliationReason, ReconciliationStatus

from .conftest import signed_callback
from .fakes import FakeGateway

pytestmark = pytest.mark.django_db


def open_order(api_client, event, lines):
    response = api_client.post(
        reverse("create_checkout_order"),
        {
            "event_id": event.pk,
            "ticket_types": [{"ticket_type_id": t, "quantity": q} for t, q in lines],
        },
        format="json",
    )
    assert response.status_code == 201, response.data
    return response.data


def verify(api_client, order, payment_id="pay_1", signature=None):
    callback = signed_callback(order["order_id"], payment_id)
    return api_client.post(
        reverse("verify_payment"),
        {
            "razorpay_order_id": callback.order_id,
            "razorpay_payment_id": callback.payment_id,
            "razorpay_signature": signature or callback.signature,
            "checkout_token": order["checkout_token"],
        },
        format="json",
    )


def test_paid_checkout_happy_path(api_client, event, ga_tier):
    order = open_order(api_client, event, [(ga_tier.pk, 2)])

    assert order["payment_required"] is True
    assert order["amount"] == 100000
    assert order["currency"] == "INR"
    assert order["key"] == "rzp_test_key"

    response = verify(api_client, order)

    assert response.status_code == 201, response.data
    booking = response.data["booking"]
    assert booking["booking_status"] == BookingStatus.CONFIRMED
    assert booking["payment_status"] == PaymentStatus.COMPLETED
    assert Decimal(booking["final_amount"]) == Decimal("1000.00")
    assert len(booking["tickets"]) == 2

    ga_tier.refresh_from_db()
    assert ga_tier.remaining_quantity == 98
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["buyer@example.com"]


def test_order_requires_authentication(event, ga_tier):
    from rest_framework.test import APIClient

    response = APIClient().post(
        reverse("create_checkout_order"),
        {"event_id": event.pk, "ticket_types": [{"ticket_type_id": ga_tier.pk, "quantity": 1}]},
        format="json",
    )
    assert response.status_code == 401


def test_order_validation_errors(api_client, event, ga_tier):
    response = api_client.post(
        reverse("create_checkout_order"), {"event_id": event.pk, "ticket_types": []}, format="json"
    )
    assert response.status_code == 400

    response = api_client.post(
        reverse("create_checkout_order"),
        {"event_id": event.pk, "ticket_types": [{"ticket_type_id": ga_tier.pk, "quantity": 7}]},
        format="json",
    )
    assert response.status_code == 400
    assert response.data["code"] == "QUANTITY_EXCEEDS_CAP"
    assert FakeGateway.orders == []


def test_order_insufficient_inventory_is_conflict(api_client, event, vip_tier):
    TicketTier.objects.filter(pk=vip_tier.pk).update(remaining_quantity=1)

    response = api_client.post(
        reverse("create_checkout_order"),
        {"event_id": event.pk, "ticket_types": [{"ticket_type_id": vip_tier.pk, "quantity": 2}]},
        format="json",
    )
    assert response.status_code == 409
    assert response.data["code"] == "INSUFFICIENT_INVENTORY"


def test_gateway_failure_is_bad_gateway(api_client, event, ga_tier):
    FakeGateway.fail_orders = True

    response = api_client.post(
        reverse("create_checkout_order"),
        {"event_id": event.pk, "ticket_types": [{"ticket_type_id": ga_tier.pk, "quantity": 1}]},
        format="json",
    )
    assert response.status_code == 502


def test_forged_signature_creates_nothing(api_client, event, ga_tier):
    order = open_order(api_client, event, [(ga_tier.pk, 2)])

    response = verify(api_client, order, signature="f" * 64)

    assert response.status_code == 400
    assert response.data["code"] == "PAYMENT_VERIFICATION_FAILED"
    assert not Booking.objects.exists()
    assert not PaymentRecord.objects.exists()
    ga_tier.refresh_from_db()
    assert ga_tier.remaining_quantity == 100
    assert mail.outbox == []


def test_replayed_callback_is_conflict(api_client, event, ga_tier):
    order = open_order(api_client, event, [(ga_tier.pk, 2)])
    first = verify(api_client, order)

    replay = verify(api_client, order)

    assert replay.status_code == 409
    assert replay.data["code"] == "DUPLICATE_PAYMENT_CALLBACK"
    assert replay.data["booking_reference"] == first.data["booking"]["reference"]
    assert Booking.objects.count() == 1
    assert Ticket.objects.count() == 2
    ga_tier.refresh_from_db()
    assert ga_tier.remaining_quantity == 98


def test_callback_for_another_order_rejected(api_client, event, ga_tier):
    order = open_order(api_client, event, [(ga_tier.pk, 1)])
    other = open_order(api_client, event, [(ga_tier.pk, 1)])

    order["checkout_token"] = other["checkout_token"]
    response = verify(api_client, order)

    assert response.status_code == 400
    assert not Booking.objects.exists()


def test_sold_out_after_payment_opens_refund(api_client, event, vip_tier):
    order = open_order(api_client, event, [(vip_tier.pk, 2)])
    TicketTier.objects.filter(pk=vip_tier.pk).update(remaining_quantity=1)

    response = verify(api_client, order)

    assert response.status_code == 409
    assert response.data["code"] == "OVERSOLD_ATTEMPT"
    reconciliation = PaymentReconciliation.objects.get(pk=response.data["reconciliation_id"])
    assert reconciliation.reason == ReconciliationReason.OVERSOLD
    assert reconciliation.status == ReconciliationStatus.REFUNDED
    assert reconciliation.amount == Decimal("3000.00")
    assert FakeGateway.refunds[0]["payment_id"] == "pay_1"
    assert not Booking.objects.exists()

    # the refunded payment cannot be booked by replaying it
    TicketTier.objects.filter(pk=vip_tier.pk).update(remaining_quantity=10)
    replay = verify(api_client, order)
    assert replay.status_code == 409
    assert replay.data["code"] == "DUPLICATE_PAYMENT_CALLBACK"
    assert not Booking.objects.exists()


def test_free_checkout_skips_gateway(api_client, event, free_tier):
    response = api_client.post(
        reverse("create_checkout_order"),
        {"event_id": event.pk, "ticket_types": [{"ticket_type_id": free_tier.pk, "quantity": 2}]},
        format="json",
    )

    assert response.status_code == 201
    assert response.data["payment_required"] is False
    assert len(response.data["booking"]["tickets"]) == 2
    assert FakeGateway.orders == []
    assert not PaymentRecord.objects.exists()
    assert len(mail.outbox) == 1


def test_free_checkout_losing_race_is_sold_out(api_client, event, free_tier, monkeypatch):
    class SoldOutMeanwhile(BookingCommitter):
        def commit(self, **kwargs):
            # another buyer takes the last passes after the quote
            TicketTier.objects.filter(pk=free_tier.pk).update(remaining_quantity=0)
            return super().commit(**kwargs)

    monkeypatch.setattr("booking.services.BookingCommitter", SoldOutMeanwhile)
    response = api_client.post(
        reverse("create_checkout_order"),
        {"event_id": event.pk, "ticket_types": [{"ticket_type_id": free_tier.pk, "quantity": 2}]},
        format="json",
    )

    assert response.status_code == 409
    assert response.data["code"] == "INSUFFICIENT_INVENTORY"
    assert "refund" not in response.data["error"]
    assert "reconciliation_id" not in response.data
    assert not Booking.objects.exists()
    assert not PaymentReconciliation.objects.exists()
    assert mail.outbox == []


def test_booking_lookup_is_owner_only(api_client, event, ga_tier, other_user):
    order = open_order(api_client, event, [(ga_tier.pk, 1)])
    booking = verify(api_client, order).data["booking"]

    by_reference = api_client.get(reverse("get_booking", args=[booking["reference"]]))
    by_id = api_client.get(reverse("get_booking_by_id", args=[booking["booking_id"]]))
    assert by_reference.status_code == 200
    assert by_id.data["reference"] == booking["reference"]

    api_client.force_authenticate(user=other_user)
    assert api_client.get(reverse("get_booking", args=[booking["reference"]])).status_code == 404


def test_cancel_refunds_and_restores_inventory(api_client, event, ga_tier):
    order = open_order(api_client, event, [(ga_tier.pk, 2)])
    reference = verify(api_client, order).data["booking"]["reference"]

    response = api_client.post(reverse("cancel_booking", args=[reference]))

    assert response.status_code == 200
    assert response.data["booking"]["booking_status"] == BookingStatus.CANCELLED
    assert response.data["booking"]["payment_status"] == PaymentStatus.REFUNDED
    ga_tier.refresh_from_db()
    assert ga_tier.remaining_quantity == 100
    reconciliation = PaymentReconciliation.objects.get()
    assert reconciliation.reason == ReconciliationReason.CANCELLED
    assert FakeGateway.refunds[0]["amount"] == Decimal("1000.00")

    again = api_client.post(reverse("cancel_booking", args=[reference]))
    assert again.status_code == 409


def test_failed_refund_stays_open(api_client, event, ga_tier):
    order = open_order(api_client, event, [(ga_tier.pk, 1)])
    reference = verify(api_client, order).data["booking"]["reference"]
    FakeGateway.fail_refunds = True

    response = api_client.post(reverse("cancel_booking", args=[reference]))

    assert response.status_code == 200
    assert response.data["booking"]["payment_status"] == PaymentStatus.COMPLETED
    reconciliation = PaymentReconciliation.objects.get()
    assert reconciliation.status == ReconciliationStatus.OPEN
    assert reconciliation.attempts >= 1
    assert reconciliation.last_error


def test_ticket_verification_endpoint(api_client, event, ga_tier):
    order = open_order(api_client, event, [(ga_tier.pk, 1)])
    verify(api_client, order)
    ticket = Ticket.objects.get()

    api_client.credentials()
    response = api_client.get(reverse("verify_ticket", args=[ticket.verification_token]))

    assert response.status_code == 200
    assert response.data["ticket_number"] == ticket.ticket_number
    assert response.data["valid"] is True
    assert "attendee_email" not in response.data

    missing = api_client.get(reverse("verify_ticket", args=["0" * 40]))
    assert missing.status_code == 404


def test_availability_endpoint(api_client, event, ga_tier, vip_tier):
    response = api_client.get(reverse("check_availability", args=[event.pk]))

    assert response.status_code == 200
    assert response.data["total_capacity"] == 110
    assert response.data["available_tickets"] == 110
    assert response.data["is_sold_out"] is False
    assert [tier["name"] for tier in response.data["tiers"]] == ["General Admission", "VIP"]

    assert api_client.get(reverse("check_availability", args=[999])).status_code == 404


def test_availability_refreshed_after_sale(api_client, event, ga_tier, django_capture_on_commit_callbacks):
    api_client.get(reverse("check_availability", args=[event.pk]))

    order = open_order(api_client, event, [(ga_tier.pk, 2)])
    with django_capture_on_commit_callbacks(execute=True):
        verify(api_client, order)

    response = api_client.get(reverse("check_availability", args=[event.pk]))
    assert response.data["available_tickets"] == 98
