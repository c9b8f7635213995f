import uuid

from django.conf import settings
from django.db import models

from catalog.models import Event, TicketTier
from EventHive.enums import BookingStatus, PaymentStatus, ReconciliationReason, ReconciliationStatus


class Booking(models.Model):
    """
    One buyer's confirmed checkout, possibly spanning several tiers.

    Rows are only ever inserted by booking.committer once payment has been
    verified; status changes go through booking.state.transition().
    """
    reference = models.CharField(max_length=64, unique=True)
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='bookings')
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name='bookings')
    subtotal_amount = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    final_amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    booking_status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    # Contact snapshot taken at purchase time, not a live link to the profile
    attendee_name = models.CharField(max_length=255)
    attendee_email = models.EmailField()
    attendee_phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    confirmed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='booking_user_date_idx'),
            models.Index(fields=['event', 'booking_status'], name='booking_event_status_idx'),
        ]

    def __str__(self):
        return f"{self.reference} ({self.booking_status}/{self.payment_status})"

    @property
    def is_confirmed(self):
        return self.booking_status == BookingStatus.CONFIRMED

    @property
    def ticket_count(self):
        return sum(item.quantity for item in self.line_items.all())


class BookingLineItem(models.Model):
    """Per-tier quantity with the unit price frozen at purchase time"""
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='line_items')
    tier = models.ForeignKey(TicketTier, on_delete=models.PROTECT, related_name='line_items')
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    line_total = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ['id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name='line_item_quantity_positive'),
        ]

    def __str__(self):
        return f"{self.booking.reference}: {self.quantity} x {self.tier.name}"


class PaymentRecord(models.Model):
    """
    Settled gateway payment, one per booking.

    The (gateway_order_id, gateway_payment_id) pair is unique so a
    redelivered callback can never produce a second booking.
    """
    booking = models.OneToOneField(Booking, on_delete=models.PROTECT, related_name='payment')
    gateway = models.CharField(max_length=30, default='RAZORPAY')
    gateway_order_id = models.CharField(max_length=100)
    gateway_payment_id = models.CharField(max_length=100)
    gateway_signature = models.CharField(max_length=256)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.COMPLETED)
    gateway_response = models.JSONField(default=dict, blank=True)
    completed_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['gateway_order_id', 'gateway_payment_id'],
                name='payment_unique_gateway_pair',
            ),
        ]

    def __str__(self):
        return f"{self.gateway_order_id}/{self.gateway_payment_id} {self.amount} {self.currency}"


class Ticket(models.Model):
    """One admission unit; numbered deterministically from its booking"""
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='tickets')
    line_item = models.ForeignKey(BookingLineItem, on_delete=models.CASCADE, related_name='tickets')
    tier = models.ForeignKey(TicketTier, on_delete=models.PROTECT, related_name='tickets')
    sequence = models.PositiveIntegerField()
    ticket_number = models.CharField(max_length=80, unique=True)
    verification_token = models.CharField(max_length=64, unique=True)
    scan_code = models.CharField(max_length=20, unique=True)
    attendee_name = models.CharField(max_length=255)
    attendee_email = models.EmailField()
    attendee_phone = models.CharField(max_length=20, blank=True)
    issued_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['line_item_id', 'sequence']
        constraints = [
            models.UniqueConstraint(fields=['line_item', 'sequence'], name='ticket_unique_line_sequence'),
        ]

    def __str__(self):
        return self.ticket_number


class PaymentReconciliation(models.Model):
    """
    Captured money that needs to go back to the buyer.

    Raised when a verified payment could not be committed (no booking
    exists) or when a confirmed booking is cancelled.
    """
    gateway_order_id = models.CharField(max_length=100)
    gateway_payment_id = models.CharField(max_length=100)
    booking = models.OneToOneField(Booking, on_delete=models.PROTECT, related_name='reconciliation', blank=True, null=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='payment_reconciliations')
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name='payment_reconciliations')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    reason = models.CharField(max_length=30, choices=ReconciliationReason.choices)
    status = models.CharField(max_length=20, choices=ReconciliationStatus.choices, default=ReconciliationStatus.OPEN)
    cart = models.JSONField(default=list, blank=True)
    gateway_refund_id = models.CharField(max_length=100, blank=True)
    last_error = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['gateway_order_id', 'gateway_payment_id'],
                name='reconciliation_unique_gateway_pair',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'created_at'], name='reconciliation_status_idx'),
        ]

    def __str__(self):
        return f"{self.reason} {self.gateway_payment_id} ({self.status})"
