from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


def default_currency():
    return settings.DEFAULT_CURRENCY


class Event(models.Model):
    """
    Event published by an organizer; tickets are sold through its tiers
    """
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    venue_name = models.CharField(max_length=255)
    venue_address = models.CharField(max_length=500, blank=True)
    start_datetime = models.DateTimeField()
    end_datetime = models.DateTimeField(blank=True, null=True)
    organizer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='organized_events')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'start_datetime'], name='event_active_start_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.venue_name}"

    def clean(self):
        if self.end_datetime and self.end_datetime <= self.start_datetime:
            raise ValidationError("Event end must be after its start")


class TicketTier(models.Model):
    """
    A purchasable category of ticket with its own price and quantity pool.

    remaining_quantity is written only by booking.committer; everything else
    treats it as read-only.
    """
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name='ticket_tiers')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default=default_currency)
    total_quantity = models.PositiveIntegerField()
    remaining_quantity = models.PositiveIntegerField(blank=True)
    max_per_user = models.PositiveIntegerField(default=10)
    is_active = models.BooleanField(default=True)
    sale_start_datetime = models.DateTimeField(blank=True, null=True)
    sale_end_datetime = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['price', 'id']
        indexes = [
            models.Index(fields=['event', 'is_active'], name='tier_event_active_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(price__gte=0), name='tier_price_non_negative'),
            models.CheckConstraint(
                condition=Q(remaining_quantity__lte=models.F('total_quantity')),
                name='tier_remaining_within_total',
            ),
        ]

    def __str__(self):
        return f"{self.name} - {self.price} {self.currency}"

    def clean(self):
        if (
            self.sale_start_datetime and self.sale_end_datetime
            and self.sale_end_datetime <= self.sale_start_datetime
        ):
            raise ValidationError("Sale window end must be after its start")

        if self.remaining_quantity is not None and self.remaining_quantity > self.total_quantity:
            raise ValidationError("Remaining quantity cannot exceed total quantity")

        if self.pk:
            stored = TicketTier.objects.filter(pk=self.pk).values('total_quantity', 'remaining_quantity').first()
            if (
                stored
                and stored['total_quantity'] != self.total_quantity
                and stored['remaining_quantity'] < stored['total_quantity']
            ):
                raise ValidationError("Total quantity cannot change once sales have started")

    def save(self, *args, **kwargs):
        if self.remaining_quantity is None:
            self.remaining_quantity = self.total_quantity
        # Inventory writes pass update_fields and skip full validation
        if kwargs.get('update_fields') is None:
            self.clean()
        super().save(*args, **kwargs)

    @property
    def sold_quantity(self):
        return self.total_quantity - self.remaining_quantity

    @property
    def is_free(self):
        return self.price == 0

    def is_on_sale(self, now=None):
        """Active and inside its sale window (open-ended bounds allowed)."""
        now = now or timezone.now()
        if not self.is_active or not self.event.is_active:
            return False
        if self.sale_start_datetime and now < self.sale_start_datetime:
            return False
        if self.sale_end_datetime and now > self.sale_end_datetime:
            return False
        return True
