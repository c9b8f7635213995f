"""
Status enums shared by the booking pipeline
"""
from django.db import models


class BookingStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    CANCELLED = 'CANCELLED', 'Cancelled'


class PaymentStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    COMPLETED = 'COMPLETED', 'Completed'
    FAILED = 'FAILED', 'Failed'
    REFUNDED = 'REFUNDED', 'Refunded'


class ReconciliationStatus(models.TextChoices):
    OPEN = 'OPEN', 'Open'
    REFUNDED = 'REFUNDED', 'Refunded'
    FAILED = 'FAILED', 'Failed'


class ReconciliationReason(models.TextChoices):
    OVERSOLD = 'OVERSOLD', 'Inventory exhausted before commit'
    AMOUNT_MISMATCH = 'AMOUNT_MISMATCH', 'Captured amount differs from current price'
    CANCELLED = 'CANCELLED', 'Booking cancelled by buyer'
