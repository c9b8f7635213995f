"""
Django signals for cache invalidation
"""
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver
from catalog.models import Event, TicketTier
from .cache_utils import invalidate_availability_cache
import logging

logger = logging.getLogger(__name__)


def _invalidate_after_commit(event_id):
    # Readers inside the open transaction would re-cache the old numbers
    transaction.on_commit(lambda: invalidate_availability_cache(event_id))


@receiver(post_save, sender=TicketTier)
def invalidate_cache_on_tier_save(sender, instance, created, **kwargs):
    """
    Invalidate availability when a tier is created, edited or sold from
    """
    logger.debug(f"Ticket tier {'created' if created else 'updated'}: {instance.pk} - Invalidating availability")
    _invalidate_after_commit(instance.event_id)


@receiver(post_delete, sender=TicketTier)
def invalidate_cache_on_tier_delete(sender, instance, **kwargs):
    logger.debug(f"Ticket tier deleted: {instance.pk} - Invalidating availability")
    _invalidate_after_commit(instance.event_id)


@receiver(post_save, sender=Event)
def invalidate_cache_on_event_save(sender, instance, created, **kwargs):
    """
    Invalidate availability when an event is switched on or off
    """
    if not created:
        logger.debug(f"Event updated: {instance.pk} - Invalidating availability")
        _invalidate_after_commit(instance.pk)
