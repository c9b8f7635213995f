"""
Read-only access to events and their ticket tiers
"""
import logging

from django.db.models import Sum

from .models import Event, TicketTier

logger = logging.getLogger(__name__)


class CatalogReader:
    """
    Lookup of events and tiers for the settlement pipeline.

    Plain reads may run with any concurrency. lock_tiers() must be called
    inside transaction.atomic(); it returns the values as of the instant
    the row locks were granted.
    """

    @staticmethod
    def get_event(event_id):
        """Return the event or None"""
        return Event.objects.filter(pk=event_id).first()

    @staticmethod
    def get_tiers(event_id, tier_ids) -> dict:
        """
        Fetch the requested tiers of one event keyed by id.

        Tiers belonging to other events are left out, so a missing key means
        the tier does not exist for this event.
        """
        tiers = TicketTier.objects.select_related('event').filter(event_id=event_id, pk__in=list(tier_ids))
        return {tier.pk: tier for tier in tiers}

    @staticmethod
    def lock_tiers(event_id, tier_ids) -> dict:
        """
        Row-lock the requested tiers for the rest of the current transaction.

        Locks are taken in primary key order so two commits touching the same
        pair of tiers cannot deadlock; commits on disjoint tiers never wait
        on each other.
        """
        tiers = (
            TicketTier.objects.select_for_update(of=('self',))
            .select_related('event')
            .filter(event_id=event_id, pk__in=list(tier_ids))
            .order_by('pk')
        )
        return {tier.pk: tier for tier in tiers}

    @staticmethod
    def get_availability(event_id) -> dict:
        """Summary of remaining inventory for the availability endpoint"""
        event = CatalogReader.get_event(event_id)
        if event is None:
            return None

        tiers = list(event.ticket_tiers.filter(is_active=True).order_by('price', 'id'))
        totals = event.ticket_tiers.filter(is_active=True).aggregate(
            total=Sum('total_quantity'), remaining=Sum('remaining_quantity')
        )
        logger.debug(f"📊 Computed availability for event {event_id}")
        return {
            'event_id': event.pk,
            'title': event.title,
            'total_capacity': totals['total'] or 0,
            'available_tickets': totals['remaining'] or 0,
            'tiers': [
                {
                    'tier_id': tier.pk,
                    'name': tier.name,
                    'price': tier.price,
                    'currency': tier.currency,
                    'remaining_quantity': tier.remaining_quantity,
                    'max_per_user': tier.max_per_user,
                    'on_sale': tier.is_on_sale(),
                }
                for tier in tiers
            ],
        }
