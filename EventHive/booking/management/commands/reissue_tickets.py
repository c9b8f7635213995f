from django.core.management.base import BaseCommand, CommandError
import logging

from booking.issuer import TicketIssuer
from booking.models import Booking
from booking.tasks import send_tickets_task
from EventHive.enums import BookingStatus

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Mint missing tickets for confirmed bookings and optionally resend them'

    def add_arguments(self, parser):
        parser.add_argument('references', nargs='*', help='Booking references (default: every confirmed booking missing tickets)')
        parser.add_argument('--resend', action='store_true', help='Queue the ticket email again')

    def handle(self, *args, **options):
        bookings = Booking.objects.filter(booking_status=BookingStatus.CONFIRMED).select_related('event')
        if options['references']:
            bookings = bookings.filter(reference__in=options['references'])
            missing = set(options['references']) - set(bookings.values_list('reference', flat=True))
            if missing:
                raise CommandError(f"Unknown or unconfirmed bookings: {', '.join(sorted(missing))}")

        self.stdout.write("🔍 Checking ticket sets...")
        repaired = 0
        for booking in bookings:
            if not options['references'] and booking.tickets.count() == booking.ticket_count:
                continue
            tickets = TicketIssuer.issue(booking)
            repaired += 1
            self.stdout.write(f"  - {booking.reference}: {len(tickets)} tickets")
            if options['resend']:
                send_tickets_task.delay(booking.pk)

        self.stdout.write(self.style.SUCCESS(f"✅ {repaired} bookings processed"))
