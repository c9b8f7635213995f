from django.core.management.base import BaseCommand
import logging

from booking.errors import GatewayError
from booking.gateway import get_gateway
from booking.models import PaymentReconciliation
from booking.reconciliation import apply_refund
from EventHive.enums import ReconciliationStatus

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'List open payment reconciliations and retry their refunds'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Only list open reconciliations')

    def handle(self, *args, **options):
        open_items = PaymentReconciliation.objects.filter(status=ReconciliationStatus.OPEN).order_by('created_at')
        self.stdout.write(f"💸 Open reconciliations: {open_items.count()}")

        gateway = None if options['dry_run'] else get_gateway()
        refunded = failed = 0
        for item in open_items:
            self.stdout.write(
                f"  - #{item.pk} {item.reason} {item.amount} {item.currency} "
                f"payment {item.gateway_payment_id} (attempts: {item.attempts})"
            )
            if gateway is None:
                continue
            try:
                apply_refund(item.pk, gateway)
                refunded += 1
            except GatewayError as e:
                failed += 1
                self.stdout.write(f"    ❌ {e.message}")

        if gateway is not None:
            self.stdout.write(self.style.SUCCESS(f"✅ Refunded: {refunded}, still open: {failed}"))
