from celery import shared_task
from django.conf import settings
from django.db import DatabaseError
import logging

from .errors import GatewayError
from .gateway import get_gateway
from .issuer import TicketIssuer
from .models import Booking, PaymentReconciliation
from .notifications import send_tickets, ticket_payloads
from .reconciliation import apply_refund
from EventHive.enums import ReconciliationStatus

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(DatabaseError,),
    retry_backoff=True,
    max_retries=settings.TICKET_ISSUE_MAX_RETRIES,
)
def issue_tickets_task(self, booking_id, notify=True):
    """
    Mint any missing tickets for a booking, then queue delivery.
    Used when inline issuance failed and by the reissue command.
    """
    logger.info(f"🚀 CELERY TASK STARTED: Issuing tickets for booking {booking_id} (attempt {self.request.retries + 1})")

    booking = Booking.objects.select_related('event').get(pk=booking_id)
    tickets = TicketIssuer.issue(booking)

    if notify and tickets:
        send_tickets_task.delay(booking_id)
    return f"{len(tickets)} tickets ready for booking {booking.reference}"


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_tickets_task(self, booking_id):
    """
    Deliver the issued ticket set to the booking's attendee.
    Failures are logged and retried; they never touch the booking.
    """
    logger.info(f"📧 EMAIL TASK STARTED: Sending tickets for booking {booking_id}")

    try:
        booking = Booking.objects.select_related('event').get(pk=booking_id)
        tickets = list(booking.tickets.select_related('tier').order_by('line_item_id', 'sequence'))
        if not tickets:
            logger.warning(f"⚠️ Booking {booking.reference} has no tickets to send")
            return f"No tickets for booking {booking_id}"

        payloads = ticket_payloads(booking, tickets)
        send_tickets(booking.attendee_email, payloads, booking.reference)
    except Booking.DoesNotExist:
        logger.error(f"❌ EMAIL FAILED: Booking {booking_id} not found")
        return f"Booking {booking_id} not found"
    except Exception as e:
        logger.error(f"❌ EMAIL FAILED: Booking {booking_id} - {str(e)}", exc_info=True)
        raise self.retry(exc=e)

    logger.info(f"✅ EMAIL SENT SUCCESSFULLY: Booking {booking_id} - {len(payloads)} tickets to {booking.attendee_email}")
    return f"Tickets sent for booking {booking_id}"


@shared_task(
    bind=True,
    autoretry_for=(GatewayError,),
    retry_backoff=True,
    retry_backoff_max=3600,
    max_retries=settings.REFUND_MAX_RETRIES,
)
def refund_payment_task(self, reconciliation_id):
    """
    Return a captured payment through the gateway.
    Left OPEN for manual follow-up once retries are exhausted.
    """
    logger.info(f"💸 REFUND TASK STARTED: Reconciliation {reconciliation_id} (attempt {self.request.retries + 1})")
    reconciliation = apply_refund(reconciliation_id, get_gateway())
    return f"Reconciliation {reconciliation_id} {reconciliation.status}"


@shared_task
def retry_open_refunds():
    """Periodic sweep re-queuing reconciliations that are still open"""
    open_ids = list(
        PaymentReconciliation.objects.filter(status=ReconciliationStatus.OPEN).values_list('pk', flat=True)
    )
    for reconciliation_id in open_ids:
        refund_payment_task.delay(reconciliation_id)
    logger.info(f"🔁 Re-queued {len(open_ids)} open reconciliations")
    return len(open_ids)
