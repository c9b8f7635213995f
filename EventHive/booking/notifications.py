"""
Notification Dispatcher: delivers issued tickets to the attendee.

Runs from a Celery task, never inside the settlement transaction.
Re-sending the same ticket set is harmless.
"""
import logging

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from .issuer import verification_url

logger = logging.getLogger(__name__)


def ticket_payloads(booking, tickets) -> list[dict]:
    event = booking.event
    return [
        {
            'ticket_number': ticket.ticket_number,
            'verification_token': ticket.verification_token,
            'verification_url': verification_url(ticket.verification_token),
            'scan_code': ticket.scan_code,
            'tier_name': ticket.tier.name,
            'event_title': event.title,
            'venue': event.venue_name,
            'start_date': event.start_datetime.isoformat(),
            'attendee_name': ticket.attendee_name,
        }
        for ticket in tickets
    ]


def send_tickets(recipient_email: str, payloads: list[dict], booking_reference: str = '') -> int:
    """Email the ticket set; returns the number of messages sent"""
    if not payloads:
        return 0

    event_title = payloads[0]['event_title']
    context = {
        'attendee_name': payloads[0]['attendee_name'],
        'event_title': event_title,
        'venue': payloads[0]['venue'],
        'start_date': payloads[0]['start_date'],
        'booking_reference': booking_reference,
        'tickets': payloads,
    }
    subject = f"Your tickets - {event_title}"
    text_content = render_to_string('emails/tickets_issued.txt', context)
    html_content = render_to_string('emails/tickets_issued.html', context)

    logger.info(f"📤 Sending {len(payloads)} tickets for {booking_reference} to {recipient_email}")
    return send_mail(
        subject=subject,
        message=text_content,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient_email],
        html_message=html_content,
        fail_silently=False,
    )
