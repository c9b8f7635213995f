"""
Ticket Issuer: one Ticket row per purchased unit.

Everything about a ticket is derived from its booking, so issuing is
idempotent: running it again for the same booking finds the existing rows
instead of minting new ones, and a failed run can simply be repeated.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction
from django.utils.crypto import salted_hmac

from .models import Booking, Ticket

logger = logging.getLogger(__name__)

TOKEN_SALT = 'booking.ticket.verification'
SCAN_CODE_SALT = 'booking.ticket.scan'
SCAN_CODE_DIGITS = 12


@dataclass(frozen=True)
class TicketSpec:
    line_item_id: int
    tier_id: int
    sequence: int
    ticket_number: str
    verification_token: str
    scan_code: str


def ticket_number_for(booking_id, line_item_id, sequence: int) -> str:
    return f"TKT-{booking_id}-{line_item_id}-{sequence}"


def verification_token_for(booking_uuid, ticket_number: str) -> str:
    """
    Keyed digest of the booking uuid and ticket number.

    Reproducible for re-issue but not guessable from public data, so
    verification URLs cannot be enumerated.
    """
    return salted_hmac(TOKEN_SALT, f"{booking_uuid}:{ticket_number}", algorithm='sha256').hexdigest()[:40]


def scan_code_for(booking_uuid, ticket_number: str) -> str:
    """Numeric code for barcode scanners and manual entry at the door"""
    digest = salted_hmac(SCAN_CODE_SALT, f"{booking_uuid}:{ticket_number}", algorithm='sha256').hexdigest()
    return f"{int(digest[:16], 16) % 10 ** SCAN_CODE_DIGITS:0{SCAN_CODE_DIGITS}d}"


def verification_url(token: str) -> str:
    # Only the opaque token is exposed; row ids stay internal
    return f"{settings.TICKET_VERIFY_BASE_URL.rstrip('/')}/verify-ticket/{token}"


def derive_ticket_specs(booking: Booking) -> list[TicketSpec]:
    """Ticket identities for every unit of every line item, in line order"""
    specs = []
    for item in booking.line_items.order_by('id'):
        for sequence in range(1, item.quantity + 1):
            number = ticket_number_for(booking.pk, item.pk, sequence)
            specs.append(TicketSpec(
                line_item_id=item.pk,
                tier_id=item.tier_id,
                sequence=sequence,
                ticket_number=number,
                verification_token=verification_token_for(booking.uuid, number),
                scan_code=scan_code_for(booking.uuid, number),
            ))
    return specs


class TicketIssuer:
    """Mints and persists the tickets of a committed booking."""

    @staticmethod
    def issue(booking: Booking) -> list[Ticket]:
        """
        Ensure every unit of the booking has a Ticket and return all of them.

        Runs in its own transaction, after the booking has committed; a
        failure here leaves the booking untouched.
        """
        if not booking.is_confirmed:
            logger.warning(f"⚠️ Not issuing tickets for {booking.reference} in status {booking.booking_status}")
            return []

        specs = derive_ticket_specs(booking)
        with transaction.atomic():
            existing = set(booking.tickets.values_list('ticket_number', flat=True))
            missing = [
                Ticket(
                    booking=booking,
                    line_item_id=spec.line_item_id,
                    tier_id=spec.tier_id,
                    sequence=spec.sequence,
                    ticket_number=spec.ticket_number,
                    verification_token=spec.verification_token,
                    scan_code=spec.scan_code,
                    attendee_name=booking.attendee_name,
                    attendee_email=booking.attendee_email,
                    attendee_phone=booking.attendee_phone,
                )
                for spec in specs
                if spec.ticket_number not in existing
            ]
            if missing:
                Ticket.objects.bulk_create(missing, ignore_conflicts=True)

        tickets = list(booking.tickets.select_related('tier').order_by('line_item_id', 'sequence'))
        logger.info(f"🎟️ Booking {booking.reference}: {len(missing)} tickets minted, {len(tickets)} total")
        return tickets
