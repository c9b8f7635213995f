"""Error taxonomy for the booking and payment settlement pipeline."""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(Enum):
    """How an error is surfaced and whether anything must be undone."""

    CLIENT = "CLIENT"  # buyer can fix the request, nothing to undo
    INTEGRITY = "INTEGRITY"  # terminal, logged for fraud/ops review
    RACE = "RACE"  # money moved but no booking exists, needs reconciliation
    BEST_EFFORT = "BEST_EFFORT"  # logged and retried, never fails a checkout


class ErrorCode(Enum):
    """Pipeline error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EMPTY_CART = "EMPTY_CART"
    TIER_NOT_FOUND = "TIER_NOT_FOUND"
    TIER_INACTIVE = "TIER_INACTIVE"
    QUANTITY_EXCEEDS_CAP = "QUANTITY_EXCEEDS_CAP"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    MIXED_CURRENCY = "MIXED_CURRENCY"
    PAYMENT_VERIFICATION_FAILED = "PAYMENT_VERIFICATION_FAILED"
    STALE_ORDER_CALLBACK = "STALE_ORDER_CALLBACK"
    DUPLICATE_PAYMENT_CALLBACK = "DUPLICATE_PAYMENT_CALLBACK"
    OVERSOLD_ATTEMPT = "OVERSOLD_ATTEMPT"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    GATEWAY_ERROR = "GATEWAY_ERROR"


@dataclass(eq=False)
class PipelineError(Exception):
    """Base pipeline error with code, category and user-safe message."""

    code: ErrorCode
    message: str
    category: ErrorCategory = ErrorCategory.CLIENT

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class EventNotFound(PipelineError):
    def __init__(self, event_id) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        self.event_id = event_id


class EmptyCart(PipelineError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.EMPTY_CART, message="Select at least one ticket")


class TierNotFound(PipelineError):
    """Raised when a tier does not exist or belongs to another event."""

    def __init__(self, tier_id) -> None:
        super().__init__(code=ErrorCode.TIER_NOT_FOUND, message=f"Ticket type {tier_id} is not available for this event")
        self.tier_id = tier_id


class TierInactive(PipelineError):
    """Raised when a tier is switched off or outside its sale window."""

    def __init__(self, tier_id, name: str = "") -> None:
        super().__init__(code=ErrorCode.TIER_INACTIVE, message=f"Ticket type {name or tier_id} is not on sale")
        self.tier_id = tier_id


class QuantityExceedsCap(PipelineError):
    def __init__(self, tier_id, requested: int, cap: int) -> None:
        super().__init__(
            code=ErrorCode.QUANTITY_EXCEEDS_CAP,
            message=f"At most {cap} tickets of this type per buyer (requested {requested})",
        )
        self.tier_id = tier_id
        self.requested = requested
        self.cap = cap


class InsufficientInventory(PipelineError):
    """Soft pre-check failure at order time; nothing has been charged."""

    def __init__(self, tier_id, requested: int, available: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_INVENTORY,
            message=f"Insufficient tickets. Available: {available}, Requested: {requested}",
        )
        self.tier_id = tier_id
        self.requested = requested
        self.available = available


class MixedCurrency(PipelineError):
    def __init__(self, currencies) -> None:
        super().__init__(code=ErrorCode.MIXED_CURRENCY, message="All tickets in one booking must use the same currency")
        self.currencies = sorted(currencies)


class PaymentVerificationFailed(PipelineError):
    def __init__(self, reason: str = "signature mismatch") -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_VERIFICATION_FAILED,
            message="Payment verification failed",
            category=ErrorCategory.INTEGRITY,
        )
        self.reason = reason


class StaleOrderCallback(PipelineError):
    """Raised when a callback references an order older than the replay window."""

    def __init__(self, order_id: str = "") -> None:
        super().__init__(
            code=ErrorCode.STALE_ORDER_CALLBACK,
            message="This checkout has expired",
            category=ErrorCategory.INTEGRITY,
        )
        self.order_id = order_id


class DuplicatePaymentCallback(PipelineError):
    """Raised when the (order id, payment id) pair has already been settled."""

    def __init__(self, order_id: str, payment_id: str, booking_reference: str = "") -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_PAYMENT_CALLBACK,
            message="This payment has already been processed",
            category=ErrorCategory.INTEGRITY,
        )
        self.order_id = order_id
        self.payment_id = payment_id
        self.booking_reference = booking_reference


class OversoldAttempt(PipelineError):
    """
    Raised when inventory ran out between order-open and commit.

    The gateway has captured the payment, so the caller must open a
    reconciliation rather than drop the error.
    """

    def __init__(self, tier_id, requested: int, available: int) -> None:
        super().__init__(
            code=ErrorCode.OVERSOLD_ATTEMPT,
            message="Tickets sold out before your payment could be confirmed; a refund has been initiated",
            category=ErrorCategory.RACE,
        )
        self.tier_id = tier_id
        self.requested = requested
        self.available = available
        self.reconciliation_id = None


class AmountMismatch(PipelineError):
    """Raised when current tier prices no longer add up to the captured amount."""

    def __init__(self, expected, paid) -> None:
        super().__init__(
            code=ErrorCode.AMOUNT_MISMATCH,
            message="Ticket prices changed before your payment could be confirmed; a refund has been initiated",
            category=ErrorCategory.RACE,
        )
        self.expected = expected
        self.paid = paid
        self.reconciliation_id = None


class InvalidStateTransition(PipelineError):
    def __init__(self, current, requested) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STATE_TRANSITION,
            message=f"Booking cannot move from {current[0]}/{current[1]} to {requested[0]}/{requested[1]}",
        )
        self.current = current
        self.requested = requested


class BookingNotFound(PipelineError):
    def __init__(self, lookup) -> None:
        super().__init__(code=ErrorCode.BOOKING_NOT_FOUND, message="Booking not found")
        self.lookup = lookup


class TicketNotFound(PipelineError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_FOUND, message="Ticket not found")


class GatewayError(PipelineError):
    def __init__(self, message: str = "Payment gateway unavailable") -> None:
        super().__init__(code=ErrorCode.GATEWAY_ERROR, message=message, category=ErrorCategory.BEST_EFFORT)
