from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
import logging

from . import services
from .errors import ErrorCategory, ErrorCode, GatewayError, PipelineError
from .orders import Attendee
from .serializers import (
    BookingSerializer,
    CheckoutOrderSerializer,
    PaymentCallbackSerializer,
    TicketVerificationSerializer,
)
from .verification import PaymentCallback

# Set up logging
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BOOKING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INSUFFICIENT_INVENTORY: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_PAYMENT_CALLBACK: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE_TRANSITION: status.HTTP_409_CONFLICT,
}

CATEGORY_STATUS = {
    ErrorCategory.CLIENT: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.INTEGRITY: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.RACE: status.HTTP_409_CONFLICT,
    ErrorCategory.BEST_EFFORT: status.HTTP_502_BAD_GATEWAY,
}


def error_response(error: PipelineError):
    """Map a pipeline error to a JSON error response"""
    body = {'error': error.message, 'code': error.code.value}
    reconciliation_id = getattr(error, 'reconciliation_id', None)
    if reconciliation_id is not None:
        body['reconciliation_id'] = reconciliation_id
    booking_reference = getattr(error, 'booking_reference', '')
    if booking_reference:
        body['booking_reference'] = booking_reference

    http_status = ERROR_STATUS.get(error.code, CATEGORY_STATUS[error.category])
    return Response(body, status=http_status)


def server_error():
    return Response(
        {'error': 'Internal server error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_checkout_order(request):
    """
    Open a checkout for a cart of ticket types
    Endpoint: POST /api/checkout/orders/
    """
    serializer = CheckoutOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Invalid data', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    data = serializer.validated_data
    attendee = Attendee.from_user(
        request.user,
        name=data.get('attendee_name'),
        email=data.get('attendee_email'),
        phone=data.get('attendee_phone'),
    )
    logger.info(f"🛒 Checkout requested: user {request.user.pk}, event {data['event_id']}, {data['cart'].total_quantity} tickets")

    try:
        kind, result = services.start_checkout(request.user, data['event_id'], data['cart'], attendee)
    except PipelineError as e:
        logger.warning(f"❌ Checkout rejected for user {request.user.pk}: {e}")
        return error_response(e)
    except Exception as e:
        logger.error(f"❌ Unexpected checkout error for user {request.user.pk}: {str(e)}", exc_info=True)
        return server_error()

    if kind == 'booking':
        return Response(
            {
                'message': 'Booking confirmed',
                'payment_required': False,
                'booking': BookingSerializer(result).data,
            },
            status=status.HTTP_201_CREATED
        )

    return Response(
        {
            'payment_required': True,
            'order_id': result.order_id,
            'amount': result.amount_minor,
            'currency': result.currency,
            'receipt': result.receipt,
            'key': result.key_id,
            'checkout_token': result.checkout_token,
        },
        status=status.HTTP_201_CREATED
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_payment(request):
    """
    Gateway checkout callback: verify, commit, issue tickets
    Endpoint: POST /api/checkout/verify/
    """
    serializer = PaymentCallbackSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Invalid data', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    data = serializer.validated_data
    callback = PaymentCallback(
        order_id=data['razorpay_order_id'],
        payment_id=data['razorpay_payment_id'],
        signature=data['razorpay_signature'],
    )

    try:
        booking = services.settle_payment(request.user, callback, data['checkout_token'])
    except GatewayError as e:
        logger.error(f"❌ Gateway error while settling {callback.payment_id}: {e}")
        return error_response(e)
    except PipelineError as e:
        if e.category == ErrorCategory.CLIENT:
            logger.info(f"Payment {callback.payment_id} rejected: {e}")
        elif e.category == ErrorCategory.INTEGRITY:
            logger.warning(f"🚫 Payment {callback.payment_id} for order {callback.order_id} refused: {e}")
        else:
            logger.error(f"🚨 Payment {callback.payment_id} for order {callback.order_id} not booked: {e}")
        return error_response(e)
    except Exception as e:
        logger.error(f"❌ Unexpected error settling payment {callback.payment_id}: {str(e)}", exc_info=True)
        return server_error()

    return Response(
        {
            'message': 'Payment verified and booking confirmed',
            'booking': BookingSerializer(booking).data,
        },
        status=status.HTTP_201_CREATED
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_booking(request, reference):
    """
    Booking details by reference
    Endpoint: GET /api/bookings/{reference}/
    """
    try:
        booking = services.get_booking_by_reference(request.user, reference)
    except PipelineError as e:
        return error_response(e)
    return Response(BookingSerializer(booking).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_booking_by_id(request, booking_id):
    """
    Booking details by id
    Endpoint: GET /api/bookings/id/{booking_id}/
    """
    try:
        booking = services.get_booking_by_id(request.user, booking_id)
    except PipelineError as e:
        return error_response(e)
    return Response(BookingSerializer(booking).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_booking(request, reference):
    """
    Cancel a confirmed booking and queue its refund
    Endpoint: POST /api/bookings/{reference}/cancel/
    """
    try:
        booking = services.cancel_booking(request.user, reference)
    except PipelineError as e:
        logger.warning(f"❌ Cancellation of {reference} rejected: {e}")
        return error_response(e)
    except Exception as e:
        logger.error(f"❌ Unexpected error cancelling {reference}: {str(e)}", exc_info=True)
        return server_error()

    logger.info(f"✅ Booking {reference} cancelled by user {request.user.pk}")
    return Response({
        'message': 'Booking cancelled successfully',
        'booking': BookingSerializer(booking).data,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def verify_ticket(request, token):
    """
    Public ticket check used by gate staff
    Endpoint: GET /api/tickets/verify/{token}/
    """
    try:
        ticket = services.verify_ticket(token)
    except PipelineError as e:
        return error_response(e)
    return Response(TicketVerificationSerializer(ticket).data)
