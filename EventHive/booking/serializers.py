from rest_framework import serializers

from .cart import Cart
from .issuer import verification_url
from .models import Booking, BookingLineItem, Ticket


class CartLineSerializer(serializers.Serializer):
    ticket_type_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class CheckoutOrderSerializer(serializers.Serializer):
    """
    Serializer for opening a checkout order
    """
    event_id = serializers.IntegerField(min_value=1)
    ticket_types = CartLineSerializer(many=True, allow_empty=False)
    attendee_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    attendee_email = serializers.EmailField(required=False, allow_blank=True)
    attendee_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate(self, data):
        """Merge repeated ticket types into one cart"""
        data['cart'] = Cart.from_pairs(
            (line['ticket_type_id'], line['quantity']) for line in data['ticket_types']
        )
        return data


class PaymentCallbackSerializer(serializers.Serializer):
    """
    Serializer for the gateway's checkout callback
    """
    razorpay_order_id = serializers.CharField(max_length=100)
    razorpay_payment_id = serializers.CharField(max_length=100)
    razorpay_signature = serializers.CharField(max_length=256)
    checkout_token = serializers.CharField()


class BookingLineItemSerializer(serializers.ModelSerializer):
    ticket_type_id = serializers.IntegerField(source='tier_id', read_only=True)
    ticket_type_name = serializers.CharField(source='tier.name', read_only=True)

    class Meta:
        model = BookingLineItem
        fields = ['ticket_type_id', 'ticket_type_name', 'quantity', 'unit_price', 'line_total']


class TicketSerializer(serializers.ModelSerializer):
    ticket_type_name = serializers.CharField(source='tier.name', read_only=True)
    verification_url = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            'ticket_number', 'ticket_type_name', 'scan_code', 'verification_token',
            'verification_url', 'attendee_name', 'issued_at',
        ]

    def get_verification_url(self, obj):
        return verification_url(obj.verification_token)


class BookingSerializer(serializers.ModelSerializer):
    """
    Serializer for Booking model
    """
    booking_id = serializers.IntegerField(source='id', read_only=True)
    event_id = serializers.IntegerField(read_only=True)
    event_title = serializers.CharField(source='event.title', read_only=True)
    number_of_tickets = serializers.IntegerField(source='ticket_count', read_only=True)
    line_items = BookingLineItemSerializer(many=True, read_only=True)
    tickets = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            'booking_id', 'reference', 'uuid', 'event_id', 'event_title',
            'booking_status', 'payment_status', 'subtotal_amount', 'discount_amount',
            'final_amount', 'currency', 'number_of_tickets', 'attendee_name',
            'attendee_email', 'created_at', 'confirmed_at', 'cancelled_at',
            'line_items', 'tickets',
        ]
        read_only_fields = fields

    def get_tickets(self, obj):
        tickets = obj.tickets.select_related('tier').order_by('line_item_id', 'sequence')
        return TicketSerializer(tickets, many=True).data


class TicketVerificationSerializer(serializers.ModelSerializer):
    """
    Public view of a ticket for gate staff; no buyer contact details
    """
    ticket_type_name = serializers.CharField(source='tier.name', read_only=True)
    event_title = serializers.CharField(source='booking.event.title', read_only=True)
    event_start = serializers.DateTimeField(source='booking.event.start_datetime', read_only=True)
    booking_status = serializers.CharField(source='booking.booking_status', read_only=True)
    valid = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            'ticket_number', 'ticket_type_name', 'event_title', 'event_start',
            'attendee_name', 'booking_status', 'valid',
        ]

    def get_valid(self, obj):
        return obj.booking.is_confirmed
