from django.contrib import admin

from .models import Booking, BookingLineItem, PaymentReconciliation, PaymentRecord, Ticket


class BookingLineItemInline(admin.TabularInline):
    model = BookingLineItem
    extra = 0
    readonly_fields = ['tier', 'quantity', 'unit_price', 'line_total']
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['reference', 'user', 'event', 'final_amount', 'currency', 'booking_status', 'payment_status', 'created_at']
    list_filter = ['booking_status', 'payment_status']
    search_fields = ['reference', 'attendee_email', 'user__username']
    readonly_fields = ['reference', 'uuid', 'subtotal_amount', 'final_amount', 'confirmed_at', 'cancelled_at']
    inlines = [BookingLineItemInline]


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    list_display = ['gateway_payment_id', 'gateway_order_id', 'booking', 'amount', 'currency', 'status', 'completed_at']
    search_fields = ['gateway_payment_id', 'gateway_order_id', 'booking__reference']
    readonly_fields = ['gateway_order_id', 'gateway_payment_id', 'gateway_signature', 'gateway_response']


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['ticket_number', 'booking', 'tier', 'attendee_name', 'issued_at']
    search_fields = ['ticket_number', 'scan_code', 'booking__reference']


@admin.register(PaymentReconciliation)
class PaymentReconciliationAdmin(admin.ModelAdmin):
    list_display = ['id', 'gateway_payment_id', 'reason', 'status', 'amount', 'currency', 'attempts', 'created_at']
    list_filter = ['status', 'reason']
    search_fields = ['gateway_payment_id', 'gateway_order_id']
