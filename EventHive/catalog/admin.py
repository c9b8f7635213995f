from django.contrib import admin

from .models import Event, TicketTier


class TicketTierInline(admin.TabularInline):
    model = TicketTier
    extra = 0
    fields = ['name', 'price', 'currency', 'total_quantity', 'remaining_quantity', 'max_per_user', 'is_active']
    readonly_fields = ['remaining_quantity']


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ['title', 'venue_name', 'start_datetime', 'organizer', 'is_active']
    list_filter = ['is_active']
    search_fields = ['title', 'venue_name']
    inlines = [TicketTierInline]


@admin.register(TicketTier)
class TicketTierAdmin(admin.ModelAdmin):
    list_display = ['name', 'event', 'price', 'currency', 'total_quantity', 'remaining_quantity', 'is_active']
    list_filter = ['is_active', 'currency']
    readonly_fields = ['remaining_quantity']
