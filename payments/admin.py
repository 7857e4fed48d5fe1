"""
Django Admin configuration for PAYMENTS app.
"""

from django.contrib import admin, messages

from .models import Payment, PaymentWebhookEvent
from .payment_api import process_event


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Read-only admin for Stripe payments."""

    list_display = (
        'payment_intent_id',
        'formatted_amount',
        'status',
        'payment_method',
        'delivery_link',
        'created_at'
    )
    list_filter = ('status', 'currency', 'created_at')
    search_fields = ('payment_intent_id', 'delivery__tracking_id')
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'
    readonly_fields = (
        'id', 'payment_intent_id', 'delivery', 'amount', 'currency',
        'status', 'payment_method', 'created_at', 'updated_at'
    )

    def formatted_amount(self, obj):
        return obj.formatted_amount
    formatted_amount.short_description = "Amount"

    def delivery_link(self, obj):
        if obj.delivery:
            return obj.delivery.tracking_id or str(obj.delivery.id)[:8]
        return "-"
    delivery_link.short_description = "Delivery"

    def has_add_permission(self, request):
        return False


@admin.register(PaymentWebhookEvent)
class PaymentWebhookEventAdmin(admin.ModelAdmin):
    list_display = ('stripe_event_id', 'stripe_event_type', 'processed', 'has_error', 'created_at')
    list_filter = ('stripe_event_type', 'processed')
    search_fields = ('stripe_event_id',)
    readonly_fields = (
        'id', 'stripe_event_id', 'stripe_event_type', 'event_data',
        'processed', 'processing_error', 'created_at'
    )
    actions = ['reprocess_events']

    def has_error(self, obj):
        return bool(obj.processing_error)
    has_error.boolean = True
    has_error.short_description = "Error"

    @admin.action(description="Reprocess selected events")
    def reprocess_events(self, request, queryset):
        for event in queryset:
            event.processing_error = ''
            process_event(event)
        self.message_user(request, f"{queryset.count()} event(s) reprocessed", messages.SUCCESS)

    def has_add_permission(self, request):
        return False
