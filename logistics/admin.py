"""
Django Admin configuration for LOGISTICS app.
"""

from django.contrib import admin
from .models import DeliveryRequest, TrackingUpdate, Driver, DeliveryStatus
from .services import lifecycle, simulation


class TrackingUpdateInline(admin.TabularInline):
    """Read-only tracking log on the delivery page."""

    model = TrackingUpdate
    extra = 0
    can_delete = False
    fields = ('timestamp', 'status', 'location', 'note')
    readonly_fields = fields
    ordering = ('timestamp', 'id')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(DeliveryRequest)
class DeliveryRequestAdmin(admin.ModelAdmin):
    """Admin for delivery requests with lifecycle actions."""

    list_display = (
        'tracking_id',
        'status',
        'priority',
        'package_type',
        'pickup_location',
        'delivery_location',
        'assigned_driver',
        'estimated_cost',
        'is_live_tracking',
        'created_at'
    )
    list_filter = ('status', 'priority', 'package_type', 'is_live_tracking', 'created_at')
    search_fields = (
        'tracking_id',
        'pickup_location',
        'delivery_location',
        'requester_name',
        'company_name',
        'contact_email'
    )
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'
    inlines = [TrackingUpdateInline]

    readonly_fields = (
        'id',
        'tracking_id',
        'status',
        'estimated_distance',
        'estimated_cost',
        'last_simulated_at',
        'created_at'
    )

    fieldsets = (
        ('Identification', {
            'fields': ('id', 'tracking_id', 'status', 'priority', 'package_type')
        }),
        ('Requester', {
            'fields': (
                'created_by', 'requester_name', 'company_name',
                'contact_phone', 'contact_email', 'special_instructions', 'pickup_time'
            )
        }),
        ('Locations', {
            'fields': (
                'pickup_location', 'pickup_lat', 'pickup_lng',
                'delivery_location', 'delivery_lat', 'delivery_lng',
                'current_lat', 'current_lng'
            )
        }),
        ('Dispatch', {
            'fields': ('assigned_driver', 'estimated_distance', 'estimated_cost', 'estimated_delivery')
        }),
        ('Proof of delivery', {
            'fields': ('proof_of_delivery_photo',)
        }),
        ('Live tracking', {
            'fields': ('is_live_tracking', 'simulation_speed', 'traffic_condition', 'last_simulated_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['approve_requests', 'decline_requests', 'reset_requests', 'stop_simulations']

    @admin.action(description="Approve selected requests")
    def approve_requests(self, request, queryset):
        count = 0
        for delivery in queryset.filter(status=DeliveryStatus.PENDING):
            lifecycle.approve_request(delivery, actor=request.user)
            count += 1
        self.message_user(request, f"{count} request(s) approved.")

    @admin.action(description="Decline selected requests")
    def decline_requests(self, request, queryset):
        count = 0
        for delivery in queryset.exclude(status__in=[DeliveryStatus.COMPLETED, DeliveryStatus.DECLINED]):
            lifecycle.decline_request(delivery, actor=request.user)
            count += 1
        self.message_user(request, f"{count} request(s) declined.")

    @admin.action(description="Reset selected requests to pending")
    def reset_requests(self, request, queryset):
        for delivery in queryset:
            lifecycle.reset_to_pending(delivery, actor=request.user)
        self.message_user(request, f"{queryset.count()} request(s) reset.")

    @admin.action(description="Stop live tracking")
    def stop_simulations(self, request, queryset):
        for delivery in queryset.filter(is_live_tracking=True):
            simulation.stop_live_tracking(delivery)
        self.message_user(request, "Live tracking stopped.")


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    list_display = (
        'name', 'phone', 'vehicle_type', 'status',
        'current_delivery', 'average_response_time', 'location_updated_at'
    )
    list_filter = ('status', 'vehicle_type')
    search_fields = ('name', 'phone', 'user__email')
    readonly_fields = ('id', 'current_delivery', 'location_updated_at', 'created_at')
    ordering = ('name',)


@admin.register(TrackingUpdate)
class TrackingUpdateAdmin(admin.ModelAdmin):
    """Tracking log browser (append-only, no edits)."""

    list_display = ('delivery', 'status', 'location', 'timestamp')
    list_filter = ('status',)
    search_fields = ('delivery__tracking_id', 'note')
    ordering = ('-timestamp',)

    def has_change_permission(self, request, obj=None):
        return False
