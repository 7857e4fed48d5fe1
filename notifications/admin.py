"""
Notifications App - Django Admin Configuration

Admin interface for the SlackConfiguration singleton.
"""

from django.contrib import admin
from django.shortcuts import redirect
from django.utils.html import format_html

from .models import SlackConfiguration


@admin.register(SlackConfiguration)
class SlackConfigurationAdmin(admin.ModelAdmin):
    """
    Admin for the Slack webhook settings.

    Singleton model: only one instance exists.
    """

    list_display = ('__str__', 'connection_status', 'is_enabled', 'updated_at')
    readonly_fields = ('connection_status', 'updated_at')

    fieldsets = (
        ('Connection', {
            'fields': ('connection_status', 'webhook_url', 'channel_id', 'is_enabled'),
        }),
        ('Events', {
            'fields': ('notify_new_request', 'notify_status_update'),
        }),
        ('Metadata', {
            'fields': ('updated_at',),
            'classes': ('collapse',),
        }),
    )

    def connection_status(self, obj):
        if obj.is_configured:
            return format_html('<span style="color:#16a34a;font-weight:bold;">{}</span>', 'Connected')
        return format_html('<span style="color:#dc2626;">{}</span>', 'Not configured')
    connection_status.short_description = "Status"

    def has_add_permission(self, request):
        """Only one config instance (singleton)."""
        return not SlackConfiguration.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False

    def changelist_view(self, request, extra_context=None):
        """Redirect to the single config instance or create it."""
        obj, _ = SlackConfiguration.objects.get_or_create(pk=1)
        return redirect(f'/admin/notifications/slackconfiguration/{obj.pk}/change/')
