"""
Django Admin configuration for CORE app.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, TwoFactorSecret


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model with email-based auth."""

    list_display = (
        'email',
        'full_name',
        'company_name',
        'role',
        'is_active',
        'date_joined'
    )
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('email', 'full_name', 'company_name')
    ordering = ('-date_joined',)

    fieldsets = (
        (None, {
            'fields': ('email', 'password')
        }),
        ('Profile', {
            'fields': ('full_name', 'phone_number', 'company_name', 'role')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('date_joined',)

    actions = ['block_users', 'unblock_users']

    @admin.action(description="Deactivate selected users")
    def block_users(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} user(s) deactivated.")

    @admin.action(description="Reactivate selected users")
    def unblock_users(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} user(s) reactivated.")


@admin.register(TwoFactorSecret)
class TwoFactorSecretAdmin(admin.ModelAdmin):
    list_display = ('user', 'is_verified', 'created_at', 'updated_at')
    list_filter = ('is_verified',)
    search_fields = ('user__email',)
    readonly_fields = ('secret', 'created_at', 'updated_at')
