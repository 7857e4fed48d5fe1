"""
Notifications App - Slack Configuration Model

Singleton model that lets admins point MediSpatch at a Slack incoming
webhook and toggle which delivery events are posted there.

Blank fields fall back to the SLACK_* settings.
"""

from django.db import models
from django.conf import settings


SLACK_WEBHOOK_PREFIX = 'https://hooks.slack.com/services/'
CACHE_KEY = 'slack_configuration'


class SlackConfiguration(models.Model):
    """
    Singleton configuration for Slack notifications.

    Only ONE instance should exist (enforced by save()).
    """

    class Meta:
        verbose_name = "Slack configuration"
        verbose_name_plural = "Slack configuration"

    webhook_url = models.URLField(
        max_length=500,
        blank=True,
        verbose_name="Webhook URL",
        help_text="Incoming webhook URL (https://hooks.slack.com/services/...). "
                  "Leave blank to use SLACK_WEBHOOK_URL."
    )
    channel_id = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Channel",
        help_text="Channel name or ID. Leave blank to use SLACK_CHANNEL_ID."
    )
    is_enabled = models.BooleanField(
        default=True,
        verbose_name="Enabled",
        help_text="Master switch for every Slack notification"
    )

    # Per-event toggles
    notify_new_request = models.BooleanField(
        default=True,
        verbose_name="New delivery requests"
    )
    notify_status_update = models.BooleanField(
        default=True,
        verbose_name="Status updates"
    )

    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return "Slack configuration"

    def save(self, *args, **kwargs):
        """Enforce singleton: only one instance."""
        self.pk = 1
        super().save(*args, **kwargs)
        from django.core.cache import cache
        cache.delete(CACHE_KEY)

    @classmethod
    def get_config(cls):
        """Get the active Slack config (cached)."""
        from django.core.cache import cache

        config = cache.get(CACHE_KEY)
        if config is None:
            config, _ = cls.objects.get_or_create(pk=1)
            cache.set(CACHE_KEY, config, 600)
        return config

    @property
    def effective_webhook_url(self) -> str:
        return self.webhook_url or getattr(settings, 'SLACK_WEBHOOK_URL', '')

    @property
    def effective_channel(self) -> str:
        return self.channel_id or getattr(settings, 'SLACK_CHANNEL_ID', '')

    @property
    def is_configured(self) -> bool:
        """Enabled here and in settings, with a Slack incoming webhook URL."""
        if not self.is_enabled or not getattr(settings, 'SLACK_NOTIFICATIONS_ENABLED', True):
            return False
        return self.effective_webhook_url.startswith(SLACK_WEBHOOK_PREFIX)

    def is_event_enabled(self, event: str) -> bool:
        """
        Check a per-event toggle.

        Args:
            event: 'new_request' or 'status_update'
        """
        return self.is_configured and getattr(self, f"notify_{event}", False)
