"""
Notifications App - Slack Webhook Service for MediSpatch

Posts delivery events to a Slack incoming webhook. Every call is best
effort: failures are logged and swallowed by the notify_* helpers, and
nothing is retried.
"""

import logging
from typing import Optional, List, Dict

import requests
from django.conf import settings
from django.utils import timezone

from .models import SlackConfiguration

logger = logging.getLogger(__name__)


STATUS_EMOJIS = {
    'in_progress': '🚶',
    'picked_up': '📦',
    'in_transit': '🚚',
    'completed': '✅',
    'declined': '❌',
}
DEFAULT_STATUS_EMOJI = '🔄'


class SlackError(Exception):
    """Raised when a message could not be delivered to Slack."""


# ===========================================
# TRANSPORT
# ===========================================

def send_slack_message(
    text: str,
    blocks: Optional[List[Dict]] = None,
    attachments: Optional[List[Dict]] = None,
    config: Optional[SlackConfiguration] = None,
) -> bool:
    """
    POST one message to the configured webhook.

    Args:
        text: Fallback text shown in notifications
        blocks: Optional Block Kit layout
        attachments: Optional legacy attachments

    Raises:
        SlackError: If Slack is not configured or the request fails
    """
    config = config or SlackConfiguration.get_config()
    if not config.is_configured:
        raise SlackError("Slack webhook is not configured")

    payload = {
        'text': text,
        'channel': config.effective_channel,
    }
    if blocks:
        payload['blocks'] = blocks
    if attachments:
        payload['attachments'] = attachments

    try:
        response = requests.post(
            config.effective_webhook_url,
            json=payload,
            timeout=getattr(settings, 'SLACK_TIMEOUT_SECONDS', 10)
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"[SLACK] Webhook call failed: {e}")
        raise SlackError(str(e)) from e

    logger.info(f"[SLACK] Message sent: {text[:60]}")
    return True


# ===========================================
# MESSAGE BUILDERS
# ===========================================

def _field(label: str, value) -> Dict:
    return {'type': 'mrkdwn', 'text': f"*{label}:*\n{value}"}


def _header(text: str) -> Dict:
    return {'type': 'header', 'text': {'type': 'plain_text', 'text': text, 'emoji': True}}


def _view_button(delivery) -> Dict:
    from logistics.events import get_tracking_url
    return {
        'type': 'actions',
        'elements': [{
            'type': 'button',
            'text': {'type': 'plain_text', 'text': 'View Details', 'emoji': True},
            'url': get_tracking_url(delivery.tracking_id or delivery.pk),
            'action_id': 'view_details',
        }],
    }


def build_new_request_message(delivery):
    """Return (text, blocks) announcing a new delivery request."""
    now = timezone.localtime().strftime('%b %d, %Y %I:%M %p')
    text = f"🆕 New Delivery Request: {delivery.pk} - {now}"
    blocks = [
        _header('🚚 New Delivery Request'),
        {'type': 'section', 'fields': [
            _field('Request ID', delivery.pk),
            _field('Priority', delivery.priority or 'normal'),
        ]},
        {'type': 'section', 'fields': [
            _field('Pickup', delivery.pickup_location),
            _field('Delivery', delivery.delivery_location),
        ]},
        {'type': 'section', 'fields': [
            _field('Package Type', delivery.get_package_type_display() or 'Standard'),
            _field('Time', now),
        ]},
        {'type': 'section', 'text': _field(
            'Requester',
            delivery.requester_name or delivery.contact_email or 'No contact provided'
        )},
        _view_button(delivery),
    ]
    return text, blocks


def build_status_update_message(delivery, status: str, note: str = ''):
    """Return (text, blocks) for a status change."""
    emoji = STATUS_EMOJIS.get(status, DEFAULT_STATUS_EMOJI)
    text = f"{emoji} Delivery Update: {delivery.pk} - {status}"
    blocks = [
        _header(f"{emoji} Delivery Status Update"),
        {'type': 'section', 'fields': [
            _field('Request ID', delivery.pk),
            _field('Status', status),
        ]},
    ]
    if delivery.tracking_id:
        blocks.append({'type': 'section', 'fields': [
            _field('Tracking ID', delivery.tracking_id),
            _field('Time', timezone.localtime().strftime('%I:%M %p')),
        ]})
    if note:
        blocks.append({'type': 'section', 'text': _field('Note', note)})
    blocks.append(_view_button(delivery))
    return text, blocks


def build_exception_message(delivery, exception_type: str, reason: str):
    """Return (text, blocks) for a delivery exception."""
    text = f"⚠️ Delivery Exception: {delivery.pk} - {exception_type}"
    blocks = [
        _header('⚠️ Delivery Exception'),
        {'type': 'section', 'fields': [
            _field('Request ID', delivery.pk),
            _field('Exception Type', exception_type),
        ]},
        {'type': 'section', 'text': _field('Reason', reason)},
        _view_button(delivery),
    ]
    return text, blocks


# ===========================================
# NOTIFY (best effort)
# ===========================================

def _notify(event: str, text: str, blocks) -> bool:
    config = SlackConfiguration.get_config()
    if not config.is_event_enabled(event):
        logger.debug(f"[SLACK] {event} notifications disabled, skipping")
        return False
    try:
        return send_slack_message(text, blocks=blocks, config=config)
    except SlackError as e:
        logger.warning(f"[SLACK] {event} notification dropped: {e}")
        return False


def notify_new_request(delivery) -> bool:
    text, blocks = build_new_request_message(delivery)
    return _notify('new_request', text, blocks)


def notify_status_update(delivery, status: str, note: str = '') -> bool:
    text, blocks = build_status_update_message(delivery, status, note)
    return _notify('status_update', text, blocks)


def notify_exception(delivery, exception_type: str, reason: str) -> bool:
    """Post a delivery exception; shares the status update toggle."""
    text, blocks = build_exception_message(delivery, exception_type, reason)
    return _notify('status_update', text, blocks)
