"""
LOGISTICS App - Real-time Event Broadcasting

Utility functions to broadcast events via Django Channels.
Used by signals, the simulation and views to push tracking updates.
"""

import logging
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

DASHBOARD_GROUP = 'dispatch_dashboard'


def get_channel_layer():
    """Get the Django Channels layer (lazy import)."""
    from channels.layers import get_channel_layer as _get_channel_layer
    return _get_channel_layer()


def delivery_group(delivery_id) -> str:
    return f'delivery_{delivery_id}'


def _send_group_event(group_name: str, event: dict):
    """Send event to a channel group."""
    channel_layer = get_channel_layer()
    if not channel_layer:
        return False

    try:
        from asgiref.sync import async_to_sync
        async_to_sync(channel_layer.group_send)(group_name, event)
        return True
    except Exception as e:
        logger.error(f"[EVENTS] Failed to send to group {group_name}: {e}")
        return False


# ============================================
# DELIVERY EVENTS
# ============================================

def broadcast_delivery_status(delivery_id, new_status: str, message: str = ""):
    """
    Broadcast delivery status change.

    Notifies:
    - Clients tracking the specific delivery
    - The admin dashboard
    """
    timestamp = timezone.now().isoformat()

    _send_group_event(
        delivery_group(delivery_id),
        {
            'type': 'delivery_status_update',
            'status': new_status,
            'timestamp': timestamp,
            'message': message,
        }
    )

    _send_group_event(
        DASHBOARD_GROUP,
        {
            'type': 'delivery_status_change',
            'delivery_id': str(delivery_id),
            'new_status': new_status,
        }
    )

    logger.debug(f"[EVENTS] Broadcasted status change: {str(delivery_id)[:8]} -> {new_status}")


def broadcast_delivery_location(delivery_id, latitude: float, longitude: float, driver_id=None):
    """Broadcast the (simulated) courier position for a delivery."""
    _send_group_event(
        delivery_group(delivery_id),
        {
            'type': 'delivery_location_update',
            'delivery_id': str(delivery_id),
            'driver_id': str(driver_id) if driver_id else None,
            'latitude': latitude,
            'longitude': longitude,
            'timestamp': timezone.now().isoformat(),
        }
    )


def broadcast_delivery_eta(delivery_id, eta_minutes: int, distance_km: float):
    """Broadcast updated ETA for a delivery."""
    _send_group_event(
        delivery_group(delivery_id),
        {
            'type': 'delivery_eta_update',
            'eta_minutes': eta_minutes,
            'distance_km': distance_km,
        }
    )


def broadcast_new_request(delivery_data: dict):
    """Push a newly submitted request to the admin dashboard."""
    _send_group_event(
        DASHBOARD_GROUP,
        {
            'type': 'new_delivery',
            'delivery': delivery_data,
        }
    )
    logger.info(f"[EVENTS] Broadcasted new request {delivery_data.get('tracking_id')}")


# ============================================
# TRACKING PAGE HELPER
# ============================================

def get_tracking_url(tracking_id: str) -> str:
    """Public tracking URL that can be shared with the requester."""
    return f"{settings.BASE_URL.rstrip('/')}/track/{tracking_id}"
