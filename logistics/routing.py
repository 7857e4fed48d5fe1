"""
LOGISTICS App - WebSocket Routing Configuration

Maps WebSocket URLs to consumers for real-time tracking.
"""

from django.urls import re_path
from . import consumers


websocket_urlpatterns = [
    # Track a specific delivery in real-time
    # ws://localhost:8000/ws/tracking/<uuid or MED-XXXXXX>/
    re_path(
        r'ws/tracking/(?P<delivery_id>[0-9A-Za-z-]+)/$',
        consumers.DeliveryTrackingConsumer.as_asgi()
    ),

    # Admin dashboard - new requests and status changes
    # ws://localhost:8000/ws/dispatch/
    re_path(
        r'ws/dispatch/$',
        consumers.DispatchDashboardConsumer.as_asgi()
    ),
]
