"""
LOGISTICS App - WebSocket Consumers for Real-time Tracking

Provides real-time updates for:
- Delivery tracking (public tracking page, customer and driver portals)
- Dispatch dashboard monitoring (admins)
"""

import logging
from typing import Dict, Any, Optional
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from channels.db import database_sync_to_async

from logistics.events import DASHBOARD_GROUP, delivery_group

logger = logging.getLogger(__name__)


class DeliveryTrackingConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for tracking a specific delivery.

    Clients connect to: ws://host/ws/tracking/<delivery_id or tracking_id>/

    Events received:
    - delivery_status_update: Status changed
    - delivery_location_update: Simulated courier position moved
    - delivery_eta_update: Estimated time of arrival updated
    """

    async def connect(self):
        lookup = self.scope['url_route']['kwargs']['delivery_id']

        delivery = await self.get_delivery(lookup)
        if not delivery:
            await self.close(code=4004)
            return

        self.delivery_id = delivery['id']
        self.room_group_name = delivery_group(self.delivery_id)

        await self.channel_layer.group_add(
            self.room_group_name,
            self.channel_name
        )

        await self.accept()

        # Send initial state
        await self.send_json({
            'type': 'connection_established',
            'delivery_id': self.delivery_id,
            'tracking_id': delivery['tracking_id'],
            'status': delivery['status'],
            'current_location': delivery['current_location'],
            'is_live_tracking': delivery['is_live_tracking'],
        })

        logger.info(f"[WS] Client connected to delivery {self.delivery_id[:8]}")

    async def disconnect(self, close_code):
        if not hasattr(self, 'room_group_name'):
            return
        await self.channel_layer.group_discard(
            self.room_group_name,
            self.channel_name
        )
        logger.info(f"[WS] Client disconnected from delivery {self.delivery_id[:8]}")

    async def receive_json(self, content):
        """Handle incoming WebSocket messages from clients."""
        if content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})

    # ============================================
    # Event Handlers (called via channel_layer.group_send)
    # ============================================

    async def delivery_status_update(self, event):
        await self.send_json({
            'type': 'status_update',
            'status': event['status'],
            'timestamp': event['timestamp'],
            'message': event.get('message', ''),
        })

    async def delivery_location_update(self, event):
        await self.send_json({
            'type': 'location_update',
            'latitude': event['latitude'],
            'longitude': event['longitude'],
            'timestamp': event['timestamp'],
        })

    async def delivery_eta_update(self, event):
        await self.send_json({
            'type': 'eta_update',
            'eta_minutes': event['eta_minutes'],
            'distance_km': event['distance_km'],
        })

    # ============================================
    # Database helpers
    # ============================================

    @database_sync_to_async
    def get_delivery(self, lookup: str) -> Optional[Dict[str, Any]]:
        from logistics.services.lifecycle import get_by_tracking_id

        delivery = get_by_tracking_id(lookup)
        if delivery is None:
            return None
        return {
            'id': str(delivery.pk),
            'tracking_id': delivery.tracking_id,
            'status': delivery.status,
            'current_location': delivery.current_coordinates,
            'is_live_tracking': delivery.is_live_tracking,
        }


class DispatchDashboardConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for the admin dispatch dashboard.

    Clients connect to: ws://host/ws/dispatch/

    Events received:
    - new_delivery: A new request was submitted
    - delivery_status_change: A delivery changed status
    """

    async def connect(self):
        user = self.scope.get('user')
        if not user or user.is_anonymous or not (user.is_staff or user.is_admin):
            await self.close(code=4003)
            return

        self.room_group_name = DASHBOARD_GROUP
        await self.channel_layer.group_add(
            self.room_group_name,
            self.channel_name
        )
        await self.accept()

        summary = await self.get_summary()
        await self.send_json({'type': 'connection_established', **summary})
        logger.info(f"[WS] Dispatch dashboard connected ({user})")

    async def disconnect(self, close_code):
        if not hasattr(self, 'room_group_name'):
            return
        await self.channel_layer.group_discard(
            self.room_group_name,
            self.channel_name
        )

    async def receive_json(self, content):
        message_type = content.get('type')

        if message_type == 'refresh':
            summary = await self.get_summary()
            await self.send_json({'type': 'dashboard_status', **summary})
        elif message_type == 'ping':
            await self.send_json({'type': 'pong'})

    # ============================================
    # Event Handlers
    # ============================================

    async def new_delivery(self, event):
        await self.send_json({
            'type': 'new_delivery',
            'delivery': event['delivery'],
        })

    async def delivery_status_change(self, event):
        await self.send_json({
            'type': 'delivery_update',
            'delivery_id': event['delivery_id'],
            'new_status': event['new_status'],
        })

    @database_sync_to_async
    def get_summary(self) -> Dict[str, int]:
        from logistics.models import DeliveryRequest, DeliveryStatus, Driver

        return {
            'pending_requests': DeliveryRequest.objects.filter(status=DeliveryStatus.PENDING).count(),
            'live_deliveries': DeliveryRequest.objects.filter(is_live_tracking=True).count(),
            'available_drivers': Driver.objects.filter(
                status=Driver.Status.ACTIVE, current_delivery__isnull=True
            ).count(),
        }
