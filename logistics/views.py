"""
Logistics App Views - Delivery Requests, Tracking & Drivers API
"""

import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import IsAdminUser
from notifications.services import notify_exception
from .models import DeliveryRequest, Driver
from .serializers import (
    DeliveryRequestSerializer, DeliveryRequestCreateSerializer,
    TrackingUpdateSerializer, TrackingUpdateCreateSerializer,
    DriverSerializer, DriverStatusSerializer, DriverLocationSerializer,
    StatusUpdateSerializer, ApproveSerializer, DeclineSerializer,
    DriverAssignSerializer, ProofUploadSerializer, LiveTrackingSerializer,
    PublicTrackingSerializer,
)
from .services import lifecycle, simulation, proof_of_delivery

logger = logging.getLogger(__name__)


class IsAdminOrAssignedDriver(permissions.BasePermission):
    """Admins, or the driver currently assigned to the delivery."""

    def has_permission(self, request, view):
        return request.user.is_authenticated

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_admin:
            return True
        driver = obj.assigned_driver
        return driver is not None and driver.user_id == user.pk


class DeliveryRequestViewSet(viewsets.ModelViewSet):
    """
    ViewSet for delivery request management.

    - Customers: submit and follow their own requests
    - Drivers: deliveries assigned to them
    - Admins: everything, plus edits and approve/decline/assign/reset
    """

    queryset = DeliveryRequest.objects.select_related('assigned_driver').prefetch_related('tracking_updates')
    serializer_class = DeliveryRequestSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['status', 'priority', 'package_type', 'is_live_tracking', 'assigned_driver']
    search_fields = ['tracking_id', 'pickup_location', 'delivery_location', 'requester_name', 'company_name']
    ordering_fields = ['created_at', 'priority', 'status']

    ADMIN_ACTIONS = (
        'approve', 'decline', 'reset', 'assign_driver',
        'update', 'partial_update', 'destroy',
    )
    DRIVER_ACTIONS = ('update_status', 'proof', 'live_tracking')

    def get_permissions(self):
        if self.action in self.ADMIN_ACTIONS:
            return [IsAdminUser()]
        if self.action in self.DRIVER_ACTIONS:
            return [IsAdminOrAssignedDriver()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset()

        if user.is_admin:
            return qs
        if user.is_driver:
            return qs.filter(assigned_driver__user=user)
        return qs.filter(Q(created_by=user) | Q(contact_email__iexact=user.email))

    def create(self, request, *args, **kwargs):
        """Submit a new delivery request."""
        serializer = DeliveryRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        delivery = lifecycle.create_request(
            created_by=request.user,
            **serializer.to_model_fields()
        )
        return Response(
            DeliveryRequestSerializer(delivery).data,
            status=status.HTTP_201_CREATED
        )

    def _respond(self, delivery):
        delivery.refresh_from_db()
        return Response(DeliveryRequestSerializer(delivery).data)

    # ============================================
    # Admin actions
    # ============================================

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """Approve a request, optionally assigning a driver."""
        delivery = self.get_object()
        serializer = ApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        driver = None
        driver_id = serializer.validated_data.get('driver_id')
        if driver_id:
            driver = get_object_or_404(Driver, pk=driver_id)

        try:
            lifecycle.approve_request(delivery, driver=driver, actor=request.user)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return self._respond(delivery)

    @action(detail=True, methods=['post'])
    def decline(self, request, pk=None):
        delivery = self.get_object()
        serializer = DeclineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lifecycle.decline_request(
            delivery, reason=serializer.validated_data['reason'], actor=request.user
        )
        return self._respond(delivery)

    @action(detail=True, methods=['post'])
    def reset(self, request, pk=None):
        """Send a request back to pending."""
        delivery = self.get_object()
        lifecycle.reset_to_pending(delivery, actor=request.user)
        return self._respond(delivery)

    @action(detail=True, methods=['post'])
    def assign_driver(self, request, pk=None):
        delivery = self.get_object()
        serializer = DriverAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        driver = get_object_or_404(Driver, pk=serializer.validated_data['driver_id'])
        try:
            lifecycle.assign_driver(delivery, driver)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return self._respond(delivery)

    # ============================================
    # Admin or assigned driver
    # ============================================

    @action(detail=True, methods=['post'])
    def update_status(self, request, pk=None):
        """Move the delivery to any status and log the step."""
        delivery = self.get_object()
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            lifecycle.update_status(
                delivery,
                data['status'],
                location=data.get('location'),
                note=data.get('note'),
                actor=request.user,
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return self._respond(delivery)

    @action(detail=True, methods=['post'])
    def proof(self, request, pk=None):
        """Upload the proof-of-delivery photo and complete the delivery."""
        delivery = self.get_object()
        serializer = ProofUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            photo_url = proof_of_delivery.upload_photo(delivery, serializer.validated_data['photo'])
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except Exception as e:
            logger.error(f"[PROOF] Upload failed for {delivery.pk}: {e}")
            notify_exception(delivery, 'Proof upload failed', str(e))
            return Response({'error': 'Failed to upload photo'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        lifecycle.complete_with_proof(delivery, photo_url, actor=request.user)
        return self._respond(delivery)

    @action(detail=True, methods=['post'])
    def live_tracking(self, request, pk=None):
        """Start, stop, reset or change the speed of the simulation."""
        delivery = self.get_object()
        serializer = LiveTrackingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            if data['action'] == 'start':
                simulation.start_live_tracking(delivery, data.get('speed') or delivery.simulation_speed)
            elif data['action'] == 'stop':
                simulation.stop_live_tracking(delivery)
            elif data['action'] == 'reset':
                simulation.reset_simulation(delivery)
            else:
                simulation.change_speed(delivery, data['speed'])
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return self._respond(delivery)

    # ============================================
    # Any participant
    # ============================================

    @action(detail=True, methods=['get', 'post'])
    def tracking_updates(self, request, pk=None):
        """GET the tracking log, POST (admin/driver) to append an entry."""
        delivery = self.get_object()

        if request.method == 'GET':
            updates = delivery.tracking_updates.all()
            return Response(TrackingUpdateSerializer(updates, many=True).data)

        if not IsAdminOrAssignedDriver().has_object_permission(request, self, delivery):
            return Response({'error': 'Not allowed'}, status=status.HTTP_403_FORBIDDEN)

        serializer = TrackingUpdateCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        coords = data.get('coordinates') or {}

        update = lifecycle.add_tracking_update(
            delivery,
            data['status'],
            location=data['location'],
            note=data['note'],
            lat=coords.get('lat'),
            lng=coords.get('lng'),
        )
        return Response(TrackingUpdateSerializer(update).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def eta(self, request, pk=None):
        """ETA and detailed status from the current position."""
        delivery = self.get_object()
        current = delivery.current_coordinates
        target = delivery.delivery_coordinates

        if not current or not target:
            return Response(
                {'error': 'Current and delivery coordinates are required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        eta = simulation.calculate_eta(current, target, delivery.traffic_condition)
        return Response({
            **eta,
            'traffic_condition': delivery.traffic_condition,
            'detailed_status': simulation.detailed_status(eta['distance_km']),
        })


class PublicTrackingView(APIView):
    """
    Public tracking lookup by tracking id (or delivery id).

    GET /api/track/<tracking_id>/
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request, tracking_id):
        delivery = lifecycle.get_by_tracking_id(tracking_id)
        if delivery is None:
            return Response(
                {'error': 'No delivery found with this tracking ID'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(PublicTrackingSerializer(delivery).data)


class DriverViewSet(viewsets.ModelViewSet):
    """
    ViewSet for drivers.

    - CRUD: Admin only
    - status / location: Admin or the driver themself
    - my_deliveries: the calling driver
    """

    queryset = Driver.objects.select_related('current_delivery')
    serializer_class = DriverSerializer
    filterset_fields = ['status', 'vehicle_type']
    search_fields = ['name', 'phone']

    SELF_ACTIONS = ('set_status', 'location', 'retrieve')

    def get_permissions(self):
        if self.action == 'my_deliveries' or self.action in self.SELF_ACTIONS:
            return [permissions.IsAuthenticated()]
        return [IsAdminUser()]

    def get_queryset(self):
        user = self.request.user
        if user.is_authenticated and user.is_admin:
            return super().get_queryset()
        return super().get_queryset().filter(user=user)

    @action(detail=True, methods=['post'], url_path='status')
    def set_status(self, request, pk=None):
        driver = self.get_object()
        serializer = DriverStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        driver.status = serializer.validated_data['status']
        driver.save(update_fields=['status'])
        return Response(DriverSerializer(driver).data)

    @action(detail=True, methods=['post'])
    def location(self, request, pk=None):
        """Update driver GPS location."""
        driver = self.get_object()
        serializer = DriverLocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        driver.current_lat = data['lat']
        driver.current_lng = data['lng']
        if 'address' in data:
            driver.current_address = data['address']
        driver.location_updated_at = timezone.now()
        driver.save(update_fields=['current_lat', 'current_lng', 'current_address', 'location_updated_at'])

        return Response(DriverSerializer(driver).data)

    @action(detail=False, methods=['get'])
    def my_deliveries(self, request):
        """Deliveries assigned to the calling driver."""
        driver = Driver.objects.filter(user=request.user).first()
        if driver is None:
            return Response(
                {'error': 'No driver profile linked to this account'},
                status=status.HTTP_404_NOT_FOUND
            )

        deliveries = (
            DeliveryRequest.objects.filter(assigned_driver=driver)
            .prefetch_related('tracking_updates')
            .order_by('-created_at')
        )
        return Response(DeliveryRequestSerializer(deliveries, many=True).data)


@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def request_stub(request):
    """
    Acknowledge an inbound request without storing it.

    POST /api/requests
    """
    request_id = request.data.get('id') if hasattr(request.data, 'get') else None
    return Response({
        'success': True,
        'message': 'Request received',
        'data': {'id': request_id},
    })
