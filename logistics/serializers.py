"""
Logistics App Serializers - Delivery Requests, Tracking & Drivers
"""

from rest_framework import serializers

from .models import (
    DeliveryRequest, TrackingUpdate, Driver,
    Priority, PackageType, SimulationSpeed,
)
from .services.lifecycle import format_timestamp


class CoordinatesSerializer(serializers.Serializer):
    """{lat, lng} pair."""

    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class TrackingUpdateSerializer(serializers.ModelSerializer):
    """Read serializer for the tracking log."""

    coordinates = serializers.ReadOnlyField()
    display_time = serializers.SerializerMethodField()

    class Meta:
        model = TrackingUpdate
        fields = ['id', 'status', 'timestamp', 'display_time', 'location', 'note', 'coordinates']
        read_only_fields = fields

    def get_display_time(self, obj):
        return format_timestamp(obj.timestamp)


class TrackingUpdateCreateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=50)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    note = serializers.CharField(required=False, allow_blank=True, default='')
    coordinates = CoordinatesSerializer(required=False)


class DriverSerializer(serializers.ModelSerializer):
    """Full serializer for Driver model."""

    current_coordinates = serializers.ReadOnlyField()
    is_available = serializers.ReadOnlyField()
    current_delivery_tracking_id = serializers.CharField(
        source='current_delivery.tracking_id', read_only=True, default=None
    )

    class Meta:
        model = Driver
        fields = [
            'id', 'user', 'name', 'phone', 'photo', 'vehicle_type', 'status',
            'current_address', 'current_coordinates', 'location_updated_at',
            'current_delivery', 'current_delivery_tracking_id',
            'average_response_time', 'is_available', 'created_at'
        ]
        read_only_fields = [
            'id', 'current_delivery', 'location_updated_at', 'created_at'
        ]


class DriverStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Driver.Status.choices)


class DriverLocationSerializer(serializers.Serializer):
    """Serializer for updating driver GPS location."""

    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)


class DeliveryRequestSerializer(serializers.ModelSerializer):
    """Full serializer for DeliveryRequest model."""

    pickup_coordinates = serializers.ReadOnlyField()
    delivery_coordinates = serializers.ReadOnlyField()
    current_coordinates = serializers.ReadOnlyField()
    assigned_driver_name = serializers.CharField(
        source='assigned_driver.name', read_only=True, default=None
    )
    tracking_updates = TrackingUpdateSerializer(many=True, read_only=True)

    class Meta:
        model = DeliveryRequest
        fields = [
            'id', 'tracking_id', 'status', 'priority', 'package_type',
            'pickup_location', 'delivery_location',
            'pickup_coordinates', 'delivery_coordinates', 'current_coordinates',
            'requester_name', 'company_name', 'contact_phone', 'contact_email',
            'special_instructions', 'pickup_time',
            'estimated_distance', 'estimated_cost', 'estimated_delivery',
            'assigned_driver', 'assigned_driver_name', 'proof_of_delivery_photo',
            'is_live_tracking', 'simulation_speed', 'traffic_condition',
            'created_by', 'created_at', 'tracking_updates'
        ]
        read_only_fields = [
            'id', 'tracking_id', 'status', 'assigned_driver',
            'proof_of_delivery_photo', 'is_live_tracking', 'simulation_speed',
            'traffic_condition', 'created_by', 'created_at',
            'estimated_distance', 'estimated_cost', 'estimated_delivery'
        ]


class DeliveryRequestCreateSerializer(serializers.Serializer):
    """Serializer for submitting a new delivery request."""

    pickup_location = serializers.CharField(max_length=255)
    delivery_location = serializers.CharField(max_length=255)
    pickup_coordinates = CoordinatesSerializer(required=False)
    delivery_coordinates = CoordinatesSerializer(required=False)
    priority = serializers.ChoiceField(choices=Priority.choices, default=Priority.NORMAL)
    package_type = serializers.ChoiceField(choices=PackageType.choices, default=PackageType.STANDARD)
    requester_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    company_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    contact_phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    contact_email = serializers.EmailField(required=False, allow_blank=True)
    special_instructions = serializers.CharField(required=False, allow_blank=True)
    pickup_time = serializers.DateTimeField(required=False, allow_null=True)

    def to_model_fields(self) -> dict:
        """Flatten validated data into DeliveryRequest field names."""
        data = dict(self.validated_data)
        for prefix in ('pickup', 'delivery'):
            coords = data.pop(f'{prefix}_coordinates', None)
            if coords:
                data[f'{prefix}_lat'] = coords['lat']
                data[f'{prefix}_lng'] = coords['lng']
        return data


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    location = serializers.CharField(max_length=255, required=False)
    note = serializers.CharField(required=False, allow_blank=True)


class ApproveSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField(required=False, allow_null=True)


class DeclineSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class DriverAssignSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField()


class ProofUploadSerializer(serializers.Serializer):
    photo = serializers.FileField()


class LiveTrackingSerializer(serializers.Serializer):
    ACTIONS = ('start', 'stop', 'reset', 'speed')

    action = serializers.ChoiceField(choices=ACTIONS)
    speed = serializers.ChoiceField(choices=SimulationSpeed.choices, required=False)

    def validate(self, data):
        if data['action'] == 'speed' and not data.get('speed'):
            raise serializers.ValidationError("A speed is required to change the simulation speed.")
        return data


class PublicTrackingSerializer(serializers.ModelSerializer):
    """Limited view of a delivery for the public tracking page."""

    pickup_coordinates = serializers.ReadOnlyField()
    delivery_coordinates = serializers.ReadOnlyField()
    current_coordinates = serializers.ReadOnlyField()
    tracking_updates = TrackingUpdateSerializer(many=True, read_only=True)

    class Meta:
        model = DeliveryRequest
        fields = [
            'id', 'tracking_id', 'status', 'priority', 'package_type',
            'pickup_location', 'delivery_location',
            'pickup_coordinates', 'delivery_coordinates', 'current_coordinates',
            'estimated_delivery', 'is_live_tracking', 'traffic_condition',
            'proof_of_delivery_photo', 'created_at', 'tracking_updates'
        ]
        read_only_fields = fields
