"""
LOGISTICS App - Delivery Requests & Tracking for MediSpatch

Handles: Delivery requests, Tracking updates, Drivers
"""

import uuid
from django.db import models
from django.conf import settings


class DeliveryStatus(models.TextChoices):
    """Delivery status enumeration."""
    PENDING = 'pending', 'Pending'
    IN_PROGRESS = 'in_progress', 'In progress'
    PICKED_UP = 'picked_up', 'Picked up'
    IN_TRANSIT = 'in_transit', 'In transit'
    COMPLETED = 'completed', 'Completed'
    DECLINED = 'declined', 'Declined'


# Forward order of the lifecycle, used to detect backwards moves.
# DECLINED is terminal and sits outside the sequence.
STATUS_SEQUENCE = [
    DeliveryStatus.PENDING,
    DeliveryStatus.IN_PROGRESS,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.COMPLETED,
]


class Priority(models.TextChoices):
    NORMAL = 'normal', 'Normal'
    URGENT = 'urgent', 'Urgent'


class PackageType(models.TextChoices):
    STANDARD = 'standard', 'Standard'
    TEMPERATURE_CONTROLLED = 'temperature-controlled', 'Temperature controlled'
    SPECIMEN = 'specimen', 'Specimen'
    PHARMACEUTICAL = 'pharmaceutical', 'Pharmaceutical'
    EQUIPMENT = 'equipment', 'Equipment'
    DOCUMENTS = 'documents', 'Documents'


class SimulationSpeed(models.TextChoices):
    SLOW = 'slow', 'Slow'
    NORMAL = 'normal', 'Normal'
    FAST = 'fast', 'Fast'


class TrafficCondition(models.TextChoices):
    GOOD = 'good', 'Good'
    MODERATE = 'moderate', 'Moderate'
    HEAVY = 'heavy', 'Heavy'


class Driver(models.Model):
    """
    Courier available for dispatch.

    A driver carries at most one current delivery; the lifecycle helpers
    set and clear it on assignment and completion.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driver_profile',
        verbose_name="User account"
    )
    name = models.CharField(max_length=150, verbose_name="Name")
    phone = models.CharField(max_length=30, blank=True, verbose_name="Phone")
    photo = models.URLField(max_length=500, blank=True, verbose_name="Photo URL")
    vehicle_type = models.CharField(max_length=50, verbose_name="Vehicle type")
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        verbose_name="Status"
    )

    # Current location
    current_address = models.CharField(max_length=255, blank=True, verbose_name="Current address")
    current_lat = models.FloatField(null=True, blank=True)
    current_lng = models.FloatField(null=True, blank=True)
    location_updated_at = models.DateTimeField(null=True, blank=True)

    current_delivery = models.OneToOneField(
        'DeliveryRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='current_driver',
        verbose_name="Current delivery"
    )
    average_response_time = models.PositiveIntegerField(
        default=0,
        verbose_name="Average response time (min)"
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Driver"
        verbose_name_plural = "Drivers"
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.vehicle_type})"

    @property
    def is_available(self) -> bool:
        return self.status == self.Status.ACTIVE and self.current_delivery_id is None

    @property
    def current_coordinates(self):
        if self.current_lat is None or self.current_lng is None:
            return None
        return {'lat': self.current_lat, 'lng': self.current_lng}


class DeliveryRequest(models.Model):
    """
    One pickup-to-delivery transport task.

    Coordinates are plain lat/lng floats; current_* is the simulated
    courier position shown on the tracking map.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tracking_id = models.CharField(
        max_length=10,
        unique=True,
        null=True,
        blank=True,
        db_index=True,
        verbose_name="Tracking ID"
    )

    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
        verbose_name="Status"
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.NORMAL,
        verbose_name="Priority"
    )
    package_type = models.CharField(
        max_length=30,
        choices=PackageType.choices,
        default=PackageType.STANDARD,
        verbose_name="Package type"
    )

    # Locations
    pickup_location = models.CharField(max_length=255, verbose_name="Pickup location")
    delivery_location = models.CharField(max_length=255, verbose_name="Delivery location")
    pickup_lat = models.FloatField(null=True, blank=True)
    pickup_lng = models.FloatField(null=True, blank=True)
    delivery_lat = models.FloatField(null=True, blank=True)
    delivery_lng = models.FloatField(null=True, blank=True)
    current_lat = models.FloatField(null=True, blank=True)
    current_lng = models.FloatField(null=True, blank=True)

    # Requester
    requester_name = models.CharField(max_length=150, blank=True, verbose_name="Requester")
    company_name = models.CharField(max_length=200, blank=True, verbose_name="Company")
    contact_phone = models.CharField(max_length=30, blank=True, verbose_name="Contact phone")
    contact_email = models.EmailField(blank=True, verbose_name="Contact email")
    special_instructions = models.TextField(blank=True, verbose_name="Special instructions")
    pickup_time = models.DateTimeField(null=True, blank=True, verbose_name="Requested pickup time")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='delivery_requests',
        verbose_name="Created by"
    )

    # Estimates
    estimated_distance = models.FloatField(null=True, blank=True, verbose_name="Estimated distance (mi)")
    estimated_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Estimated cost (USD)"
    )
    estimated_delivery = models.DateTimeField(null=True, blank=True)

    assigned_driver = models.ForeignKey(
        Driver,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deliveries',
        verbose_name="Assigned driver"
    )
    proof_of_delivery_photo = models.URLField(
        max_length=500,
        blank=True,
        verbose_name="Proof of delivery photo"
    )

    # Live tracking simulation
    is_live_tracking = models.BooleanField(default=False)
    simulation_speed = models.CharField(
        max_length=10,
        choices=SimulationSpeed.choices,
        default=SimulationSpeed.NORMAL
    )
    traffic_condition = models.CharField(
        max_length=10,
        choices=TrafficCondition.choices,
        default=TrafficCondition.GOOD
    )
    last_simulated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Delivery request"
        verbose_name_plural = "Delivery requests"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='delivery_status_created_idx'),
            models.Index(fields=['is_live_tracking'], name='delivery_live_tracking_idx'),
        ]

    def __str__(self):
        return f"{self.tracking_id or str(self.id)[:8]} - {self.status}"

    @property
    def pickup_coordinates(self):
        if self.pickup_lat is None or self.pickup_lng is None:
            return None
        return {'lat': self.pickup_lat, 'lng': self.pickup_lng}

    @property
    def delivery_coordinates(self):
        if self.delivery_lat is None or self.delivery_lng is None:
            return None
        return {'lat': self.delivery_lat, 'lng': self.delivery_lng}

    @property
    def current_coordinates(self):
        if self.current_lat is None or self.current_lng is None:
            return None
        return {'lat': self.current_lat, 'lng': self.current_lng}

    @property
    def is_completed(self) -> bool:
        return self.status == DeliveryStatus.COMPLETED


class TrackingUpdate(models.Model):
    """
    Append-only log entry attached to a delivery.

    Rows are never edited once written; ordering is insertion order.
    """

    delivery = models.ForeignKey(
        DeliveryRequest,
        on_delete=models.CASCADE,
        related_name='tracking_updates'
    )
    status = models.CharField(max_length=50, verbose_name="Status label")
    timestamp = models.DateTimeField(verbose_name="Timestamp")
    location = models.CharField(max_length=255, blank=True)
    note = models.TextField(blank=True)
    lat = models.FloatField(null=True, blank=True)
    lng = models.FloatField(null=True, blank=True)

    class Meta:
        verbose_name = "Tracking update"
        verbose_name_plural = "Tracking updates"
        ordering = ['timestamp', 'id']

    def __str__(self):
        return f"{self.status} @ {self.timestamp:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Tracking updates are append-only")
        super().save(*args, **kwargs)

    @property
    def coordinates(self):
        if self.lat is None or self.lng is None:
            return None
        return {'lat': self.lat, 'lng': self.lng}
