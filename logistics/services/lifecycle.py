"""
Delivery Lifecycle Service for MediSpatch

Status updates, tracking log and driver bookkeeping for delivery requests.

Status changes are permissive: any status in DeliveryStatus is accepted
and the last writer wins. Each change appends one TrackingUpdate
described by STATUS_STEPS.
"""

import logging
import random
import string
import uuid
from typing import Optional

from django.db import transaction
from django.utils import timezone

from logistics.models import (
    DeliveryRequest, DeliveryStatus, Driver, TrackingUpdate, STATUS_SEQUENCE,
)
from logistics.services.pricing import pricing_engine

logger = logging.getLogger(__name__)

TRACKING_ID_PREFIX = 'MED-'
TRACKING_ID_ALPHABET = string.ascii_uppercase + string.digits
TRACKING_ID_LENGTH = 6

# Statuses that end the delivery and free its driver
FINAL_STATUSES = (DeliveryStatus.COMPLETED, DeliveryStatus.DECLINED)

# Sentinels resolved from the delivery itself
PICKUP_LOCATION = object()
DELIVERY_LOCATION = object()

# status -> (label, location, note)
STATUS_STEPS = {
    DeliveryStatus.PENDING: (
        'Request Submitted', 'Online System', 'Delivery request submitted'),
    DeliveryStatus.IN_PROGRESS: (
        'Driver Assigned', 'Admin Dashboard', 'Request approved and driver assigned'),
    DeliveryStatus.PICKED_UP: (
        'Picked Up', PICKUP_LOCATION, 'Picked up by courier'),
    DeliveryStatus.IN_TRANSIT: (
        'In Transit', 'En route to delivery location', 'Package is in transit'),
    DeliveryStatus.COMPLETED: (
        'Delivered', DELIVERY_LOCATION, 'Package delivered to destination'),
    DeliveryStatus.DECLINED: (
        'Declined', 'Admin Dashboard', 'Request declined'),
}


# ============================================
# HELPERS
# ============================================

def generate_tracking_id() -> str:
    """MED- followed by six upper-case base-36 characters, unique among requests."""
    while True:
        suffix = ''.join(random.choices(TRACKING_ID_ALPHABET, k=TRACKING_ID_LENGTH))
        tracking_id = f"{TRACKING_ID_PREFIX}{suffix}"
        if not DeliveryRequest.objects.filter(tracking_id=tracking_id).exists():
            return tracking_id


def format_timestamp(value) -> str:
    """Human display string, e.g. 'Apr 16, 2025 2:22 PM'."""
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    hour = value.hour % 12 or 12
    return f"{value:%b} {value.day}, {value.year} {hour}:{value:%M} {value:%p}"


def describe_step(delivery: DeliveryRequest, status: str):
    """Return the (label, location, note) triple for a status on this delivery."""
    label, location, note = STATUS_STEPS[status]
    if location is PICKUP_LOCATION:
        location = delivery.pickup_location
    elif location is DELIVERY_LOCATION:
        location = delivery.delivery_location
    return label, location, note


def _is_backwards(previous: str, new: str) -> bool:
    if previous not in STATUS_SEQUENCE or new not in STATUS_SEQUENCE:
        return False
    return STATUS_SEQUENCE.index(new) < STATUS_SEQUENCE.index(previous)


# ============================================
# TRACKING LOG
# ============================================

def add_tracking_update(
    delivery: DeliveryRequest,
    status: str,
    location: str = '',
    note: str = '',
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    timestamp=None,
) -> TrackingUpdate:
    """Append one entry to the delivery's tracking log."""
    return TrackingUpdate.objects.create(
        delivery=delivery,
        status=status,
        timestamp=timestamp or timezone.now(),
        location=location or '',
        note=note or '',
        lat=lat,
        lng=lng,
    )


def get_by_tracking_id(value: str) -> Optional[DeliveryRequest]:
    """Look up a delivery by tracking id or by primary key."""
    if not value:
        return None
    value = value.strip()

    delivery = DeliveryRequest.objects.filter(tracking_id__iexact=value).first()
    if delivery:
        return delivery

    try:
        pk = uuid.UUID(value)
    except ValueError:
        return None
    return DeliveryRequest.objects.filter(pk=pk).first()


# ============================================
# STATUS UPDATES
# ============================================

@transaction.atomic
def update_status(
    delivery: DeliveryRequest,
    new_status: str,
    *,
    location: Optional[str] = None,
    note: Optional[str] = None,
    actor=None,
) -> DeliveryRequest:
    """
    Move a delivery to new_status and log the step.

    Raises:
        ValueError: If new_status is not a DeliveryStatus value
    """
    if new_status not in DeliveryStatus.values:
        raise ValueError(f"Invalid status: {new_status}")

    previous = delivery.status
    if _is_backwards(previous, new_status):
        logger.warning(
            f"[LIFECYCLE] {delivery.tracking_id or delivery.pk} moved backwards: "
            f"{previous} -> {new_status}"
        )

    delivery.status = new_status
    update_fields = ['status']

    if new_status == DeliveryStatus.IN_PROGRESS and not delivery.tracking_id:
        delivery.tracking_id = generate_tracking_id()
        update_fields.append('tracking_id')

    if new_status in FINAL_STATUSES and delivery.is_live_tracking:
        delivery.is_live_tracking = False
        update_fields.append('is_live_tracking')

    label, step_location, step_note = describe_step(delivery, new_status)
    if note is None:
        note = step_note

    # Read by the post_save fan-out
    delivery._status_note = note
    delivery.save(update_fields=update_fields)

    add_tracking_update(
        delivery,
        label,
        location=location if location is not None else step_location,
        note=note,
        lat=delivery.current_lat,
        lng=delivery.current_lng,
    )

    if new_status in FINAL_STATUSES:
        release_driver(delivery)

    logger.info(
        f"[LIFECYCLE] {delivery.tracking_id or delivery.pk}: {previous} -> {new_status}"
        + (f" by {actor}" if actor else "")
    )
    return delivery


@transaction.atomic
def create_request(created_by=None, **fields) -> DeliveryRequest:
    """
    Store a new pending request with tracking id, estimates and the
    first 'Request Submitted' entry.
    """
    fields.pop('status', None)
    delivery = DeliveryRequest(created_by=created_by, **fields)
    delivery.status = DeliveryStatus.PENDING
    delivery.tracking_id = generate_tracking_id()

    if delivery.current_lat is None and delivery.pickup_lat is not None:
        delivery.current_lat = delivery.pickup_lat
        delivery.current_lng = delivery.pickup_lng

    distance, cost = pricing_engine.estimate(
        delivery.pickup_coordinates,
        delivery.delivery_coordinates,
        priority=delivery.priority,
        package_type=delivery.package_type,
    )
    if delivery.estimated_distance is None:
        delivery.estimated_distance = distance
    if delivery.estimated_cost is None:
        delivery.estimated_cost = cost

    delivery.save()

    label, location, note = describe_step(delivery, DeliveryStatus.PENDING)
    add_tracking_update(
        delivery, label, location=location, note=note,
        lat=delivery.pickup_lat, lng=delivery.pickup_lng,
        timestamp=delivery.created_at,
    )

    logger.info(f"[LIFECYCLE] Request {delivery.tracking_id} submitted")
    return delivery


# ============================================
# DRIVER BOOKKEEPING
# ============================================

@transaction.atomic
def assign_driver(delivery: DeliveryRequest, driver: Driver) -> DeliveryRequest:
    """
    Make driver the assigned driver and mark the delivery as their
    current one.

    Raises:
        ValueError: If the driver is inactive or busy with another delivery
    """
    if driver.status != Driver.Status.ACTIVE:
        raise ValueError(f"Driver {driver.name} is inactive")
    if driver.current_delivery_id and driver.current_delivery_id != delivery.pk:
        raise ValueError(f"Driver {driver.name} already has a current delivery")

    previous = delivery.assigned_driver
    if previous and previous.pk != driver.pk:
        release_driver(delivery)

    delivery.assigned_driver = driver
    delivery.save(update_fields=['assigned_driver'])

    driver.current_delivery = delivery
    driver.save(update_fields=['current_delivery'])

    logger.info(f"[LIFECYCLE] Driver {driver.name} assigned to {delivery.tracking_id or delivery.pk}")
    return delivery


def release_driver(delivery: DeliveryRequest) -> Optional[Driver]:
    """Clear the assigned driver's current delivery if it is this one."""
    driver = delivery.assigned_driver
    if driver is None:
        return None

    driver.refresh_from_db(fields=['current_delivery'])
    if driver.current_delivery_id == delivery.pk:
        driver.current_delivery = None
        driver.save(update_fields=['current_delivery'])
        logger.info(f"[LIFECYCLE] Driver {driver.name} released")
    return driver


# ============================================
# ADMIN ACTIONS
# ============================================

@transaction.atomic
def approve_request(delivery: DeliveryRequest, driver: Optional[Driver] = None, actor=None) -> DeliveryRequest:
    """Approve a request (-> in_progress), optionally assigning a driver."""
    if driver is not None:
        assign_driver(delivery, driver)
    return update_status(delivery, DeliveryStatus.IN_PROGRESS, actor=actor)


@transaction.atomic
def decline_request(delivery: DeliveryRequest, reason: str = '', actor=None) -> DeliveryRequest:
    note = f"Request declined: {reason}" if reason else None
    return update_status(delivery, DeliveryStatus.DECLINED, note=note, actor=actor)


@transaction.atomic
def reset_to_pending(delivery: DeliveryRequest, actor=None) -> DeliveryRequest:
    """Send a request back to the queue, unassigning its driver."""
    release_driver(delivery)
    delivery.assigned_driver = None
    delivery.is_live_tracking = False
    delivery.save(update_fields=['assigned_driver', 'is_live_tracking'])
    return update_status(delivery, DeliveryStatus.PENDING, actor=actor)


@transaction.atomic
def complete_with_proof(delivery: DeliveryRequest, photo_url: str, actor=None) -> DeliveryRequest:
    """
    Attach the proof-of-delivery photo, complete the delivery and free
    the driver.
    """
    if not photo_url:
        raise ValueError("A proof of delivery photo is required")

    delivery.proof_of_delivery_photo = photo_url
    delivery.save(update_fields=['proof_of_delivery_photo'])

    update_status(delivery, DeliveryStatus.COMPLETED, actor=actor)
    return delivery
