"""
Live Tracking Simulation for MediSpatch

Moves a delivery's current position toward its destination in small
straight-line steps so the tracking map has something to show. The
movement is cosmetic and not derived from any telemetry.

Driven by the Celery beat task logistics.tasks.simulate_live_deliveries.
"""

import logging
import math
import random
from datetime import timedelta
from typing import Optional

from django.db import transaction
from django.utils import timezone

from logistics.models import (
    DeliveryRequest, DeliveryStatus, SimulationSpeed, TrafficCondition,
)
from logistics.services import lifecycle

logger = logging.getLogger(__name__)

# Degrees of lat/lng
BASE_STEP = 0.001
ARRIVAL_THRESHOLD = 0.002

TRAFFIC_FACTORS = {
    TrafficCondition.GOOD: 1.0,
    TrafficCondition.MODERATE: 0.7,
    TrafficCondition.HEAVY: 0.4,
}

# Average speed in km/h per traffic condition, used for the ETA
TRAFFIC_SPEEDS_KMH = {
    TrafficCondition.GOOD: 30,
    TrafficCondition.MODERATE: 20,
    TrafficCondition.HEAVY: 10,
}

TRAFFIC_MESSAGES = {
    TrafficCondition.GOOD: 'Traffic is flowing well',
    TrafficCondition.MODERATE: 'Moderate traffic conditions',
    TrafficCondition.HEAVY: 'Heavy traffic encountered',
}

# Seconds between two steps of one delivery
SPEED_INTERVALS = {
    SimulationSpeed.SLOW: 5,
    SimulationSpeed.NORMAL: 3,
    SimulationSpeed.FAST: 1,
}

TRAFFIC_CHANGE_PROBABILITY = 0.1

MOVABLE_STATUSES = (
    DeliveryStatus.IN_PROGRESS,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.IN_TRANSIT,
)

ARRIVAL_NOTE = 'Package has been delivered successfully'

EARTH_RADIUS_KM = 6371


def calculate_movement(current: dict, target: dict, step: float) -> Optional[dict]:
    """
    Move `step` degrees from current toward target.

    Returns None once current is within ARRIVAL_THRESHOLD of target.
    """
    lat_diff = target['lat'] - current['lat']
    lng_diff = target['lng'] - current['lng']
    distance = math.sqrt(lat_diff * lat_diff + lng_diff * lng_diff)

    if distance < ARRIVAL_THRESHOLD:
        return None

    return {
        'lat': current['lat'] + (lat_diff / distance) * step,
        'lng': current['lng'] + (lng_diff / distance) * step,
    }


def haversine_km(origin: dict, destination: dict) -> float:
    lat1, lon1 = math.radians(origin['lat']), math.radians(origin['lng'])
    lat2, lon2 = math.radians(destination['lat']), math.radians(destination['lng'])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_eta(current: dict, destination: dict, traffic: str = TrafficCondition.GOOD) -> dict:
    """Distance (km, one decimal) and minutes to destination at the traffic speed."""
    distance = haversine_km(current, destination)
    speed = TRAFFIC_SPEEDS_KMH.get(traffic, TRAFFIC_SPEEDS_KMH[TrafficCondition.GOOD])
    return {
        'distance_km': round(distance, 1),
        'eta_minutes': int(round(distance / speed * 60)),
    }


def detailed_status(distance_km: float) -> str:
    if distance_km < 0.5:
        return 'Arriving soon (less than 0.5km away)'
    if distance_km < 1:
        return 'Approaching destination'
    if distance_km < 3:
        return 'In delivery area'
    return 'En route to delivery location'


def _broadcast_location(delivery: DeliveryRequest):
    try:
        from logistics.events import broadcast_delivery_location
        broadcast_delivery_location(
            delivery.pk, delivery.current_lat, delivery.current_lng,
            driver_id=delivery.assigned_driver_id,
        )
    except Exception as e:
        logger.warning(f"[SIMULATION] Location broadcast failed: {e}")


def _broadcast_eta(delivery: DeliveryRequest, eta: dict):
    try:
        from logistics.events import broadcast_delivery_eta
        broadcast_delivery_eta(delivery.pk, eta['eta_minutes'], eta['distance_km'])
    except Exception as e:
        logger.warning(f"[SIMULATION] ETA broadcast failed: {e}")


def _mirror_driver_location(delivery: DeliveryRequest):
    driver = delivery.assigned_driver
    if driver is None:
        return
    driver.current_lat = delivery.current_lat
    driver.current_lng = delivery.current_lng
    driver.location_updated_at = timezone.now()
    driver.save(update_fields=['current_lat', 'current_lng', 'location_updated_at'])


def _maybe_change_traffic(delivery: DeliveryRequest, rng) -> bool:
    if rng.random() >= TRAFFIC_CHANGE_PROBABILITY:
        return False
    new_traffic = rng.choice(TrafficCondition.values)
    if new_traffic == delivery.traffic_condition:
        return False
    delivery.traffic_condition = new_traffic
    logger.info(
        f"[SIMULATION] {delivery.tracking_id}: Traffic Update: {TRAFFIC_MESSAGES[new_traffic]}"
    )
    return True


@transaction.atomic
def simulate_step(delivery: DeliveryRequest, rng=random) -> bool:
    """
    Advance one delivery by one step.

    Returns True when the delivery arrived (and was completed) on this step.
    """
    current = delivery.current_coordinates
    target = delivery.delivery_coordinates
    if not current or not target:
        logger.debug(f"[SIMULATION] {delivery.pk}: missing coordinates, skipping")
        return False

    step = BASE_STEP * TRAFFIC_FACTORS.get(delivery.traffic_condition, 1.0)
    new_position = calculate_movement(current, target, step)
    now = timezone.now()

    if new_position is None:
        _complete_on_arrival(delivery, now)
        return True

    delivery.current_lat = new_position['lat']
    delivery.current_lng = new_position['lng']
    delivery.last_simulated_at = now
    update_fields = ['current_lat', 'current_lng', 'last_simulated_at']
    if _maybe_change_traffic(delivery, rng):
        update_fields.append('traffic_condition')
    delivery.save(update_fields=update_fields)

    _mirror_driver_location(delivery)
    _broadcast_location(delivery)
    _broadcast_eta(delivery, calculate_eta(new_position, target, delivery.traffic_condition))
    return False


def _complete_on_arrival(delivery: DeliveryRequest, now):
    delivery.current_lat = delivery.delivery_lat
    delivery.current_lng = delivery.delivery_lng
    delivery.is_live_tracking = False
    delivery.last_simulated_at = now
    delivery.save(update_fields=['current_lat', 'current_lng', 'is_live_tracking', 'last_simulated_at'])

    lifecycle.update_status(
        delivery,
        DeliveryStatus.COMPLETED,
        note=ARRIVAL_NOTE,
        actor='simulation',
    )
    _mirror_driver_location(delivery)
    _broadcast_location(delivery)

    logger.info(f"[SIMULATION] {delivery.tracking_id} arrived at destination")


# ============================================
# CONTROLS
# ============================================

def _validate_speed(speed: str) -> str:
    if speed not in SimulationSpeed.values:
        raise ValueError(f"Invalid simulation speed: {speed}")
    return speed


def start_live_tracking(delivery: DeliveryRequest, speed: str = SimulationSpeed.NORMAL, rng=random) -> DeliveryRequest:
    """
    Start simulating movement for a delivery.

    Raises:
        ValueError: On an unknown speed, a non-movable status or missing coordinates
    """
    _validate_speed(speed)
    if delivery.status not in MOVABLE_STATUSES:
        raise ValueError(f"Cannot track a delivery with status {delivery.status}")
    if delivery.delivery_coordinates is None:
        raise ValueError("Delivery coordinates are required for live tracking")

    if delivery.current_coordinates is None:
        if delivery.pickup_coordinates is None:
            raise ValueError("Pickup coordinates are required for live tracking")
        delivery.current_lat = delivery.pickup_lat
        delivery.current_lng = delivery.pickup_lng

    delivery.is_live_tracking = True
    delivery.simulation_speed = speed
    delivery.traffic_condition = rng.choice(TrafficCondition.values)
    delivery.last_simulated_at = None
    delivery.save(update_fields=[
        'current_lat', 'current_lng', 'is_live_tracking',
        'simulation_speed', 'traffic_condition', 'last_simulated_at',
    ])
    logger.info(f"[SIMULATION] Started {delivery.tracking_id} at {speed} speed")
    return delivery


def stop_live_tracking(delivery: DeliveryRequest) -> DeliveryRequest:
    delivery.is_live_tracking = False
    delivery.save(update_fields=['is_live_tracking'])
    logger.info(f"[SIMULATION] Stopped {delivery.tracking_id}")
    return delivery


def change_speed(delivery: DeliveryRequest, speed: str) -> DeliveryRequest:
    delivery.simulation_speed = _validate_speed(speed)
    delivery.save(update_fields=['simulation_speed'])
    return delivery


def reset_simulation(delivery: DeliveryRequest) -> DeliveryRequest:
    """Stop tracking and put the courier back at the pickup point."""
    delivery.is_live_tracking = False
    delivery.current_lat = delivery.pickup_lat
    delivery.current_lng = delivery.pickup_lng
    delivery.status = DeliveryStatus.IN_PROGRESS
    delivery.last_simulated_at = None
    delivery.save(update_fields=[
        'is_live_tracking', 'current_lat', 'current_lng', 'status', 'last_simulated_at',
    ])
    _broadcast_location(delivery)
    logger.info(f"[SIMULATION] Reset {delivery.tracking_id}")
    return delivery


def is_due(delivery: DeliveryRequest, now=None) -> bool:
    """True when the delivery's speed interval has elapsed since its last step."""
    if delivery.last_simulated_at is None:
        return True
    now = now or timezone.now()
    interval = SPEED_INTERVALS.get(delivery.simulation_speed, SPEED_INTERVALS[SimulationSpeed.NORMAL])
    return now - delivery.last_simulated_at >= timedelta(seconds=interval)


def run_simulation_tick(now=None) -> dict:
    """Advance every live delivery whose interval has elapsed."""
    now = now or timezone.now()
    stepped = 0
    arrived = 0

    live = DeliveryRequest.objects.filter(
        is_live_tracking=True,
        status__in=MOVABLE_STATUSES,
    ).select_related('assigned_driver')

    for delivery in live:
        if not is_due(delivery, now):
            continue
        try:
            if simulate_step(delivery):
                arrived += 1
            stepped += 1
        except Exception as e:
            logger.error(f"[SIMULATION] Step failed for {delivery.pk}: {e}")

    return {'stepped': stepped, 'arrived': arrived}
