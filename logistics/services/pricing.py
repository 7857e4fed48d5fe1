"""
Pricing Engine for MediSpatch

Estimates delivery distance and cost from pickup/delivery coordinates.
"""

import math
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from django.conf import settings

from logistics.models import Priority, PackageType

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3958.8

# Flat estimate used when coordinates are missing
DEFAULT_ESTIMATED_COST = Decimal('25.00')


class PricingEngine:
    """
    Cost estimation for a delivery request.

    Formula: Cost = (BaseFare + Distance * CostPerMile) * PriorityMultiplier * PackageMultiplier
    """

    def __init__(self):
        self.base_fare = Decimal(str(settings.PRICING_BASE_FARE))
        self.cost_per_mile = Decimal(str(settings.PRICING_COST_PER_MILE))
        self.urgent_multiplier = Decimal(str(settings.PRICING_URGENT_MULTIPLIER))
        self.temperature_multiplier = Decimal(str(settings.PRICING_TEMPERATURE_MULTIPLIER))

    def get_haversine_distance(self, origin: dict, destination: dict) -> float:
        """
        Straight-line distance in miles between two {'lat', 'lng'} points.
        """
        lat1, lon1 = math.radians(origin['lat']), math.radians(origin['lng'])
        lat2, lon2 = math.radians(destination['lat']), math.radians(destination['lng'])

        dlat = lat2 - lat1
        dlon = lon2 - lon1

        a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
        c = 2 * math.asin(math.sqrt(a))

        return EARTH_RADIUS_MILES * c

    def calculate_cost(
        self,
        distance_miles: float,
        priority: str = Priority.NORMAL,
        package_type: str = PackageType.STANDARD,
    ) -> Decimal:
        raw = self.base_fare + Decimal(str(distance_miles)) * self.cost_per_mile

        if priority == Priority.URGENT:
            raw *= self.urgent_multiplier
        if package_type == PackageType.TEMPERATURE_CONTROLLED:
            raw *= self.temperature_multiplier

        return raw.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    def estimate(
        self,
        origin: Optional[dict],
        destination: Optional[dict],
        priority: str = Priority.NORMAL,
        package_type: str = PackageType.STANDARD,
    ) -> Tuple[Optional[float], Decimal]:
        """
        Returns:
            Tuple of (distance_miles, estimated_cost). Distance is None
            and the cost falls back to the flat estimate when either
            point is missing.
        """
        if not origin or not destination:
            logger.info("[PRICING] Missing coordinates, using flat estimate")
            return None, DEFAULT_ESTIMATED_COST

        distance = self.get_haversine_distance(origin, destination)
        cost = self.calculate_cost(distance, priority, package_type)
        return round(distance, 2), cost


# Singleton instance
pricing_engine = PricingEngine()
