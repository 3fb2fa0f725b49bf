"""
Geographic helpers.

Great-circle distance and the fallback route estimate used when the
routing provider is unavailable.
"""

import math
from decimal import Decimal

# Rough driving time used with the great-circle fallback
FALLBACK_MINUTES_PER_KM = 2


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    # Radius of Earth in kilometers
    R = 6371.0

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def fallback_route_estimate(lat1: float, lon1: float, lat2: float, lon2: float) -> tuple[Decimal, Decimal]:
    """
    Estimate (distance_km, duration_minutes) without the routing provider.

    Distances are rounded to 2 decimals so they can be priced and stored as-is.
    """
    distance_km = Decimal(str(round(haversine_distance(lat1, lon1, lat2, lon2), 2)))
    return distance_km, distance_km * FALLBACK_MINUTES_PER_KM
