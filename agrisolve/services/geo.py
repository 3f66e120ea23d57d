import math
from typing import Optional, Tuple

EARTH_RADIUS_KM = 6371.0

DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"


def haversine_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Return great-circle distance between two (lat, lon) points in kilometers."""
    lat1, lon1 = a
    lat2, lon2 = b
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    x = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # rounding can push x a hair above 1 for antipodal points
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(x), math.sqrt(max(0.0, 1 - x)))


def format_distance(distance_km: Optional[float]) -> str:
    """Human readable distance: metres below 1 km, one decimal km above."""
    if not distance_km:
        return "N/A"
    if distance_km < 1:
        return f"{round(distance_km * 1000)}m"
    return f"{distance_km:.1f} km"


def directions_url(latitude: float, longitude: float) -> str:
    return DIRECTIONS_URL.format(lat=latitude, lon=longitude)
