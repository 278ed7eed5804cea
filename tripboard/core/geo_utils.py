"""
Geographic utilities for route distances and map viewport bounds.
"""

import math
from typing import Iterable


def is_valid_coordinate(lat: float | None, lng: float | None) -> bool:
    """True when both values are finite numbers inside the lat/lng ranges."""
    if lat is None or lng is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lng1: Coordinates of point 1
        lat2, lng2: Coordinates of point 2

    Returns:
        Distance in kilometers
    """
    R = 6371  # Earth's radius in kilometers

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def path_distance(points: Iterable[tuple[float, float]]) -> float:
    """
    Total length of a path visiting the points in order.

    Args:
        points: (lat, lng) pairs, already validated

    Returns:
        Distance in kilometers (0 for fewer than two points)
    """
    total = 0.0
    previous: tuple[float, float] | None = None
    for point in points:
        if previous is not None:
            total += haversine_distance(previous[0], previous[1], point[0], point[1])
        previous = point
    return total


def bounding_box(
    points: Iterable[tuple[float, float]],
) -> tuple[tuple[float, float], tuple[float, float]] | None:
    """
    Smallest box containing every point, as ((south, west), (north, east)).

    Returns None when there are no points.
    """
    lats: list[float] = []
    lngs: list[float] = []
    for lat, lng in points:
        lats.append(lat)
        lngs.append(lng)

    if not lats:
        return None
    return (min(lats), min(lngs)), (max(lats), max(lngs))
