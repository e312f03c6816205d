"""Straight-line distance and arrival estimates for live delivery tracking.

Everything here is an approximation for display: distances are great-circle
(haversine) and the ETA assumes a constant average speed plus a buffer that
grows with distance. No road network is involved.
"""
from dataclasses import dataclass
from math import radians , cos , sin , atan2 , sqrt , ceil

EARTH_RADIUS_KM = 6371
DEFAULT_SPEED_KMH = 30.0


@dataclass(frozen=True)
class Eta:
    travel_minutes: int
    buffer_minutes: int
    countdown_seconds: int


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def buffer_minutes(distance: float) -> int:
    if distance < 2:
        return 5
    if distance < 5:
        return 10
    return 15


def eta(distance: float, speed_kmh: float = DEFAULT_SPEED_KMH) -> Eta:
    """
    Travel time rounded up to whole minutes (at least one), plus the
    distance-tiered buffer. The countdown never drops below a minute.
    """
    if speed_kmh <= 0:
        raise ValueError("speed_kmh must be positive")
    if distance < 0:
        raise ValueError("distance must not be negative")

    travel = max(1, ceil(distance / speed_kmh * 60))
    buffer = buffer_minutes(distance)
    countdown = max(60, travel * 60 + buffer * 60)

    return Eta(travel_minutes=travel, buffer_minutes=buffer, countdown_seconds=countdown)


def format_countdown(seconds: int) -> str:
    if seconds <= 0:
        return "Arriving now"
    if seconds <= 60:
        return f"{seconds}s remaining"
    if seconds <= 300:
        return f"{seconds // 60}:{seconds % 60:02d} min"
    if seconds <= 1800:
        return f"{seconds // 60} min"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def countdown_urgency(seconds: int) -> str:
    if seconds <= 300:
        return "critical"
    if seconds <= 600:
        return "warning"
    return "normal"


def countdown_progress(seconds: int) -> float:
    # Share of a one hour window, clamped so the bar is always visible
    return max(5.0, min(100.0, seconds / 3600 * 100))


def is_valid_latitude(lat: float) -> bool:
    return -90 <= lat <= 90


def is_valid_longitude(lon: float) -> bool:
    return -180 <= lon <= 180
