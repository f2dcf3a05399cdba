"""
Geospatial helpers: great-circle distance and opening-hours windows.
"""
import logging
import math
import re
from datetime import datetime
from typing import Optional, Tuple

from app.core.clock import service_local_now

logger = logging.getLogger(__name__)

# Earth radius in meters
EARTH_RADIUS_M = 6371000

NOT_SPECIFIED = "Time not specified"

# Matches "9 AM", "08:00", "9:30pm", "0800"
TIME_TOKEN = re.compile(r"(\d{1,2}):?(\d{2})?\s*(AM|PM)?", re.IGNORECASE)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def _to_24h(hour: int, meridiem: Optional[str]) -> int:
    if meridiem:
        meridiem = meridiem.upper()
        if meridiem == "PM" and hour != 12:
            return hour + 12
        if meridiem == "AM" and hour == 12:
            return 0
    return hour


def parse_opening_window(text: str) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
    """
    Read the first two time-like tokens of a free-text opening-hours string.

    Returns ((start_hour, start_minute), (end_hour, end_minute)) or None when
    fewer than two tokens are present.
    """
    matches = list(TIME_TOKEN.finditer(text))
    if len(matches) < 2:
        return None
    start, end = matches[0], matches[1]
    start_hm = (_to_24h(int(start.group(1)), start.group(3)), int(start.group(2) or 0))
    end_hm = (_to_24h(int(end.group(1)), end.group(3)), int(end.group(2) or 0))
    return start_hm, end_hm


def is_within_opening_hours(opening_hours: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Check whether the service's local wall-clock time falls inside the window.

    Both ends are inclusive. Anything unparseable allows the job to start.
    """
    if not opening_hours or opening_hours.strip() == NOT_SPECIFIED:
        return True

    try:
        window = parse_opening_window(opening_hours)
        if window is None:
            return True
        local = service_local_now(now)
        current = (local.hour, local.minute)
        start, end = window
        return start <= current <= end
    except Exception as e:
        logger.error(f"Error parsing opening hours '{opening_hours}': {str(e)}")
        return True
