import math
import re
from typing import Any, Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres, rounded to one decimal."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def to_float(value: Any) -> Optional[float]:
    # the backend sends distances both as numbers and as "3.4" strings
    if value is None or value == "":
        return None
    try:
        return round(float(value), 1)
    except (TypeError, ValueError):
        return None


def humanize_tag(tag: str) -> str:
    """``shopping_mall`` -> ``Shopping Mall``"""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), tag.replace("_", " "))


def mask_token(token: str) -> str:
    return f"***{token[-4:]}" if len(token) > 4 else "***"
