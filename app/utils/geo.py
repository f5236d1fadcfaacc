"""
Distance and address helpers for location search.
"""

import math
import re
from typing import Optional

EARTH_RADIUS_MILES = 3959
KM_TO_MILES = 0.621371

ZIP_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
ADDRESS_ZIP_PATTERN = re.compile(r"\b\d{5}(?:-\d{4})?\b")


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in miles."""
    if lat1 == lat2 and lon1 == lon2:
        return 0.0
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def is_valid_zip_code(zip_code: str) -> bool:
    # surrounding whitespace is not stripped
    return isinstance(zip_code, str) and bool(ZIP_CODE_PATTERN.match(zip_code)) and zip_code == zip_code.strip()


def zip_code_from_address(address: str) -> Optional[str]:
    """First ZIP (or ZIP+4) found in a free-text address."""
    match = ADDRESS_ZIP_PATTERN.search(address or "")
    return match.group(0) if match else None
