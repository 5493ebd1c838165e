"""
Common utilities shared across analyzers and scorers.

Provides centralized implementations for:
- Half-up rounding and 0-100 clamping of scores
- Great-circle distance between coordinates
- Canonical string forms used in cache keys
"""

import math
from typing import Any, Mapping, Sequence

# Midpoint returned when a score cannot be measured
NEUTRAL_SCORE = 50

METERS_PER_MILE = 1609.34

EARTH_RADIUS_METERS = 6371008.8


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, with .5 going up.

    Python's built-in round() uses banker's rounding, which would turn
    62.5 into 62; scores are expected to round 62.5 to 63.

    Example:
        >>> round_half_up(62.5)
        63
        >>> round_half_up(-0.5)
        0
    """
    return int(math.floor(value + 0.5))


def clamp_score(value: Any) -> int:
    """
    Convert a raw score to an integer in [0, 100].

    Non-finite values are treated as the neutral score.

    Example:
        >>> clamp_score(104.6)
        100
        >>> clamp_score(-3)
        0
    """
    value = float(value)
    if not math.isfinite(value):
        return NEUTRAL_SCORE
    return max(0, min(100, round_half_up(value)))


def miles_to_meters(miles: float) -> float:
    """Convert miles to meters."""
    return miles * METERS_PER_MILE


def haversine_meters(origin: Sequence[float], dest: Sequence[float]) -> float:
    """
    Great-circle distance in meters between two [longitude, latitude] pairs.

    Args:
        origin: [longitude, latitude]
        dest: [longitude, latitude]

    Returns:
        Distance in meters
    """
    lon1, lat1 = math.radians(origin[0]), math.radians(origin[1])
    lon2, lat2 = math.radians(dest[0]), math.radians(dest[1])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(a)))

    return EARTH_RADIUS_METERS * c


def canonical_weights(weights: Mapping[str, float]) -> str:
    """
    Stable string form of a weight map, independent of key order.

    Example:
        >>> canonical_weights({"b": 0.5, "a": 0.25})
        'a=0.25,b=0.5'
    """
    return ",".join(f"{name}={float(weights[name]):g}" for name in sorted(weights))
