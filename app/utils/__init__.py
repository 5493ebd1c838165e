"""
Shared utilities for the Lead Scoring & Geospatial Analytics API.

Numeric helpers used by every scorer and analyzer so that rounding,
clamping and distance math behave identically everywhere.
"""

from .common import (
    round_half_up,
    clamp_score,
    haversine_meters,
    miles_to_meters,
    canonical_weights,
    NEUTRAL_SCORE,
    METERS_PER_MILE,
)

__all__ = [
    "round_half_up",
    "clamp_score",
    "haversine_meters",
    "miles_to_meters",
    "canonical_weights",
    "NEUTRAL_SCORE",
    "METERS_PER_MILE",
]
