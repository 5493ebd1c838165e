"""
Crime / safety analysis.

Counts reported incidents within the radius over the lookback window and
converts incident density to a safety score (higher is safer):

    score = 100 * (1 - incidents_per_km2 / density_ceiling), clamped to 0-100

relative_to_city uses density_ceiling as the city baseline; it is
configured per dataset rather than computed city-wide:
- safer: score >= 60 (density at most 40% of the ceiling)
- average: score >= 40 (density at most 60% of the ceiling)
- less_safe: anything denser

A radius of zero or less has no area and yields the neutral default.
"""

import logging
import math
from typing import Optional

from ..clients.base import RecordProvider
from ..models import Coordinates, Factor, FactorResult
from ..utils.common import clamp_score

from .base import FactorAnalyzer

logger = logging.getLogger(__name__)

VIOLENT_KEYWORDS = [
    "homicide",
    "murder",
    "assault",
    "battery",
    "robbery",
    "sexual",
    "rape",
    "kidnapping",
    "weapon",
]

PROPERTY_KEYWORDS = [
    "theft",
    "larceny",
    "burglary",
    "motor vehicle",
    "arson",
    "criminal damage",
    "vandalism",
]

SAFER_THAN_CITY_SCORE = 60
AVERAGE_FOR_CITY_SCORE = 40


def categorize_incident(description: str) -> str:
    """Categorize an incident type into violent / property / other."""
    description = (description or "").lower()

    for keyword in VIOLENT_KEYWORDS:
        if keyword in description:
            return "violent"

    for keyword in PROPERTY_KEYWORDS:
        if keyword in description:
            return "property"

    return "other"


class CrimeAnalyzer(FactorAnalyzer):
    """Incident density around a point."""

    factor = Factor.CRIME

    def __init__(
        self,
        provider: Optional[RecordProvider],
        category_column: str = "primary_type",
        lookback_days: int = 365,
        density_ceiling: float = 400.0,
    ):
        super().__init__(provider)
        self._category_column = category_column
        self._lookback_days = lookback_days
        self._density_ceiling = density_ceiling

    def _level(self, density: float) -> str:
        if density < self._density_ceiling * 0.1:
            return "low"
        if density < self._density_ceiling * 0.3:
            return "moderate"
        return "high"

    async def _analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        if radius_meters <= 0:
            return self.neutral(f"no area to measure density over (radius {radius_meters:g}m)")

        records = await self._provider.fetch_records(coordinates, radius_meters, self._lookback_days)

        counts = {"violent": 0, "property": 0, "other": 0}
        for record in records:
            counts[categorize_incident(record.get(self._category_column, ""))] += 1

        area_km2 = math.pi * (radius_meters / 1000.0) ** 2
        density = len(records) / area_km2
        score = clamp_score(100.0 * (1.0 - density / self._density_ceiling))

        if score >= SAFER_THAN_CITY_SCORE:
            relative_to_city = "safer"
        elif score >= AVERAGE_FOR_CITY_SCORE:
            relative_to_city = "average"
        else:
            relative_to_city = "less_safe"

        logger.info(f"Crime score {score} from {len(records)} incidents ({density:.1f}/km2)")

        return FactorResult(
            factor=self.factor,
            score=score,
            confidence=1.0,
            detail={
                "crime_score": score,
                "incident_count": len(records),
                "incidents_per_km2": round(density, 2),
                "lookback_days": self._lookback_days,
                "relative_to_city": relative_to_city,
                "crime_types": {
                    name: self._level(count / area_km2)
                    for name, count in counts.items()
                },
                "counts": counts,
            },
        )
