"""
Transit access analysis.

Score blends how close the nearest stop is with how many stops there are:
- nearest: max(0, 100 - 100 * distance / 800m)
- density: 10 points per stop, capped at 100
- score = 0.6 * nearest + 0.4 * density
"""

import logging
from collections import Counter

from ..models import Coordinates, Factor, FactorResult
from ..utils.common import haversine_meters, round_half_up

from .base import FactorAnalyzer

logger = logging.getLogger(__name__)

IDEAL_STATION_DISTANCE = 800
POINTS_PER_STATION = 10
NEAREST_SHARE = 0.6
MAX_LISTED_STATIONS = 5


class TransitAnalyzer(FactorAnalyzer):
    """Public transport access around a point."""

    factor = Factor.TRANSIT

    async def _analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        stations = await self._provider.find_transit_stations(coordinates, radius_meters)
        origin = coordinates.as_pair()

        located = sorted(
            (
                {
                    "type": station.subtype or "bus",
                    "name": station.name,
                    "distance": haversine_meters(origin, [station.lon, station.lat]),
                }
                for station in stations
            ),
            key=lambda s: s["distance"],
        )

        if located:
            nearest = max(0.0, 100.0 - 100.0 * located[0]["distance"] / IDEAL_STATION_DISTANCE)
        else:
            nearest = 0.0
        density = min(100.0, POINTS_PER_STATION * len(located))
        score = NEAREST_SHARE * nearest + (1 - NEAREST_SHARE) * density

        for station in located:
            station["distance"] = round_half_up(station["distance"])

        logger.info(f"Transit score {score:.1f} from {len(located)} stops")

        return FactorResult(
            factor=self.factor,
            score=score,
            confidence=1.0,
            detail={
                "transit_score": round_half_up(score),
                "station_count": len(located),
                "modes": dict(Counter(s["type"] for s in located)),
                "nearest_stations": located[:MAX_LISTED_STATIONS],
            },
        )
