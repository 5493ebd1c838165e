"""School quality analysis: mean rating (0-10) of nearby schools, scaled to 0-100."""

import logging
from statistics import mean

from ..models import Coordinates, Factor, FactorResult
from ..utils.common import haversine_meters, round_half_up

from .base import FactorAnalyzer

logger = logging.getLogger(__name__)

MAX_LISTED_SCHOOLS = 5


class SchoolsAnalyzer(FactorAnalyzer):
    """Average school rating around a point."""

    factor = Factor.SCHOOLS

    async def _analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        schools = await self._provider.find_schools(coordinates, radius_meters)

        if not schools:
            return self.neutral("no rated schools found")

        origin = coordinates.as_pair()
        listed = []
        for school in schools:
            rating = max(0.0, min(10.0, float(school["rating"])))
            distance = None
            if school.get("lat") is not None and school.get("lon") is not None:
                distance = round_half_up(haversine_meters(origin, [school["lon"], school["lat"]]))
            listed.append({"name": school.get("name"), "rating": rating, "distance": distance})

        average_rating = mean(s["rating"] for s in listed)
        listed.sort(key=lambda s: s["distance"] if s["distance"] is not None else float("inf"))

        logger.info(f"Average school rating {average_rating:.1f} across {len(listed)} schools")

        return FactorResult(
            factor=self.factor,
            score=average_rating * 10,
            confidence=1.0,
            detail={
                "average_rating": round(average_rating, 2),
                "school_count": len(listed),
                "nearest_schools": listed[:MAX_LISTED_SCHOOLS],
            },
        )
