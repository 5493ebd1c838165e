"""
Proximity Analysis.

Scores how close the nearest amenity of each kind is to a coordinate and
estimates a walk-score-like metric from the same data.

Scoring Algorithm:
- For each amenity type keep the minimum observed distance
- Type score: max(0, 100 - 100 * distance / ideal_max_distance(type))
- Overall score: weighted average over the types present
  (school .25, grocery .20, park .15, restaurant .10, transit .10,
  hospital .10, mall .05, police .025, fire .025, anything else .05)
- No amenities at all: neutral score 50
"""

import logging
from typing import Dict, List, Mapping, Optional

from ..clients.base import GeoDataProvider, WalkScoreProvider
from ..models import Amenity, AmenityType, Coordinates, Factor, FactorResult
from ..services.scoring import ScoreEngine
from ..utils.common import NEUTRAL_SCORE, haversine_meters, round_half_up

from .base import FactorAnalyzer

logger = logging.getLogger(__name__)

# Distance (meters) at which an amenity stops contributing
DEFAULT_IDEAL_DISTANCES = {
    AmenityType.GROCERY.value: 1000,
    AmenityType.SCHOOL.value: 1500,
    AmenityType.PARK.value: 800,
    AmenityType.RESTAURANT.value: 800,
    AmenityType.TRANSIT_STATION.value: 500,
    AmenityType.HOSPITAL.value: 3000,
    AmenityType.SHOPPING_MALL.value: 2000,
    AmenityType.POLICE.value: 3000,
    AmenityType.FIRE_STATION.value: 3000,
}
UNKNOWN_IDEAL_DISTANCE = 1000

PROXIMITY_WEIGHTS = {
    AmenityType.SCHOOL.value: 0.25,
    AmenityType.GROCERY.value: 0.20,
    AmenityType.PARK.value: 0.15,
    AmenityType.RESTAURANT.value: 0.10,
    AmenityType.TRANSIT_STATION.value: 0.10,
    AmenityType.HOSPITAL.value: 0.10,
    AmenityType.SHOPPING_MALL.value: 0.05,
    AmenityType.POLICE.value: 0.025,
    AmenityType.FIRE_STATION.value: 0.025,
}
UNLISTED_PROXIMITY_WEIGHT = 0.05

WALK_WEIGHTS = {
    AmenityType.GROCERY.value: 0.3,
    AmenityType.RESTAURANT.value: 0.2,
    AmenityType.PARK.value: 0.15,
    AmenityType.SCHOOL.value: 0.1,
    AmenityType.TRANSIT_STATION.value: 0.15,
    AmenityType.SHOPPING_MALL.value: 0.1,
}
# Below this covered walk weight local data is too sparse to trust
MIN_WALK_COVERAGE = 0.5


class ProximityAnalyzer(FactorAnalyzer):
    """Amenity proximity and walkability."""

    factor = Factor.PROXIMITY

    def __init__(
        self,
        provider: Optional[GeoDataProvider],
        walkscore_provider: Optional[WalkScoreProvider] = None,
        ideal_distances: Optional[Mapping[str, float]] = None,
        engine: Optional[ScoreEngine] = None,
    ):
        super().__init__(provider)
        self._walkscore_provider = walkscore_provider
        self._ideal_distances = dict(DEFAULT_IDEAL_DISTANCES)
        if ideal_distances:
            self._ideal_distances.update(ideal_distances)
        self._engine = engine or ScoreEngine()

    def providers(self) -> list:
        providers = super().providers()
        if self._walkscore_provider is not None:
            providers.append(self._walkscore_provider)
        return providers

    def ideal_max_distance(self, amenity_type: str) -> float:
        """Ideal maximum distance in meters for an amenity type."""
        return float(self._ideal_distances.get(amenity_type, UNKNOWN_IDEAL_DISTANCE))

    def distance_score(self, amenity_type: str, distance: float) -> float:
        """Linear falloff from 100 at the point to 0 at the ideal max distance."""
        return max(0.0, 100.0 - 100.0 * distance / self.ideal_max_distance(amenity_type))

    def nearest_by_type(self, coordinates: Coordinates, amenities: List[Amenity]) -> Dict[str, dict]:
        """Minimum distance and count per amenity type."""
        nearest: Dict[str, dict] = {}
        origin = coordinates.as_pair()

        for amenity in amenities:
            amenity_type = amenity.type.value
            distance = haversine_meters(origin, [amenity.lon, amenity.lat])

            entry = nearest.setdefault(amenity_type, {"distance": float("inf"), "count": 0})
            entry["distance"] = min(entry["distance"], distance)
            entry["count"] += 1

        return nearest

    async def estimate_walk_score(self, coordinates: Coordinates, type_scores: Mapping[str, float]) -> int:
        """
        Walk-score-like metric from per-type proximity scores.

        Falls back to the Walk Score API (used verbatim) only when the
        covered walk weight is below MIN_WALK_COVERAGE.
        """
        weights = {t: WALK_WEIGHTS[t] for t in type_scores if t in WALK_WEIGHTS}
        covered = sum(weights.values())

        if covered < MIN_WALK_COVERAGE and self._walkscore_provider is not None:
            try:
                official = await self._walkscore_provider.score(coordinates)
                if official is not None:
                    logger.info(f"Using Walk Score API value {official} (local coverage {covered:.2f})")
                    return official
            except Exception as e:
                logger.error(f"WalkScore API fetch failed: {e}")

        return self._engine.aggregate(type_scores, weights).score

    async def _analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        amenities = await self._provider.find_amenities(coordinates, radius_meters)

        if not amenities:
            logger.info(f"No amenities found within {radius_meters:.0f}m of {coordinates.as_pair()}")
            return FactorResult(
                factor=self.factor,
                score=NEUTRAL_SCORE,
                confidence=0.0,
                detail={
                    "neutral_default": True,
                    "reason": "no amenities found",
                    "overall_score": NEUTRAL_SCORE,
                    "amenity_count": 0,
                    "amenities": {},
                    "walkscore": NEUTRAL_SCORE,
                },
            )

        nearest = self.nearest_by_type(coordinates, amenities)
        type_scores = {t: self.distance_score(t, entry["distance"]) for t, entry in nearest.items()}
        weights = {t: PROXIMITY_WEIGHTS.get(t, UNLISTED_PROXIMITY_WEIGHT) for t in type_scores}

        overall = self._engine.aggregate(type_scores, weights)
        walkscore = await self.estimate_walk_score(coordinates, type_scores)

        scored = {
            t: {
                "score": round_half_up(type_scores[t]),
                "distance": round_half_up(entry["distance"]),
                "count": entry["count"],
            }
            for t, entry in nearest.items()
        }

        logger.info(f"Proximity score {overall.score} from {len(amenities)} amenities")

        return FactorResult(
            factor=self.factor,
            score=overall.score,
            confidence=min(1.0, round(overall.total_weight, 3)),
            detail={
                "overall_score": overall.score,
                "amenity_count": len(amenities),
                "amenities": scored,
                "walkscore": walkscore,
            },
        )
