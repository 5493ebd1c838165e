"""
Location Analysis Orchestrator.

Fans a coordinate out to the requested factor analyzers concurrently,
fans the results back in and derives the neighborhood trend and the
opportunity score with the shared ScoreEngine.

Trend direction (development investment level x property value forecast):
- both increasing: strong_positive
- one increasing: positive
- both decreasing: strong_negative
- one decreasing: negative
- otherwise: stable

Opportunity = trend score + direction adjustment (+15, +10, 0, -10, -15),
clamped to 0-100 and bucketed at 85/70/50/30.
"""

import asyncio
import logging
import math
from typing import Dict, Iterable, Mapping, Optional

import httpx

from ..analyzers import (
    CrimeAnalyzer,
    DevelopmentAnalyzer,
    FactorAnalyzer,
    PropertyValuesAnalyzer,
    ProximityAnalyzer,
    SchoolsAnalyzer,
    TransitAnalyzer,
)
from ..clients import (
    MapboxClient,
    OverpassClient,
    PropertyValuesClient,
    SchoolsClient,
    SocrataRecordsClient,
    WalkScoreClient,
)
from ..config import Settings
from ..exceptions import InvalidRadius, UnknownFactor
from ..models import (
    ALL_FACTORS,
    Coordinates,
    Factor,
    FactorResult,
    NeighborhoodTrend,
    OpportunityLevel,
    OpportunityScore,
    SpatialContext,
    TrendDirection,
    parse_factor,
)
from ..utils.common import canonical_weights, clamp_score, miles_to_meters

from .cache import ResultCache
from .geocoder import Geocoder
from .scoring import OPPORTUNITY_LEVELS, ScoreEngine, validate_weights

logger = logging.getLogger(__name__)

DEFAULT_FACTOR_WEIGHTS = {
    Factor.PROXIMITY.value: 0.15,
    Factor.SCHOOLS.value: 0.15,
    Factor.TRANSIT.value: 0.10,
    Factor.CRIME.value: 0.20,
    Factor.DEVELOPMENT.value: 0.20,
    Factor.PROPERTY_VALUES.value: 0.20,
}

OPPORTUNITY_ADJUSTMENTS = {
    TrendDirection.STRONG_POSITIVE: 15,
    TrendDirection.POSITIVE: 10,
    TrendDirection.STABLE: 0,
    TrendDirection.NEGATIVE: -10,
    TrendDirection.STRONG_NEGATIVE: -15,
}

INCREASING = "increasing"
DECREASING = "decreasing"


def trend_direction(investment_level: Optional[str], forecast: Optional[str]) -> TrendDirection:
    """Classify the neighborhood direction from two categorical signals."""
    signals = (investment_level, forecast)

    if signals.count(INCREASING) == 2:
        return TrendDirection.STRONG_POSITIVE
    if INCREASING in signals:
        return TrendDirection.POSITIVE
    if signals.count(DECREASING) == 2:
        return TrendDirection.STRONG_NEGATIVE
    if DECREASING in signals:
        return TrendDirection.NEGATIVE
    return TrendDirection.STABLE


def resolve_factors(include_factors: Optional[Iterable[str]]) -> list:
    """
    Resolve requested factor names (or aliases) to Factors, default all.

    Raises:
        UnknownFactor: If a name matches no factor
    """
    if not include_factors:
        return list(ALL_FACTORS)

    resolved = []
    for name in include_factors:
        try:
            factor = parse_factor(name)
        except ValueError:
            raise UnknownFactor(
                f"Unknown factor: {name}",
                {"factor": str(name), "allowed": [f.value for f in ALL_FACTORS]},
            )
        if factor not in resolved:
            resolved.append(factor)
    return resolved


class AnalysisOrchestrator:
    """
    Produces SpatialContext documents for coordinates and addresses.

    Each analyzer call is bounded by analyzer_timeout; a timeout or error
    degrades only that factor to its neutral default. Cancelling analyze()
    cancels the analyzer calls still in flight.

    Radii are in miles: None means default_radius, and anything not in
    (0, max_radius] is rejected before any provider is called.
    """

    def __init__(
        self,
        analyzers: Mapping[Factor, FactorAnalyzer],
        engine: Optional[ScoreEngine] = None,
        cache: Optional[ResultCache] = None,
        geocoder: Optional[Geocoder] = None,
        factor_weights: Optional[Mapping[str, float]] = None,
        analyzer_timeout: float = 20.0,
        cache_ttl: int = 86400,
        default_radius: float = 1.0,
        max_radius: float = 5.0,
    ):
        self._analyzers = dict(analyzers)
        self._engine = engine or ScoreEngine()
        self._cache = cache
        self._geocoder = geocoder
        self._factor_weights = validate_weights(
            {parse_factor(name).value: w for name, w in (factor_weights or DEFAULT_FACTOR_WEIGHTS).items()},
            [f.value for f in ALL_FACTORS],
        )
        self._analyzer_timeout = analyzer_timeout
        self._cache_ttl = cache_ttl
        self._default_radius = default_radius
        self._max_radius = max_radius

    @property
    def analyzers(self) -> Dict[Factor, FactorAnalyzer]:
        return dict(self._analyzers)

    @property
    def factor_weights(self) -> Dict[str, float]:
        return dict(self._factor_weights)

    def resolve_radius(self, radius: Optional[float]) -> float:
        """
        Apply the default radius and enforce the configured bounds.

        Raises:
            InvalidRadius: If the radius is not positive or exceeds max_radius
        """
        if radius is None:
            return float(self._default_radius)

        radius = float(radius)
        if not math.isfinite(radius) or radius <= 0:
            raise InvalidRadius(
                f"Radius must be a positive number of miles, got {radius:g}",
                {"radius": radius},
            )
        if radius > self._max_radius:
            raise InvalidRadius(
                f"Radius cannot exceed {self._max_radius:g} miles",
                {"radius": radius, "max_radius": self._max_radius},
            )
        return radius

    def resolve_weights(self, weights: Optional[Mapping[str, float]]) -> Dict[str, float]:
        """
        Validate per-call weights and overlay them on the configured ones.

        Raises:
            InvalidWeights: For negative/non-finite weights or factors
                without an analyzer
        """
        if not weights:
            return dict(self._factor_weights)

        renamed = {}
        for name, weight in weights.items():
            try:
                renamed[parse_factor(name).value] = weight
            except ValueError:
                renamed[name] = weight

        validated = validate_weights(renamed, [f.value for f in self._analyzers])
        return {**self._factor_weights, **validated}

    def cache_key(
        self,
        coordinates: Coordinates,
        radius: float,
        factors: Iterable[Factor],
        weights: Mapping[str, float],
    ) -> str:
        return ResultCache.make_key(
            "analysis",
            f"{coordinates.longitude:.6f}",
            f"{coordinates.latitude:.6f}",
            f"{float(radius):g}",
            ",".join(sorted(f.value for f in factors)),
            canonical_weights(weights),
        )

    async def analyze(
        self,
        coordinates: Coordinates,
        radius: Optional[float] = None,
        include_factors: Optional[Iterable[str]] = None,
        weights: Optional[Mapping[str, float]] = None,
    ) -> SpatialContext:
        """
        Analyze a location.

        Args:
            coordinates: Center point
            radius: Analysis radius in miles (default: the configured default)
            include_factors: Factor names to analyze (default: all six)
            weights: Optional trend weights overriding the configured ones

        Returns:
            SpatialContext (served from cache within the TTL)

        Raises:
            InvalidRadius: If the radius is out of bounds
            UnknownFactor: If a requested factor has no analyzer
            InvalidWeights: If the weights are invalid
        """
        radius = self.resolve_radius(radius)
        factors = resolve_factors(include_factors)
        missing = [f.value for f in factors if f not in self._analyzers]
        if missing:
            raise UnknownFactor(f"No analyzer for: {', '.join(missing)}", {"factors": missing})

        resolved_weights = self.resolve_weights(weights)

        async def compute() -> SpatialContext:
            return await self._compute(coordinates, radius, factors, resolved_weights)

        if self._cache is None:
            return await compute()

        key = self.cache_key(coordinates, radius, factors, resolved_weights)
        return await self._cache.get_or_compute(key, SpatialContext, compute, ttl=self._cache_ttl)

    async def analyze_address(
        self,
        address: str,
        radius: Optional[float] = None,
        include_factors: Optional[Iterable[str]] = None,
        weights: Optional[Mapping[str, float]] = None,
    ) -> SpatialContext:
        """
        Geocode an address and analyze it.

        Raises:
            InvalidRadius: If the radius is out of bounds (checked before geocoding)
            GeocodingFailed: If the address cannot be geocoded
        """
        radius = self.resolve_radius(radius)
        pair = await self._geocoder.geocode(address)
        return await self.analyze(Coordinates.from_pair(pair), radius, include_factors, weights)

    async def _run_analyzer(
        self,
        factor: Factor,
        coordinates: Coordinates,
        radius_meters: float,
    ) -> FactorResult:
        analyzer = self._analyzers[factor]
        try:
            return await asyncio.wait_for(
                analyzer.analyze(coordinates, radius_meters),
                timeout=self._analyzer_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{factor.value} analysis timed out after {self._analyzer_timeout}s")
            return FactorResult.neutral(factor, f"timed out after {self._analyzer_timeout:g}s")
        except Exception as e:
            logger.error(f"{factor.value} analysis failed: {e}")
            return FactorResult.neutral(factor, f"analysis failed: {e}")

    async def _compute(
        self,
        coordinates: Coordinates,
        radius: float,
        factors: list,
        weights: Mapping[str, float],
    ) -> SpatialContext:
        radius_meters = miles_to_meters(radius)
        logger.info(
            f"Analyzing {coordinates.as_pair()} within {radius} mi: "
            f"{', '.join(f.value for f in factors)}"
        )

        results = await asyncio.gather(
            *(self._run_analyzer(factor, coordinates, radius_meters) for factor in factors)
        )
        by_name = {result.factor.value: result for result in results}

        trend = self.neighborhood_trend(by_name, weights)
        opportunity = self.opportunity_score(trend)
        partial = any(result.is_neutral_default for result in results)

        if partial:
            degraded = [name for name, result in by_name.items() if result.is_neutral_default]
            logger.warning(f"Partial data for {coordinates.as_pair()}: neutral defaults for {', '.join(degraded)}")

        return SpatialContext(
            coordinates=coordinates,
            radius=radius,
            factors=by_name,
            trend=trend,
            opportunity=opportunity,
            partial_data=partial,
        )

    def neighborhood_trend(
        self,
        factors: Mapping[str, FactorResult],
        weights: Mapping[str, float],
    ) -> NeighborhoodTrend:
        """Weighted trend over the analyzed factors plus its direction."""
        scores = {name: result.score for name, result in factors.items()}
        aggregate = self._engine.aggregate(scores, weights)

        development = factors.get(Factor.DEVELOPMENT.value)
        property_values = factors.get(Factor.PROPERTY_VALUES.value)
        direction = trend_direction(
            development.detail.get("investment_level") if development else None,
            property_values.detail.get("forecast") if property_values else None,
        )

        return NeighborhoodTrend(score=aggregate.score, direction=direction, factor_scores=scores)

    @staticmethod
    def opportunity_score(trend: NeighborhoodTrend) -> OpportunityScore:
        """Trend score adjusted by direction, bucketed into a level."""
        score = clamp_score(trend.score + OPPORTUNITY_ADJUSTMENTS[trend.direction])
        return OpportunityScore(score=score, level=OpportunityLevel(OPPORTUNITY_LEVELS.categorize(score)))


def build_analyzers(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[Factor, FactorAnalyzer]:
    """
    Construct all six analyzers from configuration.

    The geodata provider is Mapbox when a key is configured, otherwise
    OpenStreetMap Overpass. Optional providers that are not configured
    leave their analyzer returning its neutral default.
    """
    timeout = settings.http_timeout_seconds

    if settings.mapbox_api_key:
        geodata = MapboxClient(settings.mapbox_api_key, settings.mapbox_base_url, timeout=timeout, client=client)
    else:
        geodata = OverpassClient(settings.overpass_endpoint, settings.osm_user_agent, timeout=timeout, client=client)

    walkscore = None
    if settings.walkscore_api_key:
        walkscore = WalkScoreClient(settings.walkscore_api_key, settings.walkscore_endpoint, timeout=timeout, client=client)

    schools = None
    if settings.schools_api_endpoint:
        schools = SchoolsClient(settings.schools_api_endpoint, settings.schools_api_key, timeout=timeout, client=client)

    property_values = None
    if settings.property_values_api_endpoint:
        property_values = PropertyValuesClient(
            settings.property_values_api_endpoint,
            settings.property_values_api_key,
            timeout=timeout,
            client=client,
        )

    crime = None
    if settings.crime_domain and settings.crime_dataset_id:
        crime = SocrataRecordsClient(
            settings.crime_domain,
            settings.crime_dataset_id,
            location_column=settings.crime_location_column,
            date_column=settings.crime_date_column,
            select_columns=[settings.crime_category_column],
            app_token=settings.socrata_app_token,
            timeout=int(timeout),
        )

    permits = None
    if settings.permits_domain and settings.permits_dataset_id:
        permits = SocrataRecordsClient(
            settings.permits_domain,
            settings.permits_dataset_id,
            location_column=settings.permits_location_column,
            date_column=settings.permits_date_column,
            select_columns=[settings.permits_type_column],
            app_token=settings.socrata_app_token,
            timeout=int(timeout),
        )

    return {
        Factor.PROXIMITY: ProximityAnalyzer(geodata, walkscore, ideal_distances=settings.ideal_distances),
        Factor.SCHOOLS: SchoolsAnalyzer(schools),
        Factor.TRANSIT: TransitAnalyzer(geodata),
        Factor.CRIME: CrimeAnalyzer(
            crime,
            category_column=settings.crime_category_column,
            lookback_days=settings.crime_lookback_days,
            density_ceiling=settings.crime_density_ceiling,
        ),
        Factor.DEVELOPMENT: DevelopmentAnalyzer(
            permits,
            date_column=settings.permits_date_column,
            type_column=settings.permits_type_column,
            lookback_days=settings.permits_lookback_days,
        ),
        Factor.PROPERTY_VALUES: PropertyValuesAnalyzer(property_values),
    }


async def close_analyzers(analyzers: Mapping[Factor, FactorAnalyzer]) -> None:
    """Close every distinct provider client behind the analyzers."""
    seen = set()
    for analyzer in analyzers.values():
        for provider in analyzer.providers():
            if id(provider) in seen:
                continue
            seen.add(id(provider))
            close = getattr(provider, "close", None)
            if close is None:
                continue
            result = close()
            if asyncio.iscoroutine(result):
                await result
