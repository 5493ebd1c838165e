"""
Tests for the analysis orchestrator: fan-out, trend and opportunity
derivation, graceful degradation, cancellation and caching.
"""

import asyncio

import httpx
import pytest

from app.clients import (
    MapboxClient,
    OverpassClient,
    PropertyValuesClient,
    SchoolsClient,
    SocrataRecordsClient,
    WalkScoreClient,
)
from app.config import Settings
from app.dependencies import build_services
from app.exceptions import GeocodingFailed, InvalidRadius, InvalidWeights, UnknownFactor
from app.models import Factor, NeighborhoodTrend, TrendDirection
from app.services.analysis import (
    DEFAULT_FACTOR_WEIGHTS,
    AnalysisOrchestrator,
    build_analyzers,
    resolve_factors,
    trend_direction,
)
from app.services.geocoder import Geocoder
from app.services.scoring import ScoreEngine

from .conftest import (
    ORIGIN,
    FakeGeocoding,
    SlowAnalyzer,
    make_analyzers,
    permit_records,
    property_data,
)


def build(cache=None, geocoder=None, timeout=1.0, **analyzer_kwargs):
    return AnalysisOrchestrator(
        analyzers=make_analyzers(**analyzer_kwargs),
        cache=cache,
        geocoder=geocoder,
        analyzer_timeout=timeout,
        cache_ttl=3600,
    )


class TestTrendDirection:

    @pytest.mark.parametrize("investment,forecast,direction", [
        ("increasing", "increasing", TrendDirection.STRONG_POSITIVE),
        ("increasing", "stable", TrendDirection.POSITIVE),
        ("stable", "increasing", TrendDirection.POSITIVE),
        ("increasing", "decreasing", TrendDirection.POSITIVE),
        ("decreasing", "decreasing", TrendDirection.STRONG_NEGATIVE),
        ("decreasing", "stable", TrendDirection.NEGATIVE),
        (None, "decreasing", TrendDirection.NEGATIVE),
        ("stable", "stable", TrendDirection.STABLE),
        (None, None, TrendDirection.STABLE),
    ])
    def test_five_branch_rule(self, investment, forecast, direction):
        assert trend_direction(investment, forecast) == direction


class TestOpportunityScore:

    @pytest.mark.parametrize("trend_score,direction,score,level", [
        (80, TrendDirection.STRONG_POSITIVE, 95, "excellent"),
        (95, TrendDirection.STRONG_POSITIVE, 100, "excellent"),
        (60, TrendDirection.POSITIVE, 70, "good"),
        (55, TrendDirection.STABLE, 55, "moderate"),
        (45, TrendDirection.NEGATIVE, 35, "fair"),
        (10, TrendDirection.STRONG_NEGATIVE, 0, "poor"),
    ])
    def test_adjusted_and_bucketed(self, trend_score, direction, score, level):
        trend = NeighborhoodTrend(score=trend_score, direction=direction)
        opportunity = AnalysisOrchestrator.opportunity_score(trend)
        assert opportunity.score == score
        assert opportunity.level.value == level


class TestResolveFactors:

    def test_default_is_all_six(self):
        assert resolve_factors(None) == list(Factor)

    def test_aliases_and_duplicates(self):
        assert resolve_factors(["amenities", "propertyValues", "proximity"]) == [
            Factor.PROXIMITY,
            Factor.PROPERTY_VALUES,
        ]

    def test_unknown_factor(self):
        with pytest.raises(UnknownFactor) as exc_info:
            resolve_factors(["zoning"])
        assert exc_info.value.status_code == 400


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_full_analysis(self):
        orchestrator = build()

        context = await orchestrator.analyze(ORIGIN, 1.0)

        assert set(context.factors) == {f.value for f in Factor}
        assert context.radius == 1.0
        assert context.coordinates == ORIGIN
        for result in context.factors.values():
            assert 0 <= result.score <= 100

        expected = ScoreEngine().aggregate(context.trend.factor_scores, DEFAULT_FACTOR_WEIGHTS).score
        assert context.trend.score == expected
        assert context.trend.direction == TrendDirection.STABLE

    @pytest.mark.asyncio
    async def test_degraded_factor_marks_partial_data(self):
        # No school provider configured
        context = await build().analyze(ORIGIN, 1.0)

        schools = context.factors[Factor.SCHOOLS.value]
        assert schools.score == 50
        assert schools.confidence == 0.0
        assert schools.detail["neutral_default"] is True
        assert context.partial_data is True

    @pytest.mark.asyncio
    async def test_strong_positive_trend(self):
        orchestrator = build(permits=permit_records(recent=10, prior=4), values=property_data(5.0, 9.0))

        context = await orchestrator.analyze(ORIGIN, 1.0)

        assert context.factors["development"].detail["investment_level"] == "increasing"
        assert context.factors["property_values"].detail["forecast"] == "increasing"
        assert context.trend.direction == TrendDirection.STRONG_POSITIVE
        assert context.opportunity.score == min(100, context.trend.score + 15)

    @pytest.mark.asyncio
    async def test_negative_trend(self):
        orchestrator = build(permits=permit_records(recent=2, prior=10), values=property_data(2.0, 6.0))

        context = await orchestrator.analyze(ORIGIN, 1.0)

        assert context.factors["development"].detail["investment_level"] == "decreasing"
        assert context.factors["property_values"].detail["forecast"] == "stable"
        assert context.trend.direction == TrendDirection.NEGATIVE
        assert context.opportunity.score == max(0, context.trend.score - 10)

    @pytest.mark.asyncio
    async def test_trend_only_over_requested_factors(self):
        context = await build().analyze(ORIGIN, 1.0, include_factors=["crime"])

        assert list(context.factors) == ["crime"]
        assert context.trend.score == context.factors["crime"].score
        assert context.trend.factor_scores == {"crime": 100}

    @pytest.mark.asyncio
    async def test_weights_override(self):
        weights = {name: 0 for name in DEFAULT_FACTOR_WEIGHTS}
        weights["crime"] = 1

        context = await build().analyze(ORIGIN, 1.0, weights=weights)

        assert context.trend.score == context.factors["crime"].score

    @pytest.mark.asyncio
    async def test_invalid_weights_fail_fast(self):
        orchestrator = build()

        with pytest.raises(InvalidWeights):
            await orchestrator.analyze(ORIGIN, 1.0, weights={"crime": -1})
        with pytest.raises(InvalidWeights):
            await orchestrator.analyze(ORIGIN, 1.0, weights={"zoning": 0.5})

    @pytest.mark.asyncio
    async def test_weights_accept_aliases(self):
        context = await build().analyze(ORIGIN, 1.0, weights={"propertyValues": 0.4})
        assert context.trend.score >= 0

    @pytest.mark.asyncio
    async def test_factor_without_analyzer(self):
        analyzers = make_analyzers()
        del analyzers[Factor.SCHOOLS]
        orchestrator = AnalysisOrchestrator(analyzers)

        with pytest.raises(UnknownFactor):
            await orchestrator.analyze(ORIGIN, 1.0, include_factors=["schools"])


class TestRadius:

    @pytest.mark.asyncio
    async def test_defaults_to_one_mile(self):
        context = await build().analyze(ORIGIN)
        assert context.radius == 1.0

    @pytest.mark.asyncio
    async def test_configured_default(self):
        orchestrator = AnalysisOrchestrator(make_analyzers(), default_radius=2.5)
        context = await orchestrator.analyze(ORIGIN)
        assert context.radius == 2.5

    @pytest.mark.asyncio
    async def test_maximum_is_inclusive(self):
        context = await build().analyze(ORIGIN, 5)
        assert context.radius == 5.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("radius", [0, -2, 5.01, 50, float("nan"), float("inf")])
    async def test_out_of_bounds_rejected_before_any_provider(self, radius):
        orchestrator = build()
        geo = orchestrator.analyzers[Factor.PROXIMITY]._provider
        records = orchestrator.analyzers[Factor.CRIME]._provider

        with pytest.raises(InvalidRadius):
            await orchestrator.analyze(ORIGIN, radius, include_factors=["proximity", "crime"])

        assert geo.calls == 0
        assert records.calls == 0

    @pytest.mark.asyncio
    async def test_configured_maximum(self):
        orchestrator = AnalysisOrchestrator(make_analyzers(), max_radius=20.0)

        context = await orchestrator.analyze(ORIGIN, 10)
        assert context.radius == 10.0

        with pytest.raises(InvalidRadius) as exc_info:
            await orchestrator.analyze(ORIGIN, 25)
        assert exc_info.value.details == {"radius": 25.0, "max_radius": 20.0}

    @pytest.mark.asyncio
    async def test_address_radius_checked_before_geocoding(self):
        provider = FakeGeocoding({"233 S Wacker Dr, Chicago, IL": [-87.6359, 41.8789]})
        orchestrator = build(geocoder=Geocoder(provider))

        with pytest.raises(InvalidRadius):
            await orchestrator.analyze_address("233 S Wacker Dr, Chicago, IL", 0)
        assert provider.calls == 0

        context = await orchestrator.analyze_address("233 S Wacker Dr, Chicago, IL")
        assert context.radius == 1.0
        assert provider.calls == 1


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_timeout_degrades_only_that_factor(self):
        analyzers = make_analyzers()
        analyzers[Factor.CRIME] = SlowAnalyzer(Factor.CRIME)
        orchestrator = AnalysisOrchestrator(analyzers, analyzer_timeout=0.05)

        context = await orchestrator.analyze(ORIGIN, 1.0)

        crime = context.factors["crime"]
        assert crime.score == 50
        assert crime.confidence == 0.0
        assert "timed out" in crime.detail["reason"]
        assert analyzers[Factor.CRIME].cancelled
        assert context.factors["proximity"].confidence > 0
        assert context.partial_data is True

    @pytest.mark.asyncio
    async def test_analyzer_exception_degrades_only_that_factor(self):
        class Exploding(SlowAnalyzer):
            async def analyze(self, coordinates, radius_meters):
                raise RuntimeError("unexpected")

        analyzers = make_analyzers()
        analyzers[Factor.TRANSIT] = Exploding(Factor.TRANSIT)

        context = await AnalysisOrchestrator(analyzers).analyze(ORIGIN, 1.0)

        assert context.factors["transit"].is_neutral_default
        assert not context.factors["proximity"].is_neutral_default

    @pytest.mark.asyncio
    async def test_analyzers_run_concurrently(self):
        analyzers = make_analyzers()
        slow = {factor: SlowAnalyzer(factor, delay=0.2) for factor in (Factor.CRIME, Factor.SCHOOLS, Factor.TRANSIT)}
        analyzers.update(slow)
        orchestrator = AnalysisOrchestrator(analyzers, analyzer_timeout=5)

        loop = asyncio.get_running_loop()
        started = loop.time()
        context = await orchestrator.analyze(ORIGIN, 1.0)

        # Three 0.2s analyzers finish together, not one after another
        assert loop.time() - started < 0.5
        assert all(context.factors[f.value].score == 60 for f in slow)

    @pytest.mark.asyncio
    async def test_cancellation_propagates_to_analyzers(self, cache):
        analyzers = make_analyzers()
        slow = SlowAnalyzer(Factor.CRIME)
        analyzers[Factor.CRIME] = slow
        orchestrator = AnalysisOrchestrator(analyzers, cache=cache, analyzer_timeout=60)

        task = asyncio.ensure_future(orchestrator.analyze(ORIGIN, 1.0))
        await asyncio.wait_for(slow.started.wait(), timeout=1)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        for _ in range(100):
            if slow.cancelled:
                break
            await asyncio.sleep(0.01)
        assert slow.cancelled


class TestCaching:

    @pytest.mark.asyncio
    async def test_idempotent_within_ttl(self, cache):
        orchestrator = build(cache=cache)
        geo = orchestrator.analyzers[Factor.PROXIMITY]._provider

        first = await orchestrator.analyze(ORIGIN, 1.0)
        second = await orchestrator.analyze(ORIGIN, 1.0)

        assert first.model_dump() == second.model_dump()
        # proximity + transit share the provider
        assert geo.calls == 2

    @pytest.mark.asyncio
    async def test_recomputed_after_ttl(self, cache, clock):
        orchestrator = build(cache=cache)
        geo = orchestrator.analyzers[Factor.PROXIMITY]._provider

        first = await orchestrator.analyze(ORIGIN, 1.0)
        clock.advance(3601)
        third = await orchestrator.analyze(ORIGIN, 1.0)

        assert geo.calls == 4
        assert third.analyzed_at >= first.analyzed_at

    @pytest.mark.asyncio
    async def test_factor_order_shares_cache_entry(self, cache):
        orchestrator = build(cache=cache)
        geo = orchestrator.analyzers[Factor.PROXIMITY]._provider

        await orchestrator.analyze(ORIGIN, 1.0, include_factors=["crime", "proximity"])
        await orchestrator.analyze(ORIGIN, 1.0, include_factors=["proximity", "crime"])

        assert geo.calls == 1

    @pytest.mark.asyncio
    async def test_weights_are_part_of_the_key(self, cache):
        orchestrator = build(cache=cache)

        default = await orchestrator.analyze(ORIGIN, 1.0)
        crime_only = await orchestrator.analyze(
            ORIGIN, 1.0, weights={**{name: 0 for name in DEFAULT_FACTOR_WEIGHTS}, "crime": 1}
        )

        assert crime_only.trend.score == 100
        assert default.trend.score != crime_only.trend.score

    @pytest.mark.asyncio
    async def test_concurrent_identical_requests_single_flight(self, cache):
        orchestrator = build(cache=cache)
        geo = orchestrator.analyzers[Factor.PROXIMITY]._provider

        results = await asyncio.gather(*(orchestrator.analyze(ORIGIN, 1.0) for _ in range(5)))

        assert geo.calls == 2
        assert all(r.model_dump() == results[0].model_dump() for r in results)


class TestAnalyzeAddress:

    @pytest.mark.asyncio
    async def test_geocodes_then_analyzes(self, geocoder):
        context = await build(geocoder=geocoder).analyze_address("233 S Wacker Dr, Chicago, IL", 1.0)
        assert context.coordinates.as_pair() == [-87.6359, 41.8789]

    @pytest.mark.asyncio
    async def test_unknown_address(self, geocoder):
        with pytest.raises(GeocodingFailed):
            await build(geocoder=geocoder).analyze_address("nowhere at all", 1.0)


def settings_for(tmp_path, **overrides):
    return Settings(cache_directory=str(tmp_path / "cache"), _env_file=None, **overrides)


FULLY_CONFIGURED = {
    "walkscore_api_key": "ws-key",
    "schools_api_endpoint": "https://schools.test/v1",
    "property_values_api_endpoint": "https://values.test/v1",
    "crime_domain": "data.cityofchicago.org",
    "crime_dataset_id": "ijzp-q8t2",
    "permits_domain": "data.cityofchicago.org",
    "permits_dataset_id": "ydr8-5enu",
}


class TestBuildAnalyzers:

    def test_overpass_without_mapbox_key(self, tmp_path):
        analyzers = build_analyzers(settings_for(tmp_path))

        proximity = analyzers[Factor.PROXIMITY].providers()
        transit = analyzers[Factor.TRANSIT].providers()

        assert len(proximity) == 1
        assert isinstance(proximity[0], OverpassClient)
        assert transit == proximity

    def test_mapbox_when_key_configured(self, tmp_path):
        analyzers = build_analyzers(settings_for(tmp_path, mapbox_api_key="pk.test"))

        geodata = analyzers[Factor.PROXIMITY].providers()[0]
        assert isinstance(geodata, MapboxClient)
        assert analyzers[Factor.TRANSIT].providers() == [geodata]

    def test_optional_factors_unconfigured_by_default(self, tmp_path):
        analyzers = build_analyzers(settings_for(tmp_path))

        assert set(analyzers) == set(Factor)
        assert analyzers[Factor.PROXIMITY].is_configured
        assert analyzers[Factor.TRANSIT].is_configured
        for factor in (Factor.SCHOOLS, Factor.CRIME, Factor.DEVELOPMENT, Factor.PROPERTY_VALUES):
            assert not analyzers[factor].is_configured

    def test_crime_needs_domain_and_dataset(self, tmp_path):
        analyzers = build_analyzers(settings_for(tmp_path, crime_domain="data.cityofchicago.org"))
        assert not analyzers[Factor.CRIME].is_configured

    def test_optional_providers_from_settings(self, tmp_path):
        analyzers = build_analyzers(settings_for(tmp_path, **FULLY_CONFIGURED))

        assert all(analyzer.is_configured for analyzer in analyzers.values())
        assert isinstance(analyzers[Factor.PROXIMITY].providers()[1], WalkScoreClient)
        assert isinstance(analyzers[Factor.SCHOOLS].providers()[0], SchoolsClient)
        assert isinstance(analyzers[Factor.PROPERTY_VALUES].providers()[0], PropertyValuesClient)
        assert isinstance(analyzers[Factor.CRIME].providers()[0], SocrataRecordsClient)
        assert isinstance(analyzers[Factor.DEVELOPMENT].providers()[0], SocrataRecordsClient)

    @pytest.mark.asyncio
    async def test_unconfigured_factor_is_neutral(self, tmp_path):
        analyzers = build_analyzers(settings_for(tmp_path))

        result = await analyzers[Factor.CRIME].analyze(ORIGIN, 1609.34)

        assert result.score == 50
        assert result.is_neutral_default

    @pytest.mark.asyncio
    async def test_mapbox_failure_does_not_fall_back_to_overpass(self, tmp_path):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(503)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        analyzers = build_analyzers(settings_for(tmp_path, mapbox_api_key="pk.test"), client=client)

        result = await analyzers[Factor.PROXIMITY].analyze(ORIGIN, 1609.34)
        await client.aclose()

        assert result.is_neutral_default
        assert hosts
        assert set(hosts) == {"api.mapbox.com"}


class TestBuildServices:

    def test_settings_flow_into_orchestrator(self, tmp_path):
        weights = {"proximity": 0.5, "schools": 0.1, "transit": 0.1, "crime": 0.1, "development": 0.1,
                   "property_values": 0.1}
        services = build_services(settings_for(
            tmp_path,
            factor_weights=weights,
            default_radius_miles=2.0,
            max_radius_miles=3.0,
        ))

        assert services.orchestrator.factor_weights == weights
        assert services.orchestrator.resolve_radius(None) == 2.0
        with pytest.raises(InvalidRadius):
            services.orchestrator.resolve_radius(4.0)

    def test_geodata_selection_reaches_orchestrator(self, tmp_path):
        services = build_services(settings_for(tmp_path, mapbox_api_key="pk.test"))

        analyzers = services.orchestrator.analyzers
        assert isinstance(analyzers[Factor.PROXIMITY].providers()[0], MapboxClient)
        assert services.geocoder.provider_name == "mapbox"
