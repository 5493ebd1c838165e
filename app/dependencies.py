"""
Service wiring.

Services are built once per application from Settings and attached to
app.state; route handlers reach them through the FastAPI dependencies
below instead of module-level singletons.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from .config import Settings
from .services.analysis import AnalysisOrchestrator, build_analyzers, close_analyzers
from .services.cache import ResultCache
from .services.geocoder import Geocoder, select_geocoding_provider
from .services.lead_scoring import LeadScorer
from .services.leads import InMemoryLeadSource
from .services.scoring import ScoreEngine

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler needs."""
    cache: ResultCache
    engine: ScoreEngine
    geocoder: Geocoder
    orchestrator: AnalysisOrchestrator
    lead_scorer: LeadScorer
    lead_source: InMemoryLeadSource

    def startup(self) -> None:
        self.cache.initialize()

    async def shutdown(self) -> None:
        await close_analyzers(self.orchestrator.analyzers)
        await self.geocoder.close()
        self.cache.close()


def build_services(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> Services:
    """
    Construct all services from configuration.

    Args:
        settings: Application settings
        client: Optional shared httpx client for every HTTP provider

    Returns:
        Services (cache not yet initialized; call startup())
    """
    engine = ScoreEngine()
    cache = ResultCache(settings.cache_directory, default_ttl=settings.cache_ttl_seconds)
    geocoder = Geocoder(select_geocoding_provider(settings, client=client))
    lead_source = InMemoryLeadSource()

    orchestrator = AnalysisOrchestrator(
        analyzers=build_analyzers(settings, client=client),
        engine=engine,
        cache=cache,
        geocoder=geocoder,
        factor_weights=settings.factor_weights,
        analyzer_timeout=settings.analyzer_timeout_seconds,
        cache_ttl=settings.cache_ttl_seconds,
        default_radius=settings.default_radius_miles,
        max_radius=settings.max_radius_miles,
    )

    lead_scorer = LeadScorer(
        engine=engine,
        cache=cache,
        lead_source=lead_source,
        default_weights=settings.lead_score_weights,
        cache_ttl=settings.lead_cache_ttl_seconds,
    )

    logger.info(f"Services built (geocoder: {geocoder.provider_name})")

    return Services(
        cache=cache,
        engine=engine,
        geocoder=geocoder,
        orchestrator=orchestrator,
        lead_scorer=lead_scorer,
        lead_source=lead_source,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    return get_services(request).orchestrator


def get_lead_scorer(request: Request) -> LeadScorer:
    return get_services(request).lead_scorer


def get_geocoder(request: Request) -> Geocoder:
    return get_services(request).geocoder


def get_cache(request: Request) -> ResultCache:
    return get_services(request).cache
