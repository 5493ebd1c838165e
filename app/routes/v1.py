"""
API v1 Routes.

Main endpoints for the Lead Scoring & Geospatial Analytics API.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_cache, get_geocoder, get_lead_scorer, get_orchestrator, get_services
from ..models import (
    AnalysisRequest,
    BatchLeadScoreRequest,
    ErrorResponse,
    Factor,
    GeocodeResponse,
    LeadRecord,
    LeadScoreRequest,
    LeadScoreResult,
    OpportunityResponse,
    SpatialContext,
)
from ..exceptions import UnknownFactor
from ..services.analysis import AnalysisOrchestrator, resolve_factors
from ..services.cache import ResultCache
from ..services.geocoder import Geocoder
from ..services.lead_scoring import LeadScorer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["v1"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid weights or factors"},
    422: {"model": ErrorResponse, "description": "Validation, radius or geocoding failure"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
}

TREND_FACTORS = [Factor.DEVELOPMENT.value, Factor.PROPERTY_VALUES.value, Factor.CRIME.value]
PROXIMITY_FACTORS = [Factor.PROXIMITY.value, Factor.SCHOOLS.value, Factor.TRANSIT.value]


def _restrict_factors(requested: Optional[List[str]], allowed: List[str]) -> List[str]:
    """
    Narrow an endpoint's fixed factor set to the ones the caller asked for.

    Raises:
        UnknownFactor: If a requested factor is unknown or outside the set
    """
    if not requested:
        return list(allowed)

    factors = [factor.value for factor in resolve_factors(requested)]
    outside = [factor for factor in factors if factor not in allowed]
    if outside:
        raise UnknownFactor(
            f"Not available on this endpoint: {', '.join(outside)}",
            {"factors": outside, "allowed": list(allowed)},
        )
    return factors


async def _perform_analysis(
    request: AnalysisRequest,
    orchestrator: AnalysisOrchestrator,
    allowed_factors: Optional[List[str]] = None,
) -> SpatialContext:
    """
    Run a location analysis for coordinates or an address.

    This is the core logic shared between the analysis endpoints.
    Endpoints with a fixed factor set pass it as allowed_factors; the
    caller's include_factors may then only narrow it.
    """
    include_factors = request.include_factors
    if allowed_factors is not None:
        include_factors = _restrict_factors(include_factors, allowed_factors)

    if request.coordinates is not None:
        return await orchestrator.analyze(
            request.coordinates,
            request.radius,
            include_factors,
            request.weights,
        )

    return await orchestrator.analyze_address(
        request.address,
        request.radius,
        include_factors,
        request.weights,
    )


@router.post(
    "/analyze",
    response_model=SpatialContext,
    responses=ERROR_RESPONSES,
    summary="Analyze Location",
    description="""
    Analyze a location across the requested factors (default: all six).

    **Example Request:**
    ```json
    {
        "coordinates": {"longitude": -87.6298, "latitude": 41.8781},
        "radius": 1,
        "include_factors": ["proximity", "crime"]
    }
    ```
    """,
)
async def analyze_location(
    request: AnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> SpatialContext:
    """Full spatial context with trend and opportunity score."""
    return await _perform_analysis(request, orchestrator)


@router.post(
    "/neighborhood-trends",
    response_model=SpatialContext,
    responses=ERROR_RESPONSES,
    summary="Neighborhood Trends",
    description="Development activity, property value trend and crime for a location. "
    "include_factors may narrow this set but not extend it.",
)
async def neighborhood_trends(
    request: AnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> SpatialContext:
    return await _perform_analysis(request, orchestrator, TREND_FACTORS)


@router.post(
    "/proximity",
    response_model=SpatialContext,
    responses=ERROR_RESPONSES,
    summary="Proximity Analysis",
    description="Amenity proximity, schools and transit access for a location. "
    "include_factors may narrow this set but not extend it.",
)
async def proximity_analysis(
    request: AnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> SpatialContext:
    return await _perform_analysis(request, orchestrator, PROXIMITY_FACTORS)


@router.post(
    "/opportunity-score",
    response_model=OpportunityResponse,
    responses=ERROR_RESPONSES,
    summary="Investment Opportunity Score",
    description="Neighborhood trend and opportunity score over all factors.",
)
async def opportunity_score(
    request: AnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> OpportunityResponse:
    context = await _perform_analysis(request, orchestrator)
    return OpportunityResponse.from_context(context)


@router.get(
    "/geocode",
    response_model=GeocodeResponse,
    responses=ERROR_RESPONSES,
    summary="Geocode Address",
    description="Convert an address to a [longitude, latitude] pair.",
)
async def geocode_address(
    address: str = Query(..., min_length=3, max_length=300),
    geocoder: Geocoder = Depends(get_geocoder),
) -> GeocodeResponse:
    coordinates = await geocoder.geocode(address)
    return GeocodeResponse(address=address, coordinates=coordinates, provider=geocoder.provider_name)


@router.post(
    "/leads",
    response_model=LeadRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Register Lead",
    description="Store a lead in the lead source so it can be scored by id.",
)
async def register_lead(lead: LeadRecord, services=Depends(get_services)) -> LeadRecord:
    services.lead_source.add(lead)
    logger.info(f"Registered lead {lead.id}")
    return lead


@router.post(
    "/leads/score",
    response_model=LeadScoreResult,
    responses=ERROR_RESPONSES,
    summary="Score Lead",
    description="""
    Score a lead document.

    Components: contact quality, property quality, verification status and
    ownership. Weights are optional and overlay the configured defaults.
    """,
)
async def score_lead(
    request: LeadScoreRequest,
    scorer: LeadScorer = Depends(get_lead_scorer),
) -> LeadScoreResult:
    return await scorer.calculate_score(request.lead, request.weights)


@router.post(
    "/leads/score/batch",
    response_model=List[LeadScoreResult],
    responses=ERROR_RESPONSES,
    summary="Batch Score Leads",
    description="Score up to 1000 leads with one weight map. Results keep input order.",
)
async def batch_score_leads(
    request: BatchLeadScoreRequest,
    scorer: LeadScorer = Depends(get_lead_scorer),
) -> List[LeadScoreResult]:
    return await scorer.batch_score(request.leads, request.weights)


@router.get(
    "/leads/{lead_id}/score",
    response_model=LeadScoreResult,
    responses={404: {"model": ErrorResponse, "description": "Lead not found"}, **ERROR_RESPONSES},
    summary="Score Stored Lead",
    description="Score a lead read from the lead source.",
)
async def score_stored_lead(
    lead_id: str,
    scorer: LeadScorer = Depends(get_lead_scorer),
) -> LeadScoreResult:
    return await scorer.score_lead_by_id(lead_id)


@router.delete(
    "/cache",
    summary="Clear Cache",
    description="Delete all cached analyses and lead scores.",
)
async def clear_cache(cache: ResultCache = Depends(get_cache)) -> dict:
    cleared = cache.clear()
    return {"cleared": cleared}
