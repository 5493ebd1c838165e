"""Pydantic models for the Lead Scoring & Geospatial Analytics API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .utils.common import clamp_score


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class Factor(str, Enum):
    """Location scoring dimensions."""
    PROXIMITY = "proximity"
    SCHOOLS = "schools"
    TRANSIT = "transit"
    CRIME = "crime"
    DEVELOPMENT = "development"
    PROPERTY_VALUES = "property_values"


ALL_FACTORS = tuple(Factor)

# Alternate spellings accepted from callers
FACTOR_ALIASES = {
    "amenities": Factor.PROXIMITY,
    "propertyValues": Factor.PROPERTY_VALUES,
}


def parse_factor(name: str) -> Factor:
    """Resolve a factor name or alias. Raises ValueError for unknown names."""
    if isinstance(name, Factor):
        return name
    if name in FACTOR_ALIASES:
        return FACTOR_ALIASES[name]
    return Factor(name)


class AmenityType(str, Enum):
    """Canonical amenity categories used for proximity scoring."""
    SCHOOL = "school"
    HOSPITAL = "hospital"
    PARK = "park"
    GROCERY = "grocery"
    RESTAURANT = "restaurant"
    SHOPPING_MALL = "shopping_mall"
    TRANSIT_STATION = "transit_station"
    POLICE = "police"
    FIRE_STATION = "fire_station"
    OTHER = "other"


class Coordinates(BaseModel):
    """A WGS84 point."""

    longitude: float = Field(..., ge=-180, le=180)
    latitude: float = Field(..., ge=-90, le=90)

    class Config:
        frozen = True

    @classmethod
    def from_pair(cls, pair: List[float]) -> "Coordinates":
        """Build from a [longitude, latitude] pair."""
        return cls(longitude=pair[0], latitude=pair[1])

    def as_pair(self) -> List[float]:
        """Return [longitude, latitude]."""
        return [self.longitude, self.latitude]


class Amenity(BaseModel):
    """A point of interest returned by a geodata provider."""

    type: AmenityType = AmenityType.OTHER
    name: Optional[str] = None
    lat: float
    lon: float
    id: Optional[str] = None
    subtype: Optional[str] = Field(default=None, description="Provider-specific refinement, e.g. transit mode")


class FactorResult(BaseModel):
    """Score for one factor plus its provider-specific detail."""

    factor: Factor
    score: int = Field(..., ge=0, le=100)
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    detail: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    @field_validator("score", mode="before")
    @classmethod
    def normalize_score(cls, v: Any) -> int:
        """Round half-up and clamp to 0-100."""
        return clamp_score(v)

    @classmethod
    def neutral(cls, factor: Factor, reason: str) -> "FactorResult":
        """Neutral default used when a factor could not be measured."""
        return cls(
            factor=factor,
            score=50,
            confidence=0.0,
            detail={"neutral_default": True, "reason": reason},
        )

    @property
    def is_neutral_default(self) -> bool:
        return bool(self.detail.get("neutral_default"))


class TrendDirection(str, Enum):
    """Neighborhood trend direction."""
    STRONG_POSITIVE = "strong_positive"
    POSITIVE = "positive"
    STABLE = "stable"
    NEGATIVE = "negative"
    STRONG_NEGATIVE = "strong_negative"


class OpportunityLevel(str, Enum):
    """Qualitative investment opportunity buckets."""
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    FAIR = "fair"
    POOR = "poor"


class NeighborhoodTrend(BaseModel):
    """Weighted trend over all factor scores."""

    score: int = Field(ge=0, le=100)
    direction: TrendDirection
    factor_scores: Dict[str, int] = Field(default_factory=dict)

    class Config:
        frozen = True


class OpportunityScore(BaseModel):
    """Trend score adjusted for direction."""

    score: int = Field(ge=0, le=100)
    level: OpportunityLevel

    class Config:
        frozen = True


class SpatialContext(BaseModel):
    """Complete location analysis. Immutable once produced."""

    coordinates: Coordinates
    radius: float = Field(description="Analysis radius in miles")
    factors: Dict[str, FactorResult] = Field(default_factory=dict)
    trend: NeighborhoodTrend
    opportunity: OpportunityScore
    partial_data: bool = Field(default=False, description="True if any factor degraded to its neutral default")
    analyzed_at: datetime = Field(default_factory=_utc_now)

    class Config:
        frozen = True


class AnalysisRequest(BaseModel):
    """Input schema for location analysis."""

    coordinates: Optional[Coordinates] = None
    address: Optional[str] = Field(default=None, min_length=3, max_length=300)
    radius: Optional[float] = Field(
        default=None,
        description="Radius in miles (default and maximum come from the service configuration)",
    )
    include_factors: Optional[List[str]] = Field(
        default=None,
        description="Subset of factors to analyze (default: all)",
    )
    weights: Optional[Dict[str, float]] = Field(
        default=None,
        description="Trend weights overriding the configured factor weights",
    )

    @field_validator("include_factors", mode="before")
    @classmethod
    def split_factors(cls, v: Any) -> Any:
        """Accept comma-separated strings. Names are resolved by the orchestrator."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @model_validator(mode="after")
    def require_location(self) -> "AnalysisRequest":
        if self.coordinates is None and not self.address:
            raise ValueError("Either address or coordinates must be provided")
        return self


class GeocodeResponse(BaseModel):
    """Geocoding result."""

    address: str
    coordinates: List[float] = Field(description="[longitude, latitude]")
    provider: Optional[str] = None


class OpportunityResponse(BaseModel):
    """Trend and opportunity without per-factor detail."""

    coordinates: Coordinates
    radius: float
    trend: NeighborhoodTrend
    opportunity: OpportunityScore
    partial_data: bool
    analyzed_at: datetime

    @classmethod
    def from_context(cls, context: "SpatialContext") -> "OpportunityResponse":
        return cls(
            coordinates=context.coordinates,
            radius=context.radius,
            trend=context.trend,
            opportunity=context.opportunity,
            partial_data=context.partial_data,
            analyzed_at=context.analyzed_at,
        )


# ============== Lead Models ==============


class LeadCategory(str, Enum):
    """Lead temperature."""
    HOT = "Hot"
    WARM = "Warm"
    COLD = "Cold"


class LeadRecord(BaseModel):
    """Plain lead data as read from a lead source."""

    id: str = Field(..., min_length=1)
    phone_numbers: List[str] = Field(default_factory=list)
    email: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    address_verified: bool = False
    phone_verified: Optional[bool] = None
    email_verified: Optional[bool] = None
    state: Optional[str] = None
    county: Optional[str] = None
    verification_status: str = "pending"
    ownership_verified: bool = False
    raw_data: Dict[str, Any] = Field(default_factory=dict)


class ComponentScore(BaseModel):
    """One lead-score component and its contribution."""

    score: int = Field(ge=0, le=100)
    weight: float
    weighted_score: float
    details: Dict[str, Any] = Field(default_factory=dict)


class LeadScoreResult(BaseModel):
    """Lead quality score."""

    lead_id: str
    score: int = Field(ge=0, le=100)
    category: LeadCategory
    components: Dict[str, ComponentScore] = Field(default_factory=dict)
    explanation: str
    weights_used: Dict[str, float] = Field(default_factory=dict)
    scored_at: datetime = Field(default_factory=_utc_now)


class LeadScoreRequest(BaseModel):
    """Score a single lead document."""

    lead: LeadRecord
    weights: Optional[Dict[str, float]] = None


class BatchLeadScoreRequest(BaseModel):
    """Score several lead documents with one weight map."""

    leads: List[LeadRecord] = Field(..., min_length=1, max_length=1000)
    weights: Optional[Dict[str, float]] = None


class CacheEntry(BaseModel):
    """Serialized cached value with its expiry instant (epoch seconds)."""

    key: str
    value: str
    expires_at: float


class ErrorResponse(BaseModel):
    """Error response model."""

    error: bool = True
    code: str
    message: str
    request_id: Optional[str] = None
    details: Optional[dict] = None
