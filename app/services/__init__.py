"""
Business Logic Services Module.

Core services for the Lead Scoring & Geospatial Analytics API:
- ScoreEngine: Weighted aggregation of component scores (0-100) into categories
- ResultCache: Disk-based TTL cache with single-flight computation
- Geocoder: Address to [longitude, latitude] via the configured provider
- LeadScorer: Lead quality scoring (contact, property, verification, ownership)

AnalysisOrchestrator lives in .analysis and is imported from there directly,
since it depends on the analyzers package which itself uses .scoring.
"""

from .scoring import ScoreEngine, AggregateScore, CategoryScale, validate_weights
from .cache import ResultCache
from .geocoder import Geocoder, select_geocoding_provider
from .lead_scoring import LeadScorer
from .leads import LeadSource, InMemoryLeadSource

__all__ = [
    "ScoreEngine",
    "AggregateScore",
    "CategoryScale",
    "validate_weights",
    "ResultCache",
    "Geocoder",
    "select_geocoding_provider",
    "LeadScorer",
    "LeadSource",
    "InMemoryLeadSource",
]
