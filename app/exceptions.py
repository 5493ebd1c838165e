"""
Scoring engine error taxonomy.

Only GeocodingFailed, InvalidWeights, InvalidRadius, UnknownFactor and
LeadNotFound ever reach a caller. ProviderUnavailable and CacheUnavailable
are raised inside the engine and recovered where they occur.
"""

from typing import Optional


class ScoringError(Exception):
    """Base class for all engine errors."""

    code = "SCORING_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ProviderUnavailable(ScoringError):
    """An external data provider timed out or failed."""

    code = "PROVIDER_UNAVAILABLE"
    status_code = 503

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}", {"provider": provider})


class GeocodingFailed(ScoringError):
    """No geocoding provider could resolve the address."""

    code = "GEOCODING_FAILED"
    status_code = 422


class InvalidWeights(ScoringError):
    """A weight map is negative, non-finite or references an unknown component."""

    code = "INVALID_WEIGHTS"
    status_code = 400


class InvalidRadius(ScoringError):
    """An analysis radius is not positive or exceeds the configured maximum."""

    code = "INVALID_RADIUS"
    status_code = 422


class UnknownFactor(ScoringError):
    """A requested factor has no analyzer."""

    code = "UNKNOWN_FACTOR"
    status_code = 400


class CacheUnavailable(ScoringError):
    """The result cache could not be read or written."""

    code = "CACHE_UNAVAILABLE"
    status_code = 503


class LeadNotFound(ScoringError):
    """The lead source has no record for the requested id."""

    code = "LEAD_NOT_FOUND"
    status_code = 404
