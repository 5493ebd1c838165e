"""
Lead Quality Scoring Service.

Scores a lead record from four independent components and aggregates them
with the shared ScoreEngine.

Components (default weights):
- contact_quality (0.35): up to 3 phone numbers x 10, +20 email, +10 name,
  +5 more when first and last name are both present
- property_quality (0.25): +30 address, +20 verified address, +10 state,
  +10 county, plus bonuses for recognizable raw import columns
- verification_status (0.25): verified 100, partially_verified 50, else 0
- ownership_verified (0.15): 100 if verified, else 0

Score Ranges:
- 80-100: Hot
- 50-79: Warm
- 0-49: Cold
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models import ComponentScore, LeadCategory, LeadRecord, LeadScoreResult
from ..exceptions import LeadNotFound
from ..utils.common import canonical_weights

from .cache import ResultCache
from .leads import LeadSource
from .scoring import LEAD_CATEGORIES, ScoreEngine, validate_weights

logger = logging.getLogger(__name__)

CONTACT_QUALITY = "contact_quality"
PROPERTY_QUALITY = "property_quality"
VERIFICATION_STATUS = "verification_status"
OWNERSHIP_VERIFIED = "ownership_verified"

LEAD_COMPONENTS = (CONTACT_QUALITY, PROPERTY_QUALITY, VERIFICATION_STATUS, OWNERSHIP_VERIFIED)

DEFAULT_LEAD_WEIGHTS = {
    CONTACT_QUALITY: 0.35,
    PROPERTY_QUALITY: 0.25,
    VERIFICATION_STATUS: 0.25,
    OWNERSHIP_VERIFIED: 0.15,
}

# camelCase names accepted from API callers
LEAD_WEIGHT_ALIASES = {
    "contactQuality": CONTACT_QUALITY,
    "propertyQuality": PROPERTY_QUALITY,
    "verificationStatus": VERIFICATION_STATUS,
    "ownershipVerified": OWNERSHIP_VERIFIED,
}

# Raw import column names recognized per property metric, with bonus points
PROPERTY_METRIC_FIELDS: List[Tuple[str, Tuple[str, ...], int]] = [
    ("value", ("Property Value", "Value", "Estimated Value", "Price"), 15),
    ("size", ("Square Feet", "SqFt", "Size", "Building Size"), 5),
    ("lot_size", ("Lot Size", "Lot Area", "Acreage"), 5),
    ("year_built", ("Year Built", "Built"), 5),
]

LEADING_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")

VERIFICATION_SCORES = {
    "verified": (100, "All verification checks passed"),
    "partially_verified": (50, "Some verification checks passed"),
    "pending": (0, "Verification not completed"),
    "failed": (0, "Verification failed"),
}


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _parse_number(value: Any) -> Optional[float]:
    """Leading numeric value of a raw import cell ("1200 sqft" -> 1200.0)."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    match = LEADING_NUMBER.match(str(value).strip().replace(",", "").lstrip("$"))
    return float(match.group()) if match else None


def score_contact_quality(lead: LeadRecord) -> Tuple[int, Dict[str, Any]]:
    """Phone, email and name completeness."""
    score = 0
    details: Dict[str, Any] = {}

    phone_count = min(len([p for p in lead.phone_numbers if _present(p)]), 3)
    details["phone_numbers"] = {"score": phone_count * 10, "count": phone_count}
    score += phone_count * 10

    if _present(lead.email):
        details["email"] = {"score": 20, "present": True}
        score += 20
    else:
        details["email"] = {"score": 0, "present": False}

    if _present(lead.name):
        complete = _present(lead.first_name) and _present(lead.last_name)
        name_score = 15 if complete else 10
        details["name"] = {"score": name_score, "complete": complete}
        score += name_score
    else:
        details["name"] = {"score": 0, "present": False}

    return min(score, 100), details


def extract_property_metrics(raw_data: Mapping[str, Any]) -> Tuple[int, Dict[str, float]]:
    """Bonus points for recognizable property columns in the raw import row."""
    points = 0
    metrics: Dict[str, float] = {}

    for metric, fields, bonus in PROPERTY_METRIC_FIELDS:
        for field in fields:
            number = _parse_number(raw_data.get(field))
            if number is not None:
                metrics[metric] = int(number) if metric == "year_built" else number
                points += bonus
                break

    return points, metrics


def score_property_quality(lead: LeadRecord) -> Tuple[int, Dict[str, Any]]:
    """Address completeness plus raw property data."""
    score = 0
    details: Dict[str, Any] = {}

    if _present(lead.address):
        address_score = 30
        if lead.address_verified:
            address_score += 20
        if _present(lead.state):
            address_score += 10
        if _present(lead.county):
            address_score += 10
        details["address"] = {"score": address_score, "verified": lead.address_verified}
        score += address_score
    else:
        details["address"] = {"score": 0, "present": False}

    if lead.raw_data:
        points, metrics = extract_property_metrics(lead.raw_data)
        details["property_metrics"] = {"score": points, "metrics": metrics}
        score += points

    return min(score, 100), details


def score_verification_status(lead: LeadRecord) -> Tuple[int, Dict[str, Any]]:
    """Categorical mapping of the lead's verification status."""
    score, reason = VERIFICATION_SCORES.get(lead.verification_status, (0, "Unknown verification status"))
    details: Dict[str, Any] = {"status": lead.verification_status, "reason": reason}

    if lead.phone_verified is not None:
        details["phone_verified"] = lead.phone_verified
    if lead.email_verified is not None:
        details["email_verified"] = lead.email_verified
    details["address_verified"] = lead.address_verified

    return score, details


def score_ownership(lead: LeadRecord) -> Tuple[int, Dict[str, Any]]:
    verified = lead.ownership_verified is True
    return (100 if verified else 0), {
        "verified": verified,
        "reason": "Ownership verified" if verified else "Ownership not verified",
    }


COMPONENT_SCORERS = {
    CONTACT_QUALITY: score_contact_quality,
    PROPERTY_QUALITY: score_property_quality,
    VERIFICATION_STATUS: score_verification_status,
    OWNERSHIP_VERIFIED: score_ownership,
}


def score_explanation(score: int, category: str) -> str:
    """Human-readable explanation for a score bucket."""
    if score >= 80:
        return f"This is a high-quality {category} lead with verified information. Recommended for immediate follow-up."
    elif score >= 60:
        return f"This is a good-quality {category} lead with mostly verified information. Recommended for follow-up soon."
    elif score >= 40:
        return (
            f"This is a moderate-quality {category} lead with some verified information. "
            "Consider follow-up after higher-scoring leads."
        )
    else:
        return (
            f"This is a low-quality {category} lead with minimal verified information. "
            "Not recommended for immediate follow-up."
        )


class LeadScorer:
    """
    Scores lead records and caches the results.

    Results are cached per lead id, weight map and lead content, so an
    edited lead is rescored rather than served stale.
    """

    def __init__(
        self,
        engine: Optional[ScoreEngine] = None,
        cache: Optional[ResultCache] = None,
        lead_source: Optional[LeadSource] = None,
        default_weights: Optional[Mapping[str, float]] = None,
        cache_ttl: int = 3600,
    ):
        self._engine = engine or ScoreEngine()
        self._cache = cache
        self._lead_source = lead_source
        self._default_weights = self.resolve_weights(default_weights or DEFAULT_LEAD_WEIGHTS, merge=False)
        self._cache_ttl = cache_ttl

    @property
    def default_weights(self) -> Dict[str, float]:
        return dict(self._default_weights)

    def resolve_weights(self, weights: Optional[Mapping[str, float]], merge: bool = True) -> Dict[str, float]:
        """
        Validate caller weights and overlay them on the defaults.

        Raises:
            InvalidWeights: For unknown component names or bad values
        """
        if weights is None:
            return dict(self._default_weights)

        renamed = {LEAD_WEIGHT_ALIASES.get(name, name): value for name, value in weights.items()}
        validated = validate_weights(renamed, LEAD_COMPONENTS)
        if not merge:
            return validated
        return {**self._default_weights, **validated}

    def score(self, lead: LeadRecord, weights: Mapping[str, float]) -> LeadScoreResult:
        """Score a lead with already-resolved weights. Pure; no caching."""
        scores: Dict[str, int] = {}
        details: Dict[str, Dict[str, Any]] = {}
        for name, scorer in COMPONENT_SCORERS.items():
            scores[name], details[name] = scorer(lead)

        aggregate = self._engine.aggregate(scores, weights, LEAD_CATEGORIES)
        contributions = self._engine.contributions(scores, weights)

        components = {
            name: ComponentScore(
                score=scores[name],
                weight=float(weights.get(name, 0.0)),
                weighted_score=round(contributions[name], 4),
                details=details[name],
            )
            for name in LEAD_COMPONENTS
        }

        logger.info(f"Lead {lead.id} scored {aggregate.score} ({aggregate.category})")

        return LeadScoreResult(
            lead_id=lead.id,
            score=aggregate.score,
            category=LeadCategory(aggregate.category),
            components=components,
            explanation=score_explanation(aggregate.score, aggregate.category),
            weights_used=dict(weights),
        )

    def cache_key(self, lead: LeadRecord, weights: Mapping[str, float]) -> str:
        return ResultCache.make_key("lead", lead.id, canonical_weights(weights), lead.model_dump_json())

    async def calculate_score(
        self,
        lead: LeadRecord,
        weights: Optional[Mapping[str, float]] = None,
    ) -> LeadScoreResult:
        """
        Calculate the quality score for a lead.

        Args:
            lead: Lead record
            weights: Optional per-component weights overriding the defaults

        Returns:
            LeadScoreResult (cached for the lead TTL)

        Raises:
            InvalidWeights: If the weights are invalid
        """
        resolved = self.resolve_weights(weights)

        if self._cache is None:
            return self.score(lead, resolved)

        async def compute() -> LeadScoreResult:
            return self.score(lead, resolved)

        return await self._cache.get_or_compute(
            self.cache_key(lead, resolved),
            LeadScoreResult,
            compute,
            ttl=self._cache_ttl,
        )

    async def batch_score(
        self,
        leads: List[LeadRecord],
        weights: Optional[Mapping[str, float]] = None,
    ) -> List[LeadScoreResult]:
        """Score several leads with one weight map, preserving input order."""
        resolved = self.resolve_weights(weights)
        return list(await asyncio.gather(*(self.calculate_score(lead, resolved) for lead in leads)))

    async def score_lead_by_id(
        self,
        lead_id: str,
        weights: Optional[Mapping[str, float]] = None,
    ) -> LeadScoreResult:
        """
        Read a lead from the lead source and score it.

        Raises:
            LeadNotFound: If the source has no such lead
        """
        lead = await self._lead_source.read(lead_id) if self._lead_source else None
        if lead is None:
            raise LeadNotFound(f"Lead {lead_id} not found", {"lead_id": lead_id})
        return await self.calculate_score(lead, weights)
